"""
Swarm (content-addressed store) handler.

Addresses have the form ``<hash>/<path>``: the first segment is a 64 hex
chars reference (128 when encrypted). A uri whose first segment is a valid
hash is online absolute, anything else is online relative to a base address.
There is no local interpretation and no directory concept.

Content is fetched through a Bee node gateway: ``{gateway_url}/bzz/{address}``.
"""

import io
import posixpath
import re
from typing import BinaryIO, Callable, Optional, Tuple

import httpx

from unifiles.errors import (
    BaseDirectoryNotAbsoluteError,
    InvalidUriKindError,
    MissingBaseDirectoryError,
    OnlineResourceError,
    UnresolvableUriKindError,
    UnsupportedOperationError,
)
from unifiles.handlers.base import FileContent
from unifiles.handlers.basic import _charset_to_encoding
from unifiles.kinds import AbsoluteUri, UriKind, is_primitive
from unifiles.logger import get_logger

logger = get_logger(__name__)

SEPARATOR = '/'

_HASH_RE = re.compile(r'^(?:[0-9a-fA-F]{64}|[0-9a-fA-F]{128})$')
_FILENAME_RE = re.compile(r'''filename\*?\s*=\s*(?:UTF-8'')?"?([^";]+)"?''', re.IGNORECASE)


def is_valid_hash(value: str) -> bool:
    """True if ``value`` is a plain or encrypted swarm reference."""
    return _HASH_RE.match(value) is not None


def split_address(address: str) -> Tuple[str, str]:
    """Split ``<hash>/<path>`` into a lower-cased hash and a path without leading separator."""
    reference, _, path = address.partition(SEPARATOR)
    return reference.lower(), path.lstrip(SEPARATOR)


class SwarmHandler:
    """
    Handler for files stored on Swarm.

    Args:
        gateway_url: Bee node or gateway base url
        client_factory: Callable returning a new httpx.AsyncClient
        timeout_seconds: HTTP timeout for the default client factory

    Example:
        >>> handler = SwarmHandler("http://localhost:1633")
        >>> handler.get_uri_kind("a" * 64 + "/index.html")
        <UriKind.ONLINE_ABSOLUTE: 4>
    """

    name = 'swarm'

    def __init__(
        self,
        gateway_url: str = 'http://localhost:1633',
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        timeout_seconds: float = 30.0
    ):
        self.gateway_url = gateway_url.rstrip('/')
        self.timeout_seconds = timeout_seconds
        self._client_factory = client_factory or self._default_client_factory

        logger.debug("Initialized SwarmHandler", extra={'gateway_url': self.gateway_url})

    def _default_client_factory(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds)

    def get_uri_kind(self, uri: str) -> UriKind:
        if not uri:
            return UriKind.NONE
        if is_valid_hash(uri.split(SEPARATOR)[0]):
            return UriKind.ONLINE_ABSOLUTE
        return UriKind.ONLINE_RELATIVE

    def uri_to_absolute_uri(
        self,
        original_uri: str,
        base_directory: Optional[str],
        uri_kind: UriKind
    ) -> AbsoluteUri:
        """
        Resolve to a canonical ``<hash>/<path>`` address.

        Rooted relative paths (``/img/a.png``) start from the base hash root,
        others from the directory of the base address.
        """
        if not is_primitive(uri_kind) or uri_kind & UriKind.LOCAL:
            raise UnresolvableUriKindError(f"Can't find a valid uri kind: {uri_kind}")

        if uri_kind == UriKind.ONLINE_ABSOLUTE:
            reference, path = split_address(original_uri)
            return AbsoluteUri(f"{reference}{SEPARATOR}{path}", UriKind.ONLINE_ABSOLUTE)

        if base_directory is None:
            raise MissingBaseDirectoryError("Base directory can't be null with relative original uri")
        if not self.get_uri_kind(base_directory) & UriKind.ABSOLUTE:
            raise BaseDirectoryNotAbsoluteError("If uri kind is relative, base directory must be absolute")

        reference, base_path = split_address(base_directory)
        relative = original_uri.replace('\\', SEPARATOR)
        if relative.startswith(SEPARATOR):
            path = relative
        else:
            base_dir = base_path[:base_path.rfind(SEPARATOR) + 1]
            path = SEPARATOR + base_dir + relative

        normalized = posixpath.normpath(path)
        if relative.endswith(SEPARATOR) and not normalized.endswith(SEPARATOR):
            normalized += SEPARATOR
        return AbsoluteUri(
            f"{reference}{SEPARATOR}{normalized.lstrip(SEPARATOR)}",
            UriKind.ONLINE_ABSOLUTE
        )

    def try_get_parent_directory(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Optional[AbsoluteUri]:
        raise UnsupportedOperationError("Swarm doesn't implement concept of directories")

    def _bzz_url(self, address: str) -> str:
        return f"{self.gateway_url}/bzz/{address}"

    @staticmethod
    def _require_online_absolute(absolute_uri_kind: UriKind):
        if absolute_uri_kind != UriKind.ONLINE_ABSOLUTE:
            raise InvalidUriKindError(
                "Invalid online absolute uri kind. It can't be casted to a swarm address"
            )

    async def _head(self, address: str) -> Optional[httpx.Response]:
        try:
            async with self._client_factory() as client:
                response = await client.head(self._bzz_url(address))
        except httpx.HTTPError as e:
            logger.warning(f"Swarm HEAD request failed: {e}", extra={'address': address})
            return None
        return response if response.is_success else None

    async def exists(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[bool, Optional[FileContent]]:
        self._require_online_absolute(absolute_uri_kind)
        return await self._head(absolute_uri) is not None, None

    async def get_byte_size(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[int, Optional[FileContent]]:
        self._require_online_absolute(absolute_uri_kind)

        response = await self._head(absolute_uri)
        if response is not None:
            content_length = response.headers.get('Content-Length', '').strip()
            if content_length.isdigit():
                return int(content_length), None

        content = await self.read_to_bytes(absolute_uri, absolute_uri_kind)
        return len(content.data), content

    async def read_to_bytes(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> FileContent:
        self._require_online_absolute(absolute_uri_kind)

        url = self._bzz_url(absolute_uri)
        try:
            async with self._client_factory() as client:
                with logger.timer(f"GET bzz/{absolute_uri}"):
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise OnlineResourceError(f"Can't retrieve swarm resource at {absolute_uri}: {e}") from e

        if not response.is_success:
            raise OnlineResourceError(
                f"Can't retrieve swarm resource at {absolute_uri}: HTTP {response.status_code}"
            )

        return FileContent(response.content, _charset_to_encoding(response.charset_encoding))

    async def read_to_stream(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[BinaryIO, Optional[str]]:
        content = await self.read_to_bytes(absolute_uri, absolute_uri_kind)
        return io.BytesIO(content.data), content.encoding

    async def try_get_file_name(self, original_uri: str) -> Optional[str]:
        """
        File name from the gateway's Content-Disposition header.

        Falls back to the last path segment of the address.
        """
        if self.get_uri_kind(original_uri) == UriKind.ONLINE_ABSOLUTE:
            address = self.uri_to_absolute_uri(original_uri, None, UriKind.ONLINE_ABSOLUTE).uri
            response = await self._head(address)
            if response is not None:
                match = _FILENAME_RE.search(response.headers.get('Content-Disposition', ''))
                if match:
                    return match.group(1).strip()

        if original_uri.endswith((SEPARATOR, '\\')):
            return None
        last_segment = re.split(r'[/\\]', original_uri)[-1]
        if is_valid_hash(last_segment):
            return None
        return last_segment or None
