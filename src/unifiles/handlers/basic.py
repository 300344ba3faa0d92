"""
Local filesystem and HTTP(S) handler.

Classification rules:
- online absolute: parses as a web uri with http/https scheme and a host
- online relative: carries no uri scheme (a drive letter is not a scheme)
- local absolute/relative: only tested when not online absolute, rooted-ness
  decided by the platform path policy

A rooted path like ``/images/a.png`` is classified as both local absolute and
online relative. That ambiguity is kept on purpose: resolution settles it from
allowed kinds or the base directory, or refuses.
"""

import codecs
import io
import os
import re
import time
from typing import BinaryIO, Callable, Optional, Tuple
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

import httpx

from unifiles.errors import (
    BaseDirectoryNotAbsoluteError,
    InvalidUriKindError,
    MissingBaseDirectoryError,
    OnlineResourceError,
    UnresolvableUriKindError,
)
from unifiles.handlers.base import FileContent
from unifiles.kinds import AbsoluteUri, UriKind, is_primitive
from unifiles.logger import get_logger
from unifiles.platform import PathPolicy, current_path_policy

logger = get_logger(__name__)

ONLINE_SCHEMES = ('http', 'https')
DEFAULT_PORTS = {'http': 80, 'https': 443}

# At least two chars, so "C:" stays a drive letter
_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]+:')
_SEGMENT_SPLIT_RE = re.compile(r'[/\\]')
_ONLINE_SEGMENT_RE = re.compile(r'[^/]*/|[^/]+$')

# Local errors that won't go away by retrying
_PERMANENT_OS_ERRORS = (FileNotFoundError, IsADirectoryError, NotADirectoryError, PermissionError)


def is_online_absolute(uri: str) -> bool:
    """True if ``uri`` is an absolute http(s) uri with a host."""
    try:
        parts = urlsplit(uri)
        parts.port  # raises on invalid port
    except ValueError:
        return False
    return parts.scheme.lower() in ONLINE_SCHEMES and bool(parts.hostname)


def has_uri_scheme(uri: str) -> bool:
    return _SCHEME_RE.match(uri) is not None


def remove_dot_segments(path: str) -> str:
    """Collapse '.' and '..' segments of a uri path (RFC 3986, 5.2.4)."""
    segments = path.split('/')
    resolved = []
    for segment in segments:
        if segment == '..':
            if len(resolved) > 1:
                resolved.pop()
        elif segment != '.':
            resolved.append(segment)
    if segments[-1] in ('.', '..'):
        resolved.append('')
    return '/'.join(resolved)


def normalize_online_uri(uri: str) -> str:
    """
    Canonical string of an absolute web uri.

    Scheme and host are lower-cased, default port dropped, dot segments
    removed, empty path replaced by '/'. Query and fragment are kept.
    """
    parts = urlsplit(uri)
    scheme = parts.scheme.lower()

    userinfo, at, hostport = parts.netloc.rpartition('@')
    hostport = hostport.lower()
    if parts.port is not None and parts.port == DEFAULT_PORTS.get(scheme):
        hostport = hostport.rsplit(':', 1)[0]
    elif hostport.endswith(':'):
        hostport = hostport[:-1]

    path = remove_dot_segments(parts.path) or '/'
    return urlunsplit((scheme, f"{userinfo}{at}{hostport}", path, parts.query, parts.fragment))


def _charset_to_encoding(charset: Optional[str]) -> Optional[str]:
    if not charset:
        return None
    try:
        return codecs.lookup(charset).name
    except LookupError:
        logger.debug(f"Unknown charset ignored: {charset}")
        return None


class BasicHandler:
    """
    Handler for local files and online files over HTTP(S).

    Args:
        path_policy: Platform path policy (default: current platform)
        client_factory: Callable returning a new httpx.AsyncClient
        timeout_seconds: HTTP timeout for the default client factory
        follow_redirects: Follow redirects with the default client factory
        user_agent: User-Agent header with the default client factory
        retry_attempts: Attempts for transient local I/O errors
        retry_backoff_ms: Base delay between local attempts

    Example:
        >>> handler = BasicHandler()
        >>> handler.get_uri_kind("/dir/")
        <UriKind.LOCAL_ABSOLUTE|ONLINE_RELATIVE: 9>
        >>> handler.uri_to_absolute_uri("my/test", "https://example.com/dir/", UriKind.ONLINE_RELATIVE)
        AbsoluteUri(uri='https://example.com/dir/my/test', uri_kind=<UriKind.ONLINE_ABSOLUTE: 4>)
    """

    name = 'basic'

    def __init__(
        self,
        path_policy: Optional[PathPolicy] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
        timeout_seconds: float = 30.0,
        follow_redirects: bool = True,
        user_agent: str = 'unifiles',
        retry_attempts: int = 3,
        retry_backoff_ms: int = 100
    ):
        self.path_policy = path_policy or current_path_policy()
        self.timeout_seconds = timeout_seconds
        self.follow_redirects = follow_redirects
        self.user_agent = user_agent
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff_ms = retry_backoff_ms
        self._client_factory = client_factory or self._default_client_factory

        logger.debug(
            "Initialized BasicHandler",
            extra={'path_policy': self.path_policy.name, 'retry_attempts': self.retry_attempts}
        )

    def _default_client_factory(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=self.follow_redirects,
            headers={'User-Agent': self.user_agent}
        )

    # ------------------------------------------------------------------
    # Classification and resolution
    # ------------------------------------------------------------------

    def get_uri_kind(self, uri: str) -> UriKind:
        """Classify ``uri``. Online absolute uris are never local."""
        uri_kind = UriKind.NONE
        if not uri:
            return uri_kind

        if is_online_absolute(uri):
            uri_kind |= UriKind.ONLINE_ABSOLUTE

        if not has_uri_scheme(uri):
            uri_kind |= UriKind.ONLINE_RELATIVE

        if not uri_kind & UriKind.ONLINE_ABSOLUTE:
            if self.path_policy.is_path_rooted(uri):
                uri_kind |= UriKind.LOCAL_ABSOLUTE
            else:
                uri_kind |= UriKind.LOCAL_RELATIVE

        return uri_kind

    def uri_to_absolute_uri(
        self,
        original_uri: str,
        base_directory: Optional[str],
        uri_kind: UriKind
    ) -> AbsoluteUri:
        """
        Resolve ``original_uri`` given its single, narrowed kind.

        Raises:
            BaseDirectoryNotAbsoluteError: If kind may be relative and base isn't absolute
            MissingBaseDirectoryError: If online relative without base directory
            UnresolvableUriKindError: If uri_kind isn't a primitive kind
        """
        if (uri_kind & UriKind.RELATIVE
                and base_directory is not None
                and not self.get_uri_kind(base_directory) & UriKind.ABSOLUTE):
            raise BaseDirectoryNotAbsoluteError(
                "If uri kind can be relative and base directory is present, it must be absolute"
            )

        if not is_primitive(uri_kind):
            raise UnresolvableUriKindError(f"Can't find a valid uri kind: {uri_kind}")

        policy = self.path_policy

        if uri_kind == UriKind.LOCAL_ABSOLUTE:
            result = AbsoluteUri(policy.resolve_rooted(original_uri, base_directory), UriKind.LOCAL_ABSOLUTE)

        elif uri_kind == UriKind.LOCAL_RELATIVE:
            base_path = policy.full_path(base_directory) if base_directory is not None else policy.cwd()
            result = AbsoluteUri(policy.full_path(original_uri, base_path), UriKind.LOCAL_ABSOLUTE)

        elif uri_kind == UriKind.ONLINE_ABSOLUTE:
            result = AbsoluteUri(normalize_online_uri(original_uri), UriKind.ONLINE_ABSOLUTE)

        else:
            if base_directory is None:
                raise MissingBaseDirectoryError("Can't resolve online relative uri. Specify a base directory")
            if not is_online_absolute(base_directory):
                raise BaseDirectoryNotAbsoluteError(
                    f"Online relative uri requires an online absolute base directory: {base_directory!r}"
                )
            escaped = '/'.join(quote(segment, safe='') for segment in _SEGMENT_SPLIT_RE.split(original_uri))
            joined = urljoin(normalize_online_uri(base_directory), escaped)
            result = AbsoluteUri(normalize_online_uri(joined), UriKind.ONLINE_ABSOLUTE)

        logger.trace(
            "Resolved absolute uri",
            extra={'uri': original_uri, 'kind': uri_kind.name, 'result': result.uri}
        )
        return result

    def try_get_parent_directory(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Optional[AbsoluteUri]:
        """Parent directory, None when already at the root."""
        if absolute_uri_kind == UriKind.LOCAL_ABSOLUTE:
            parent = self.path_policy.parent_directory(absolute_uri)
            return None if parent is None else AbsoluteUri(parent, UriKind.LOCAL_ABSOLUTE)

        if absolute_uri_kind == UriKind.ONLINE_ABSOLUTE:
            parts = urlsplit(absolute_uri)
            path = parts.path or '/'
            segments = _ONLINE_SEGMENT_RE.findall(path)
            if len(segments) <= 1:
                return None
            parent_path = path[:-len(segments[-1])]
            return AbsoluteUri(
                urlunsplit((parts.scheme, parts.netloc, parent_path, '', '')),
                UriKind.ONLINE_ABSOLUTE
            )

        raise InvalidUriKindError("Invalid absolute uri kind. It should be well defined and absolute")

    # ------------------------------------------------------------------
    # Byte I/O
    # ------------------------------------------------------------------

    async def exists(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[bool, Optional[FileContent]]:
        if absolute_uri_kind == UriKind.LOCAL_ABSOLUTE:
            logger.trace("Checking existence", extra={'path': absolute_uri})
            return os.path.exists(absolute_uri), None

        if absolute_uri_kind == UriKind.ONLINE_ABSOLUTE:
            if await self._try_get_online_byte_size(absolute_uri) is not None:
                return True, None

            content = await self._try_get_online_content(absolute_uri)
            return content is not None, content

        raise InvalidUriKindError("Invalid absolute uri kind. It should be well defined and absolute")

    async def get_byte_size(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[int, Optional[FileContent]]:
        if absolute_uri_kind == UriKind.LOCAL_ABSOLUTE:
            if not os.path.isfile(absolute_uri):
                raise FileNotFoundError(f"File not found: {absolute_uri}")
            return self._retry_operation(os.path.getsize, absolute_uri), None

        if absolute_uri_kind == UriKind.ONLINE_ABSOLUTE:
            byte_size = await self._try_get_online_byte_size(absolute_uri)
            if byte_size is not None:
                return byte_size, None

            content = await self._try_get_online_content(absolute_uri)
            if content is None:
                raise OnlineResourceError(f"Can't retrieve online resource at {absolute_uri}")
            return len(content.data), content

        raise InvalidUriKindError("Invalid absolute uri kind. It should be well defined and absolute")

    async def read_to_bytes(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> FileContent:
        if absolute_uri_kind == UriKind.LOCAL_ABSOLUTE:
            logger.debug("Reading file", extra={'path': absolute_uri})

            def _read():
                with open(absolute_uri, 'rb') as f:
                    return f.read()

            with logger.timer(f"read_to_bytes({os.path.basename(absolute_uri)})"):
                return FileContent(self._retry_operation(_read), None)

        if absolute_uri_kind == UriKind.ONLINE_ABSOLUTE:
            content = await self._try_get_online_content(absolute_uri)
            if content is None:
                raise OnlineResourceError(f"Can't retrieve online resource at {absolute_uri}")
            return content

        raise InvalidUriKindError("Invalid absolute uri kind. It should be well defined and absolute")

    async def read_to_stream(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[BinaryIO, Optional[str]]:
        if absolute_uri_kind == UriKind.LOCAL_ABSOLUTE:
            logger.debug("Opening stream", extra={'path': absolute_uri})
            return self._retry_operation(open, absolute_uri, 'rb'), None

        if absolute_uri_kind == UriKind.ONLINE_ABSOLUTE:
            content = await self._try_get_online_content(absolute_uri)
            if content is None:
                raise OnlineResourceError(f"Can't retrieve online resource at {absolute_uri}")
            return io.BytesIO(content.data), content.encoding

        raise InvalidUriKindError("Invalid absolute uri kind. It should be well defined and absolute")

    async def try_get_file_name(self, original_uri: str) -> Optional[str]:
        """Last segment of the uri path, None for directory-like uris."""
        path = urlsplit(original_uri).path if is_online_absolute(original_uri) else original_uri
        if not path or path.endswith(('/', '\\')):
            return None
        return _SEGMENT_SPLIT_RE.split(path)[-1]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _retry_operation(self, operation, *args, **kwargs):
        """Run a local I/O operation, retrying transient OSErrors."""
        for attempt in range(self.retry_attempts):
            try:
                return operation(*args, **kwargs)
            except _PERMANENT_OS_ERRORS:
                raise
            except OSError as e:
                if attempt == self.retry_attempts - 1:
                    raise
                logger.warning(
                    f"Operation failed (attempt {attempt + 1}/{self.retry_attempts}): {e}",
                    extra={'operation': getattr(operation, '__name__', repr(operation))}
                )
                time.sleep(self.retry_backoff_ms / 1000 * (attempt + 1))

    async def _try_get_online_content(self, url: str) -> Optional[FileContent]:
        try:
            async with self._client_factory() as client:
                with logger.timer(f"GET {url}"):
                    response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Online resource request failed: {e}", extra={'url': url})
            return None

        if not response.is_success:
            logger.debug(
                f"Online resource unavailable: HTTP {response.status_code}",
                extra={'url': url}
            )
            return None

        return FileContent(response.content, _charset_to_encoding(response.charset_encoding))

    async def _try_get_online_byte_size(self, url: str) -> Optional[int]:
        try:
            async with self._client_factory() as client:
                response = await client.head(url)
        except httpx.HTTPError as e:
            logger.debug(f"HEAD request failed: {e}", extra={'url': url})
            return None

        if not response.is_success:
            return None

        content_length = response.headers.get('Content-Length')
        if content_length is None or not content_length.strip().isdigit():
            return None
        return int(content_length)


__all__ = [
    'BasicHandler',
    'is_online_absolute',
    'has_uri_scheme',
    'normalize_online_uri',
    'remove_dot_segments',
]
