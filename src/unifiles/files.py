"""
Universal file entity.

A UniversalFile pairs an immutable UniversalUri with the handler of its
family and keeps a single slot of online content. The slot is filled only
when caching is requested, the uri resolved to an online absolute uri, and
the handler actually downloaded the content.

The cache is not thread-safe: concurrent use of the same instance from
several threads is last-writer-wins. Use one instance per logical consumer.

Usage:
    from unifiles import UniversalFile

    file = UniversalFile("https://example.com/data.json")
    if await file.exists(use_cache_if_online=True):
        text = await file.read_to_string(use_cache_if_online=True)   # no second download
"""

import io
from typing import Any, Awaitable, BinaryIO, Callable, Optional, Tuple, Union

from unifiles.handlers.base import FileContent, Handler
from unifiles.kinds import UriKind
from unifiles.logger import get_logger
from unifiles.uri import UniversalUri

logger = get_logger(__name__)


async def run_with_online_cache(
    file: "UniversalFile",
    operation: Callable[[str, UriKind], Awaitable[Tuple[Any, Optional[FileContent]]]],
    from_cache: Callable[[FileContent], Any],
    use_cache_if_online: bool,
    allowed_uri_kinds: UriKind,
    base_directory: Optional[str]
) -> Any:
    """
    Cache check, resolution, delegation and cache update for one operation.

    Args:
        file: File owning the cache slot
        operation: Handler call on (absolute_uri, kind) returning (result, content)
        from_cache: Builds the result from cached content
        use_cache_if_online: Read and fill the cache
        allowed_uri_kinds: Restriction for the resolution
        base_directory: Base directory for the resolution

    Returns:
        Operation result
    """
    if use_cache_if_online and file._online_cache is not None:
        logger.trace("Using cached online content", extra={'uri': file.file_uri.original_uri})
        return from_cache(file._online_cache)

    absolute_uri, absolute_uri_kind = file.file_uri.to_absolute_uri(allowed_uri_kinds, base_directory)
    result, content = await operation(absolute_uri, absolute_uri_kind)

    if (use_cache_if_online
            and absolute_uri_kind == UriKind.ONLINE_ABSOLUTE
            and content is not None):
        file._online_cache = content

    return result


class UniversalFile:
    """
    File reachable through a UniversalUri.

    Args:
        file_uri: UniversalUri, or a raw uri string
        handler: Handler used when ``file_uri`` is a string (default: BasicHandler)
    """

    def __init__(
        self,
        file_uri: Union[UniversalUri, str],
        handler: Optional[Handler] = None
    ):
        if file_uri is None:
            raise TypeError("file_uri can't be None")
        if not isinstance(file_uri, UniversalUri):
            file_uri = UniversalUri(file_uri, handler)

        self.file_uri = file_uri
        self._online_cache: Optional[FileContent] = None

    @property
    def handler(self) -> Handler:
        return self.file_uri.handler

    @property
    def online_cache(self) -> Optional[FileContent]:
        return self._online_cache

    def clear_online_cache(self):
        self._online_cache = None

    async def exists(
        self,
        use_cache_if_online: bool = False,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> bool:
        return await run_with_online_cache(
            self,
            self.handler.exists,
            lambda content: True,
            use_cache_if_online,
            allowed_uri_kinds,
            base_directory
        )

    async def get_byte_size(
        self,
        use_cache_if_online: bool = False,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> int:
        return await run_with_online_cache(
            self,
            self.handler.get_byte_size,
            lambda content: len(content.data),
            use_cache_if_online,
            allowed_uri_kinds,
            base_directory
        )

    async def read_to_bytes(
        self,
        use_cache_if_online: bool = False,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> FileContent:
        """
        Read the whole content.

        Returns:
            FileContent(data, encoding)
        """
        async def _read(absolute_uri: str, absolute_uri_kind: UriKind):
            content = await self.handler.read_to_bytes(absolute_uri, absolute_uri_kind)
            return content, content

        return await run_with_online_cache(
            self,
            _read,
            lambda content: content,
            use_cache_if_online,
            allowed_uri_kinds,
            base_directory
        )

    async def read_to_stream(
        self,
        use_cache_if_online: bool = False,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> Tuple[BinaryIO, Optional[str]]:
        """
        Open the content as a binary stream. The caller closes it.

        Cached content is served from memory; a stream never fills the cache.
        """
        async def _open(absolute_uri: str, absolute_uri_kind: UriKind):
            return await self.handler.read_to_stream(absolute_uri, absolute_uri_kind), None

        return await run_with_online_cache(
            self,
            _open,
            lambda content: (io.BytesIO(content.data), content.encoding),
            use_cache_if_online,
            allowed_uri_kinds,
            base_directory
        )

    async def read_to_string(
        self,
        use_cache_if_online: bool = False,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> str:
        """Read and decode the content with its encoding, UTF-8 when unknown."""
        data, encoding = await self.read_to_bytes(
            use_cache_if_online, allowed_uri_kinds, base_directory
        )
        return data.decode(encoding or 'utf-8')

    async def try_get_file_name(self) -> Optional[str]:
        return await self.handler.try_get_file_name(self.file_uri.original_uri)

    def __repr__(self) -> str:
        return f"UniversalFile({self.file_uri!r})"
