"""
Handler protocol.

A handler implements one family of uris (local + HTTP, content-addressed
store, ...). The resolution core only needs the three synchronous methods
(classification, resolution, parent directory); the async methods are byte
I/O on already resolved absolute uris.
"""

from typing import BinaryIO, NamedTuple, Optional, Protocol, Tuple, runtime_checkable

from unifiles.kinds import AbsoluteUri, UriKind


class FileContent(NamedTuple):
    """
    Downloaded or read content.

    Attributes:
        data: Raw bytes
        encoding: Python codec name from the source charset, if known
    """
    data: bytes
    encoding: Optional[str] = None


HANDLER_METHODS = (
    'get_uri_kind',
    'uri_to_absolute_uri',
    'try_get_parent_directory',
    'exists',
    'get_byte_size',
    'read_to_bytes',
    'read_to_stream',
    'try_get_file_name',
)


@runtime_checkable
class Handler(Protocol):
    """
    Protocol for uri handlers.

    Every handler must be usable by UniversalUri and UniversalFile
    without the caller knowing which family it belongs to.
    """

    @property
    def name(self) -> str:
        """Registry tag of the handler family (e.g. 'basic', 'swarm')."""
        ...

    def get_uri_kind(self, uri: str) -> UriKind:
        """
        Classify a uri without validating it exists.

        Args:
            uri: Raw uri string

        Returns:
            Set of kinds the uri could be (NONE only for an empty string)
        """
        ...

    def uri_to_absolute_uri(
        self,
        original_uri: str,
        base_directory: Optional[str],
        uri_kind: UriKind
    ) -> AbsoluteUri:
        """
        Resolve a uri whose kind is already narrowed to one primitive kind.

        Raises:
            BaseDirectoryNotAbsoluteError: If kind may be relative and base isn't absolute
            UnresolvableUriKindError: If uri_kind isn't a single primitive kind
        """
        ...

    def try_get_parent_directory(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Optional[AbsoluteUri]:
        """
        Parent directory of an absolute uri, None if it is a root.

        Raises:
            InvalidUriKindError: If kind isn't absolute
            UnsupportedOperationError: If family has no directories
        """
        ...

    async def exists(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[bool, Optional[FileContent]]:
        """Check existence. May return downloaded content usable as cache."""
        ...

    async def get_byte_size(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[int, Optional[FileContent]]:
        """Size in bytes. May return downloaded content usable as cache."""
        ...

    async def read_to_bytes(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> FileContent:
        """Read whole content into memory."""
        ...

    async def read_to_stream(
        self,
        absolute_uri: str,
        absolute_uri_kind: UriKind
    ) -> Tuple[BinaryIO, Optional[str]]:
        """Open content as a binary stream. Caller closes it."""
        ...

    async def try_get_file_name(self, original_uri: str) -> Optional[str]:
        """File name of a uri, None if it points to a directory."""
        ...
