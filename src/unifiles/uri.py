"""
Universal uri reference.

A UniversalUri is an immutable reference: the original string, the kinds it
can be interpreted as (already restricted by the allowed kinds given at
construction), and an optional default base directory. Resolution is a pure
function of these fields plus call-time arguments, so instances can be shared
between threads and files.

Usage:
    from unifiles import UniversalUri, UriKind

    uri = UniversalUri("docs/readme.md", UriKind.LOCAL)
    uri.to_absolute_uri()                  # AbsoluteUri('/cwd/docs/readme.md', LOCAL_ABSOLUTE)

    page = UniversalUri("img/logo.png", default_base_directory="https://example.com/site/")
    page.to_absolute_uri()                 # AbsoluteUri('https://example.com/site/img/logo.png', ONLINE_ABSOLUTE)
"""

from typing import Optional

from unifiles.errors import InvalidUriError
from unifiles.handlers.base import Handler
from unifiles.kinds import AbsoluteUri, UriKind
from unifiles.resolver import resolve_absolute_uri

_default_handler: Optional[Handler] = None


def _get_default_handler() -> Handler:
    global _default_handler
    if _default_handler is None:
        from unifiles.handlers.basic import BasicHandler
        _default_handler = BasicHandler()
    return _default_handler


class UniversalUri:
    """
    Reference to a local, online or content-addressed resource.

    Args:
        uri: Original uri (must not be empty or whitespace)
        handler: Handler family (default: shared BasicHandler)
        allowed_uri_kinds: Restriction applied to the classification
        default_base_directory: Base directory used when none is given at resolution

    Raises:
        InvalidUriError: If uri is empty, or no allowed kind matches it
    """

    __slots__ = ('_original_uri', '_uri_kind', '_default_base_directory', '_handler')

    def __init__(
        self,
        uri: str,
        handler: Optional[Handler] = None,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        default_base_directory: Optional[str] = None
    ):
        if uri is None or not str(uri).strip():
            raise InvalidUriError("Uri cannot be null or white spaces")

        self._handler = handler if handler is not None else _get_default_handler()
        self._original_uri = uri
        self._default_base_directory = default_base_directory
        self._uri_kind = self._handler.get_uri_kind(uri) & allowed_uri_kinds

        if self._uri_kind == UriKind.NONE:
            raise InvalidUriError(f"Invalid uri with allowed uri types: {uri!r}")

    @property
    def original_uri(self) -> str:
        return self._original_uri

    @property
    def uri_kind(self) -> UriKind:
        return self._uri_kind

    @property
    def default_base_directory(self) -> Optional[str]:
        return self._default_base_directory

    @property
    def handler(self) -> Handler:
        return self._handler

    def to_absolute_uri(
        self,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> AbsoluteUri:
        """
        Resolve to an absolute uri.

        Args:
            allowed_uri_kinds: Optional restriction of the original uri kind
            base_directory: Base directory, overrides the default one.
                Required for online relative uris

        Returns:
            AbsoluteUri (uri, kind) with kind LOCAL_ABSOLUTE or ONLINE_ABSOLUTE

        Raises:
            UriResolutionError: If the uri is ambiguous or can't be resolved
        """
        if base_directory is None:
            base_directory = self._default_base_directory
        return resolve_absolute_uri(
            self._original_uri,
            self._uri_kind,
            self._handler,
            allowed_uri_kinds,
            base_directory
        )

    def try_get_parent_directory(
        self,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None
    ) -> Optional[AbsoluteUri]:
        """
        Parent directory as an absolute uri.

        Returns:
            AbsoluteUri of the parent, or None if the uri is a root

        Raises:
            UriResolutionError: If the uri can't be resolved
            UnsupportedOperationError: If the handler family has no directories
        """
        absolute_uri, absolute_kind = self.to_absolute_uri(allowed_uri_kinds, base_directory)
        return self._handler.try_get_parent_directory(absolute_uri, absolute_kind)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, UniversalUri):
            return NotImplemented
        return (type(self._handler) is type(other._handler)
                and self._original_uri == other._original_uri
                and self._uri_kind == other._uri_kind
                and self._default_base_directory == other._default_base_directory)

    def __hash__(self) -> int:
        return hash((self._original_uri, self._uri_kind, self._default_base_directory))

    def __repr__(self) -> str:
        return (
            f"UniversalUri({self._original_uri!r}, kind={self._uri_kind.name}, "
            f"handler={getattr(self._handler, 'name', type(self._handler).__name__)})"
        )
