"""
Uri kind narrowing and resolution orchestration.

These functions are independent of any handler family: they receive the
family's classifier (``handler.get_uri_kind``) and delegate the final,
unambiguous resolution to ``handler.uri_to_absolute_uri``.

Narrowing order:
1. intersect the uri kind with allowed kinds
2. if relative kinds remain and a base directory is given, the base decides
   the family (local or online); a non absolute base is an error
3. nothing left -> error
4. both local and online left -> error, never guessed
5. online relative left without base directory -> error
"""

from typing import Callable, Optional, TYPE_CHECKING

from unifiles.errors import (
    AmbiguousUriKindError,
    BaseDirectoryNotAbsoluteError,
    MissingBaseDirectoryError,
    UnresolvableUriKindError,
)
from unifiles.kinds import AbsoluteUri, UriKind
from unifiles.logger import get_logger

if TYPE_CHECKING:
    from unifiles.handlers.base import Handler

logger = get_logger(__name__)


def narrow_uri_kind(
    uri_kind: UriKind,
    allowed_uri_kinds: UriKind,
    base_directory: Optional[str],
    classify: Callable[[str], UriKind]
) -> UriKind:
    """
    Narrow a classified uri kind to exactly one primitive kind.

    Args:
        uri_kind: Classified kinds of the uri
        allowed_uri_kinds: Restriction for the current resolution
        base_directory: Base directory, if any
        classify: Classifier used for the base directory

    Returns:
        Single primitive UriKind

    Raises:
        BaseDirectoryNotAbsoluteError: If base directory is needed and not absolute
        UnresolvableUriKindError: If no kind survives restrictions
        AmbiguousUriKindError: If uri could still be both local and online
        MissingBaseDirectoryError: If uri is online relative without base directory
    """
    actual = uri_kind & allowed_uri_kinds

    if actual & UriKind.RELATIVE and base_directory is not None:
        base_kind = classify(base_directory) & UriKind.ABSOLUTE
        if base_kind == UriKind.LOCAL_ABSOLUTE:
            actual &= UriKind.LOCAL
        elif base_kind == UriKind.ONLINE_ABSOLUTE:
            actual &= UriKind.ONLINE
        else:
            raise BaseDirectoryNotAbsoluteError(
                f"Base directory can only be absolute: {base_directory!r}"
            )

    if actual == UriKind.NONE:
        raise UnresolvableUriKindError("Can't identify a valid uri kind")

    if actual & UriKind.LOCAL and actual & UriKind.ONLINE:
        raise AmbiguousUriKindError(
            "Unable to distinguish between local and online uri. "
            "Try to restrict allowed uri kinds"
        )

    if actual & UriKind.ONLINE_RELATIVE and base_directory is None:
        raise MissingBaseDirectoryError(
            "Can't resolve online relative uri. Specify a base directory"
        )

    return actual


def resolve_absolute_uri(
    original_uri: str,
    uri_kind: UriKind,
    handler: "Handler",
    allowed_uri_kinds: UriKind = UriKind.ALL,
    base_directory: Optional[str] = None
) -> AbsoluteUri:
    """
    Resolve ``original_uri`` to its absolute form with ``handler``.

    Args:
        original_uri: Uri as written by the caller
        uri_kind: Classified kinds of ``original_uri``
        handler: Handler family providing classification and resolution
        allowed_uri_kinds: Restriction for this resolution
        base_directory: Base directory for relative uris

    Returns:
        AbsoluteUri with a LOCAL_ABSOLUTE or ONLINE_ABSOLUTE kind
    """
    actual = narrow_uri_kind(
        uri_kind, allowed_uri_kinds, base_directory, handler.get_uri_kind
    )
    logger.trace(
        "Narrowed uri kind",
        extra={'uri': original_uri, 'kind': actual.name, 'base_directory': base_directory}
    )
    return handler.uri_to_absolute_uri(original_uri, base_directory, actual)
