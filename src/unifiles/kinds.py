"""
Uri kind flags.

A classification is a *set* of kinds: a rooted path like ``/test.txt`` can be
both a local absolute path and an online relative path. A resolved uri always
carries exactly one primitive kind.

Usage:
    from unifiles.kinds import UriKind

    kind = UriKind.LOCAL_ABSOLUTE | UriKind.ONLINE_RELATIVE
    if kind & UriKind.LOCAL and kind & UriKind.ONLINE:
        ...  # ambiguous
"""

from enum import Flag
from typing import NamedTuple


class UriKind(Flag):
    """Kinds a uri string can be interpreted as."""
    NONE = 0
    LOCAL_ABSOLUTE = 1
    LOCAL_RELATIVE = 2
    ONLINE_ABSOLUTE = 4
    ONLINE_RELATIVE = 8

    ABSOLUTE = LOCAL_ABSOLUTE | ONLINE_ABSOLUTE
    RELATIVE = LOCAL_RELATIVE | ONLINE_RELATIVE
    LOCAL = LOCAL_ABSOLUTE | LOCAL_RELATIVE
    ONLINE = ONLINE_ABSOLUTE | ONLINE_RELATIVE
    ALL = ABSOLUTE | RELATIVE


PRIMITIVE_KINDS = (
    UriKind.LOCAL_ABSOLUTE,
    UriKind.LOCAL_RELATIVE,
    UriKind.ONLINE_ABSOLUTE,
    UriKind.ONLINE_RELATIVE,
)


def is_primitive(kind: UriKind) -> bool:
    """True if ``kind`` is exactly one of the four primitive kinds."""
    return kind in PRIMITIVE_KINDS


class AbsoluteUri(NamedTuple):
    """
    Result of a resolution.

    Attributes:
        uri: Canonical absolute uri (OS path or web uri)
        uri_kind: Either LOCAL_ABSOLUTE or ONLINE_ABSOLUTE
    """
    uri: str
    uri_kind: UriKind
