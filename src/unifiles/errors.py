"""
Exceptions raised by unifiles.

Resolution errors are deterministic: the same uri, allowed kinds and base
directory always produce the same error.
"""


class UniversalFilesError(Exception):
    """Base error for unifiles"""
    pass


class InvalidUriError(UniversalFilesError, ValueError):
    """Empty uri, or allowed kinds excluding every possible interpretation"""
    pass


class UriResolutionError(UniversalFilesError):
    """A uri can't be resolved to an absolute uri"""
    pass


class UnresolvableUriKindError(UriResolutionError):
    """No valid uri kind remains after applying restrictions"""
    pass


class AmbiguousUriKindError(UriResolutionError):
    """Uri could be both local and online, restrict allowed kinds"""
    pass


class MissingBaseDirectoryError(UriResolutionError):
    """Online relative uri without any base directory"""
    pass


class BaseDirectoryNotAbsoluteError(UriResolutionError):
    """Base directory doesn't resolve to a single absolute kind"""
    pass


class InvalidUriKindError(UriResolutionError):
    """Operation received a kind that is not well defined and absolute"""
    pass


class UnsupportedOperationError(UniversalFilesError, NotImplementedError):
    """Operation not available for a handler family"""
    pass


class OnlineResourceError(UniversalFilesError, OSError):
    """Online resource can't be retrieved"""
    pass


class HandlerRegistryError(UniversalFilesError):
    """Handler registry misuse"""
    pass


class HandlerNotRegisteredError(HandlerRegistryError, KeyError):
    """No handler registered for a tag"""
    pass


class HandlerValidationError(HandlerRegistryError):
    """Handler doesn't implement the Handler protocol"""
    pass
