"""
unifiles - Universal local, online and content-addressed file references

Resolve a uri string that may be a local path, a web url or a content-store
address to exactly one absolute form, then read it through one interface.
"""

__version__ = "0.1.0-dev"
__license__ = "MIT"

VERSION = __version__

from unifiles.config import Config, get_config, get_provider, load_config, reload_config
from unifiles.errors import (
    AmbiguousUriKindError,
    BaseDirectoryNotAbsoluteError,
    HandlerNotRegisteredError,
    HandlerRegistryError,
    HandlerValidationError,
    InvalidUriError,
    InvalidUriKindError,
    MissingBaseDirectoryError,
    OnlineResourceError,
    UniversalFilesError,
    UnresolvableUriKindError,
    UnsupportedOperationError,
    UriResolutionError,
)
from unifiles.files import UniversalFile
from unifiles.handlers import BasicHandler, FileContent, Handler, SwarmHandler
from unifiles.kinds import AbsoluteUri, UriKind
from unifiles.provider import UniversalFileProvider
from unifiles.uri import UniversalUri

__all__ = [
    'AbsoluteUri',
    'AmbiguousUriKindError',
    'BaseDirectoryNotAbsoluteError',
    'BasicHandler',
    'Config',
    'FileContent',
    'Handler',
    'HandlerNotRegisteredError',
    'HandlerRegistryError',
    'HandlerValidationError',
    'InvalidUriError',
    'InvalidUriKindError',
    'MissingBaseDirectoryError',
    'OnlineResourceError',
    'SwarmHandler',
    'UniversalFile',
    'UniversalFileProvider',
    'UniversalFilesError',
    'UniversalUri',
    'UnresolvableUriKindError',
    'UnsupportedOperationError',
    'UriKind',
    'UriResolutionError',
    'get_config',
    'get_provider',
    'load_config',
    'reload_config',
]
