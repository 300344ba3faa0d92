"""
UniversalFileProvider - handler registry and file builders.

Architecture:
- Registry keyed by tag ('basic', 'swarm', ...), built-ins registered at construction
- Protocol validation at registration (and on first instantiation for plain factories)
- Lazy singletons: one handler instance per tag, built from the configuration
- Local materialization of any file (download to a local path)

Usage:
    provider = UniversalFileProvider()

    uri = provider.get_new_uri("docs/readme.md", UriKind.LOCAL)
    file = provider.build_new_file("https://example.com/a.txt")

    provider.register_handler('mock', MockHandler)
    file = provider.build_new_file("anything", handler='mock')

    local = await provider.to_local_file(file)
"""

import inspect
import ntpath
import os
import posixpath
import shutil
import tempfile
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

from unifiles.errors import (
    HandlerNotRegisteredError,
    HandlerValidationError,
    InvalidUriError,
)
from unifiles.files import UniversalFile
from unifiles.handlers.base import HANDLER_METHODS, Handler
from unifiles.handlers.basic import BasicHandler
from unifiles.handlers.swarm import SwarmHandler
from unifiles.kinds import UriKind
from unifiles.logger import get_logger
from unifiles.uri import UniversalUri

if TYPE_CHECKING:
    from unifiles.config import Config

logger = get_logger(__name__)

HandlerFactory = Callable[[], Handler]


def _safe_file_name(file_name: Optional[str]) -> Optional[str]:
    """Last component of a file name, None when nothing usable is left."""
    if file_name is None:
        return None
    file_name = ntpath.basename(posixpath.basename(file_name))
    if file_name in ('', '.', '..'):
        return None
    return file_name


def _validate_handler(candidate: Any, tag: str):
    """
    Check that a handler class or instance exposes every handler method.

    Raises:
        HandlerValidationError: If a method is missing
    """
    missing = [name for name in HANDLER_METHODS if not callable(getattr(candidate, name, None))]
    if missing:
        label = candidate.__name__ if inspect.isclass(candidate) else type(candidate).__name__
        raise HandlerValidationError(
            f"{label} missing required methods: {', '.join(missing)}\n"
            f"Required for handler '{tag}': {', '.join(HANDLER_METHODS)}"
        )
    logger.debug(f"Handler validation passed for '{tag}'")


class UniversalFileProvider:
    """
    Registry of uri handlers, and factory of uris and files.

    Args:
        config: Loaded Config used to build the built-in handlers (default: handler defaults)
    """

    def __init__(self, config: Optional['Config'] = None):
        self._config = config
        self._registry: Dict[str, HandlerFactory] = {}
        self._validated: Dict[str, bool] = {}
        self._instances: Dict[str, Handler] = {}

        self.register_handler('basic', self._build_basic_handler, validate=False)
        self.register_handler('swarm', self._build_swarm_handler, validate=False)

        logger.debug("UniversalFileProvider initialized", extra={'handlers': self.list_handlers()})

    # ------------------------------------------------------------------
    # Built-in handlers
    # ------------------------------------------------------------------

    def _build_basic_handler(self) -> BasicHandler:
        if self._config is None:
            return BasicHandler()
        return BasicHandler(
            timeout_seconds=self._config.http.timeout_seconds,
            follow_redirects=self._config.http.follow_redirects,
            user_agent=self._config.http.user_agent,
            retry_attempts=self._config.local.retry_attempts,
            retry_backoff_ms=self._config.local.retry_backoff_ms
        )

    def _build_swarm_handler(self) -> SwarmHandler:
        if self._config is None:
            return SwarmHandler()
        return SwarmHandler(
            gateway_url=self._config.swarm.gateway_url,
            timeout_seconds=self._config.swarm.timeout_seconds
        )

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_handler(self, tag: str, factory: HandlerFactory, validate: bool = True) -> None:
        """
        Register (or replace) a handler family.

        Args:
            tag: Registry key
            factory: Handler class or zero-argument callable returning a handler
            validate: Check the handler protocol. Classes are checked now,
                other factories on first instantiation

        Raises:
            HandlerValidationError: If the handler class misses a method
        """
        if validate and inspect.isclass(factory):
            _validate_handler(factory, tag)
            self._validated[tag] = True
        else:
            self._validated[tag] = not validate

        self._registry[tag] = factory
        self._instances.pop(tag, None)
        logger.info(f"Registered handler '{tag}' -> {getattr(factory, '__name__', repr(factory))}")

    def get_handler(self, tag: str) -> Handler:
        """
        Handler instance for a tag, built on first use.

        Raises:
            HandlerNotRegisteredError: If tag is unknown
            HandlerValidationError: If the built handler misses a method
        """
        if tag in self._instances:
            return self._instances[tag]

        if tag not in self._registry:
            raise HandlerNotRegisteredError(
                f"Handler '{tag}' not registered. Available: {self.list_handlers()}"
            )

        instance = self._registry[tag]()
        if not self._validated[tag]:
            _validate_handler(instance, tag)
            self._validated[tag] = True

        self._instances[tag] = instance
        logger.debug(f"Instantiated handler '{tag}'")
        return instance

    def list_handlers(self) -> List[str]:
        return list(self._registry.keys())

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _default_handler_tag(self) -> str:
        return self._config.resolution.default_handler if self._config else 'basic'

    def get_new_uri(
        self,
        uri: str,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        default_base_directory: Optional[str] = None,
        handler: Optional[str] = None
    ) -> UniversalUri:
        """
        Build a UniversalUri bound to a registered handler.

        Args:
            uri: Original uri
            allowed_uri_kinds: Restriction applied to the classification
            default_base_directory: Default base (falls back to the configured one)
            handler: Handler tag (default: configured default handler, 'basic')
        """
        if default_base_directory is None and self._config is not None:
            default_base_directory = self._config.resolution.default_base_directory

        return UniversalUri(
            uri,
            self.get_handler(handler or self._default_handler_tag()),
            allowed_uri_kinds,
            default_base_directory
        )

    def build_new_file(
        self,
        uri: Union[UniversalUri, str],
        allowed_uri_kinds: UriKind = UriKind.ALL,
        default_base_directory: Optional[str] = None,
        handler: Optional[str] = None
    ) -> UniversalFile:
        """Build a UniversalFile from an existing UniversalUri or a raw uri."""
        if not isinstance(uri, UniversalUri):
            uri = self.get_new_uri(uri, allowed_uri_kinds, default_base_directory, handler)
        return UniversalFile(uri)

    async def to_local_file(
        self,
        input_file: UniversalFile,
        allowed_uri_kinds: UriKind = UriKind.ALL,
        base_directory: Optional[str] = None,
        output_path: Optional[str] = None
    ) -> UniversalFile:
        """
        Materialize a file on the local filesystem.

        A basic file that can be read as local is returned as is. Anything
        else is copied to ``output_path``, or to the temp directory under its
        file name (a new temp file when it has none).

        Args:
            input_file: File to materialize
            allowed_uri_kinds: Restriction for the input resolution
            base_directory: Base directory for the input resolution
            output_path: Local absolute destination path

        Returns:
            Local UniversalFile

        Raises:
            InvalidUriError: If output_path isn't a local absolute path
        """
        if (isinstance(input_file.handler, BasicHandler)
                and input_file.file_uri.uri_kind & allowed_uri_kinds & UriKind.LOCAL):
            return input_file

        basic_handler = self.get_handler('basic')

        if output_path is not None:
            output_uri = UniversalUri(output_path, basic_handler, UriKind.LOCAL)
            if output_uri.uri_kind != UriKind.LOCAL_ABSOLUTE:
                raise InvalidUriError(f"Output path must be local and absolute: {output_path!r}")
        else:
            file_name = _safe_file_name(await input_file.try_get_file_name())

        input_stream, _ = await input_file.read_to_stream(
            allowed_uri_kinds=allowed_uri_kinds,
            base_directory=base_directory
        )

        with input_stream:
            if output_path is None:
                if file_name is None:
                    fd, temp_path = tempfile.mkstemp()
                    os.close(fd)
                else:
                    temp_path = os.path.join(tempfile.gettempdir(), file_name)
                output_uri = UniversalUri(temp_path, basic_handler, UriKind.LOCAL)

            destination = output_uri.to_absolute_uri().uri
            with logger.timer(f"to_local_file({destination})"):
                with open(destination, 'wb') as output_stream:
                    shutil.copyfileobj(input_stream, output_stream)

        logger.debug(
            "Materialized file locally",
            extra={'source': input_file.file_uri.original_uri, 'destination': destination}
        )
        return UniversalFile(output_uri)
