"""
Logging system for unifiles.

Features:
- Extra TRACE level below DEBUG (resolution decisions are logged there)
- Text and JSON formats
- Optional daily-rotated log files (off by default)
- Context enrichment and operation timers
- Colored console output

Environment:
    UNIFILES_LOG_LEVEL      console level (default WARNING)
    UNIFILES_LOG_CONSOLE    true/false (default true)
    UNIFILES_LOG_COLORED    true/false (default true)
    UNIFILES_LOG_FILE       true/false (default false)
    UNIFILES_LOG_JSON       true/false (default false)
    UNIFILES_LOG_DIR        directory for log files (default 'logs')
    UNIFILES_SUPPRESS_LOGS  '1' disables every handler

Usage:
    from unifiles.logger import get_logger

    logger = get_logger(__name__)
    logger.debug("Reading file", extra={'path': path})

    with logger.context(handler="basic"):
        logger.info("Resolved uri")

    with logger.timer("http_get"):
        response = await client.get(url)
"""

import json
import logging
import logging.handlers
import os
import sys
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = 'unifiles'

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


class ColoredFormatter(logging.Formatter):
    """Formatter coloring the level name on a tty."""

    COLORS = {
        'TRACE': '\033[36m',
        'DEBUG': '\033[34m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, 'no_color') or not sys.stdout.isatty():
            return super().format(record)

        original_levelname = record.levelname
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname:8}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }

        if hasattr(record, 'context'):
            log_data['context'] = record.context

        if hasattr(record, 'duration_ms'):
            log_data['duration_ms'] = record.duration_ms

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


class ContextEnrichedLogger(logging.LoggerAdapter):
    """Logger adapter adding a context stack, timers and the TRACE level."""

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})
        self._context_stack = []
        self._lock = Lock()

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if self._context_stack:
            merged_context = {}
            for ctx in self._context_stack:
                merged_context.update(ctx)
            kwargs.setdefault('extra', {})['context'] = merged_context
        return msg, kwargs

    @contextmanager
    def context(self, **kwargs):
        """Add temporary context to every record logged inside the block."""
        with self._lock:
            self._context_stack.append(kwargs)
        try:
            yield
        finally:
            with self._lock:
                self._context_stack.pop()

    @contextmanager
    def timer(self, operation: str, slow_threshold_ms: Optional[float] = None):
        """
        Time the enclosed block.

        Args:
            operation: Name of the timed operation
            slow_threshold_ms: Warn above this duration (default from UNIFILES_SLOW_THRESHOLD)
        """
        if slow_threshold_ms is None:
            slow_threshold_ms = float(os.getenv('UNIFILES_SLOW_THRESHOLD', '1000'))

        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            extra = {'duration_ms': duration_ms, 'operation': operation}
            if duration_ms >= slow_threshold_ms:
                self.warning(f"Slow operation: {operation}", extra=extra)
            else:
                self.debug(f"Completed: {operation}", extra=extra)

    def trace(self, msg: str, *args, **kwargs):
        """Log with TRACE level."""
        self.log(TRACE_LEVEL, msg, *args, **kwargs)


class LoggerManager:
    """Owns the handlers attached to the 'unifiles' logger."""

    def __init__(self, log_dir: Optional[str] = None):
        self._loggers: Dict[str, ContextEnrichedLogger] = {}
        self._suppress_logs = os.getenv('UNIFILES_SUPPRESS_LOGS', '') == '1'
        self._load_config(log_dir)
        self._setup_root_logger()

    def _load_config(self, log_dir: Optional[str] = None):
        if log_dir is None:
            log_dir = os.getenv('UNIFILES_LOG_DIR', 'logs')
        self._log_dir = Path(log_dir).expanduser()

        self._config = {
            'level': os.getenv('UNIFILES_LOG_LEVEL', 'WARNING').upper(),
            'console': _env_flag('UNIFILES_LOG_CONSOLE', 'true'),
            'colored': _env_flag('UNIFILES_LOG_COLORED', 'true'),
            'file': _env_flag('UNIFILES_LOG_FILE', 'false'),
            'json': _env_flag('UNIFILES_LOG_JSON', 'false'),
            'backup_count': int(os.getenv('UNIFILES_LOG_BACKUP_COUNT', '7')),
            'text_format': '[{asctime}] {levelname:8} {name:30} {message}',
            'date_format': '%Y-%m-%d %H:%M:%S',
        }

    def _setup_root_logger(self):
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(TRACE_LEVEL)
        for handler in root_logger.handlers[:]:
            handler.close()
            root_logger.removeHandler(handler)

        if self._suppress_logs:
            root_logger.addHandler(logging.NullHandler())
            return

        level = self._config['level']
        level_value = TRACE_LEVEL if level == 'TRACE' else getattr(logging, level, logging.WARNING)
        formatter_args = dict(
            fmt=self._config['text_format'],
            datefmt=self._config['date_format'],
            style='{'
        )

        if self._config['console']:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level_value)
            if self._config['colored']:
                console_handler.setFormatter(ColoredFormatter(**formatter_args))
            else:
                console_handler.setFormatter(logging.Formatter(**formatter_args))
            root_logger.addHandler(console_handler)

        if self._config['file'] or self._config['json']:
            self._log_dir.mkdir(parents=True, exist_ok=True)

        if self._config['file']:
            file_handler = logging.handlers.TimedRotatingFileHandler(
                filename=self._log_dir / "unifiles.log",
                when='midnight',
                interval=1,
                backupCount=self._config['backup_count'],
                encoding='utf-8'
            )
            file_handler.setLevel(TRACE_LEVEL)
            file_handler.setFormatter(logging.Formatter(
                fmt='[{asctime}] {levelname:8} {name:30} {funcName:20} {filename}:{lineno} - {message}',
                datefmt=self._config['date_format'],
                style='{'
            ))
            root_logger.addHandler(file_handler)

        if self._config['json']:
            json_file = self._log_dir / f"unifiles_{datetime.now():%Y%m%d}.json"
            json_handler = logging.FileHandler(json_file, encoding='utf-8')
            json_handler.setLevel(logging.DEBUG)
            json_handler.setFormatter(JSONFormatter())
            root_logger.addHandler(json_handler)

    def get_logger(self, name: str) -> ContextEnrichedLogger:
        if not name.startswith(ROOT_LOGGER_NAME):
            name = f'{ROOT_LOGGER_NAME}.{name}'

        if name not in self._loggers:
            self._loggers[name] = ContextEnrichedLogger(logging.getLogger(name))
        return self._loggers[name]

    def set_level(self, level: str, module: Optional[str] = None):
        level = level.upper()
        level_value = TRACE_LEVEL if level == 'TRACE' else getattr(logging, level, logging.INFO)

        if module:
            if not module.startswith(ROOT_LOGGER_NAME):
                module = f'{ROOT_LOGGER_NAME}.{module}'
            logging.getLogger(module).setLevel(level_value)
        else:
            root_logger = logging.getLogger(ROOT_LOGGER_NAME)
            for handler in root_logger.handlers:
                if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                    handler.setLevel(level_value)

    def reconfigure(self, log_dir: Optional[str] = None):
        """Rebuild handlers from the environment, optionally moving log files."""
        self._suppress_logs = os.getenv('UNIFILES_SUPPRESS_LOGS', '') == '1'
        self._load_config(log_dir)
        self._setup_root_logger()


_manager = LoggerManager()


def get_logger(name: str = __name__) -> ContextEnrichedLogger:
    """
    Get a logger under the 'unifiles' namespace.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        ContextEnrichedLogger with context, timer and trace support
    """
    return _manager.get_logger(name)


def set_level(level: str, module: Optional[str] = None):
    """
    Set console level, or the level of one module logger.

    Example:
        >>> set_level('DEBUG')
        >>> set_level('TRACE', 'unifiles.resolver')
    """
    _manager.set_level(level, module)


def reconfigure_logger(log_dir: Optional[str] = None):
    """Re-read UNIFILES_LOG_* and rebuild handlers (called by load_config)."""
    _manager.reconfigure(log_dir)


def init_logging(
    level: str = 'INFO',
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = False
):
    """
    Initialize logging with a simple configuration.

    Args:
        level: Console log level
        log_dir: Directory for log files
        console: Enable console output
        file: Enable rotating file output
    """
    if log_dir:
        os.environ['UNIFILES_LOG_DIR'] = log_dir

    os.environ['UNIFILES_LOG_LEVEL'] = level
    os.environ['UNIFILES_LOG_CONSOLE'] = 'true' if console else 'false'
    os.environ['UNIFILES_LOG_FILE'] = 'true' if file else 'false'

    reconfigure_logger(log_dir)
