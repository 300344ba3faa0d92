"""
Configuration management for unifiles.

Loads configuration from TOML files with environment variable overrides.
Configuration is optional: every component works with its defaults, loading
a file only tunes handlers and logging.

Features:
- TOML-based configuration with path variable expansion
- Environment variable overrides (UNIFILES_*)
- Path variables: ${var} syntax for reusable paths
- Global UniversalFileProvider built from the loaded configuration

Usage:
    from unifiles.config import load_config, get_config, get_provider

    # Load from default location
    config = load_config()

    # Load from specific file
    config = load_config("unifiles.toml")

    # Access settings
    timeout = config.http.timeout_seconds
    provider = get_provider()

    # Environment variable override: UNIFILES_HTTP_TIMEOUT_SECONDS=5
"""

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from unifiles.logger import get_logger, reconfigure_logger, set_level
from unifiles.provider import UniversalFileProvider

logger = get_logger(__name__)

_config: Optional['Config'] = None
_provider: Optional[UniversalFileProvider] = None

VALID_LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# ============================================================================
# PATH VARIABLE EXPANSION
# ============================================================================

def _expand_path_variables(value: Any, variables: Dict[str, str], max_depth: int = 10) -> Any:
    """
    Expand ${var} syntax in configuration values recursively.

    Args:
        value: Value to expand (str, dict, list, or other)
        variables: Dictionary of variable names to values
        max_depth: Maximum recursion depth to prevent infinite loops

    Returns:
        Expanded value

    Examples:
        >>> vars = {"cache": "/var/cache", "downloads": "${cache}/unifiles"}
        >>> _expand_path_variables("${downloads}/tmp", vars)
        '/var/cache/unifiles/tmp'
    """
    if max_depth <= 0:
        raise ValueError("Maximum recursion depth reached in path variable expansion")

    if isinstance(value, str):
        def replace_var(match):
            var_name = match.group(1)
            if var_name not in variables:
                logger.warning(f"Unknown variable: ${{{var_name}}}")
                return match.group(0)

            var_value = variables[var_name]
            if isinstance(var_value, str) and '${' in var_value:
                return _expand_path_variables(var_value, variables, max_depth - 1)
            return str(var_value)

        return re.sub(r'\$\{([^}]+)\}', replace_var, value)

    elif isinstance(value, dict):
        return {k: _expand_path_variables(v, variables, max_depth) for k, v in value.items()}

    elif isinstance(value, list):
        return [_expand_path_variables(item, variables, max_depth) for item in value]

    return value


def _extract_path_variables(config_dict: Dict[str, Any]) -> Dict[str, str]:
    """
    Extract path variables from the [paths.variables] section.

    Example:
        [paths.variables]
        cache = "/var/cache"
        downloads = "${cache}/unifiles"

        -> {"cache": "/var/cache", "downloads": "/var/cache/unifiles"}
    """
    variables_section = config_dict.get("paths", {}).get("variables", {})
    if not variables_section:
        return {}

    # Variables without references first
    sorted_vars = sorted(variables_section.items(), key=lambda x: '${' in str(x[1]))

    expanded = {}
    for name, value in sorted_vars:
        expanded[name] = _expand_path_variables(value, expanded)

    logger.debug(f"Loaded {len(expanded)} path variables")
    return expanded


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    console_enabled: bool = True
    file_enabled: bool = False
    json_enabled: bool = False
    log_dir: str = "logs"
    slow_threshold_ms: float = 1000.0

    def __post_init__(self):
        if self.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {VALID_LOG_LEVELS}")
        self.level = self.level.upper()


@dataclass
class HttpConfig:
    """HTTP(S) client settings of the basic handler."""
    timeout_seconds: float = 30.0
    follow_redirects: bool = True
    user_agent: str = "unifiles"

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError(f"http.timeout_seconds must be positive: {self.timeout_seconds}")


@dataclass
class LocalConfig:
    """Local filesystem settings of the basic handler."""
    retry_attempts: int = 3
    retry_backoff_ms: int = 100

    def __post_init__(self):
        if self.retry_attempts < 1:
            raise ValueError(f"local.retry_attempts must be at least 1: {self.retry_attempts}")


@dataclass
class SwarmConfig:
    """Swarm gateway settings."""
    gateway_url: str = "http://localhost:1633"
    timeout_seconds: float = 30.0


@dataclass
class ResolutionConfig:
    """Defaults applied by the provider when building uris."""
    default_base_directory: Optional[str] = None
    default_handler: str = "basic"


@dataclass
class Config:
    """Main configuration container."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    local: LocalConfig = field(default_factory=LocalConfig)
    swarm: SwarmConfig = field(default_factory=SwarmConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)

    def __repr__(self) -> str:
        return (
            f"Config(log_level={self.logging.level}, "
            f"http_timeout={self.http.timeout_seconds}, "
            f"swarm_gateway={self.swarm.gateway_url}, "
            f"default_handler={self.resolution.default_handler})"
        )


def _find_config_file(config_path: Optional[Path] = None) -> Path:
    """
    Find configuration file.

    Search order:
    1. Provided path
    2. UNIFILES_CONFIG environment variable
    3. ./unifiles.toml
    4. ~/.unifiles/config.toml

    Raises:
        FileNotFoundError: If no config file found
    """
    if config_path:
        if config_path.exists():
            return config_path
        raise FileNotFoundError(f"Config file not found: {config_path}")

    env_path = os.getenv("UNIFILES_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path
        logger.warning(f"UNIFILES_CONFIG points to non-existent file: {env_path}")

    local_config = Path("unifiles.toml")
    if local_config.exists():
        return local_config

    home_config = Path.home() / ".unifiles" / "config.toml"
    if home_config.exists():
        return home_config

    raise FileNotFoundError(
        "No configuration file found. Searched:\n"
        "  - UNIFILES_CONFIG environment variable\n"
        "  - ./unifiles.toml\n"
        "  - ~/.unifiles/config.toml"
    )


def _parse_env_value(env_value: str) -> Any:
    if env_value.lower() in ("true", "yes"):
        return True
    if env_value.lower() in ("false", "no"):
        return False
    if env_value.lstrip('-').isdigit():
        return int(env_value)
    if '.' in env_value:
        try:
            return float(env_value)
        except ValueError:
            return env_value
    return env_value


def _apply_env_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to config.

    Format: UNIFILES_<SECTION>_<KEY>=value, KEY can contain underscores.

    Examples:
        UNIFILES_HTTP_TIMEOUT_SECONDS=5 -> http.timeout_seconds
        UNIFILES_SWARM_GATEWAY_URL=https://gateway.ethswarm.org -> swarm.gateway_url
        UNIFILES_RESOLUTION_DEFAULT_HANDLER=swarm -> resolution.default_handler

    UNIFILES_LOG_* variables belong to the logger and are not mapped here.
    """
    sections = ("logging", "http", "local", "swarm", "resolution")

    for env_key, env_value in os.environ.items():
        if not env_key.startswith("UNIFILES_"):
            continue

        for section in sections:
            prefix = f"UNIFILES_{section.upper()}_"
            if env_key.startswith(prefix):
                field_name = env_key[len(prefix):].lower()
                config_dict.setdefault(section, {})[field_name] = _parse_env_value(env_value)
                logger.debug(f"Applied env override: {env_key}={env_value} -> {section}.{field_name}")
                break
        else:
            logger.trace(f"Ignored unmapped env var: {env_key}")

    return config_dict


def _dict_to_config(config_dict: Dict[str, Any]) -> Config:
    logging_dict = config_dict.get("logging", {})
    http_dict = config_dict.get("http", {})
    local_dict = config_dict.get("local", {})
    swarm_dict = config_dict.get("swarm", {})
    resolution_dict = config_dict.get("resolution", {})

    return Config(
        logging=LoggingConfig(
            level=logging_dict.get("level", "WARNING"),
            console_enabled=logging_dict.get("console_enabled", True),
            file_enabled=logging_dict.get("file_enabled", False),
            json_enabled=logging_dict.get("json_enabled", False),
            log_dir=logging_dict.get("log_dir", "logs"),
            slow_threshold_ms=logging_dict.get("slow_threshold_ms", 1000.0)
        ),
        http=HttpConfig(
            timeout_seconds=http_dict.get("timeout_seconds", 30.0),
            follow_redirects=http_dict.get("follow_redirects", True),
            user_agent=http_dict.get("user_agent", "unifiles")
        ),
        local=LocalConfig(
            retry_attempts=local_dict.get("retry_attempts", 3),
            retry_backoff_ms=local_dict.get("retry_backoff_ms", 100)
        ),
        swarm=SwarmConfig(
            gateway_url=swarm_dict.get("gateway_url", "http://localhost:1633"),
            timeout_seconds=swarm_dict.get("timeout_seconds", 30.0)
        ),
        resolution=ResolutionConfig(
            default_base_directory=resolution_dict.get("default_base_directory"),
            default_handler=resolution_dict.get("default_handler", "basic")
        )
    )


def _apply_logging_config(config: LoggingConfig):
    os.environ['UNIFILES_LOG_LEVEL'] = config.level
    os.environ['UNIFILES_LOG_CONSOLE'] = 'true' if config.console_enabled else 'false'
    os.environ['UNIFILES_LOG_FILE'] = 'true' if config.file_enabled else 'false'
    os.environ['UNIFILES_LOG_JSON'] = 'true' if config.json_enabled else 'false'
    os.environ['UNIFILES_SLOW_THRESHOLD'] = str(config.slow_threshold_ms)
    reconfigure_logger(config.log_dir)
    set_level(config.level)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from TOML file with environment overrides.

    Args:
        config_path: Optional path to config file. If None, searches default locations.

    Returns:
        Config object with validated settings

    Raises:
        FileNotFoundError: If config file not found
        ValueError: If config parsing or validation fails

    Example:
        >>> config = load_config()
        >>> config = load_config("unifiles.toml")
    """
    global _config, _provider

    path = _find_config_file(Path(config_path) if config_path else None)
    logger.info(f"Loading configuration from: {path}")

    try:
        with open(path, "rb") as f:
            config_dict = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Failed to parse TOML: {e}")
        raise ValueError(f"Invalid TOML configuration: {e}") from e

    path_variables = _extract_path_variables(config_dict)
    if path_variables:
        logger.debug(f"Expanding path variables: {list(path_variables.keys())}")
        config_dict = _expand_path_variables(config_dict, path_variables)

    config_dict = _apply_env_overrides(config_dict)

    try:
        config = _dict_to_config(config_dict)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to build config: {e}")
        raise ValueError(f"Configuration validation failed: {e}") from e

    _apply_logging_config(config.logging)

    _config = config
    _provider = UniversalFileProvider(config)
    logger.info(f"Configuration loaded: {_config}")
    return _config


def get_config() -> Config:
    """
    Get current configuration.

    Raises:
        RuntimeError: If config not yet loaded
    """
    if _config is None:
        raise RuntimeError("Configuration not loaded. Call load_config() first.")
    return _config


def reload_config(config_path: Optional[str] = None) -> Config:
    """Drop the current configuration and provider, then load again."""
    global _config, _provider
    _config = None
    _provider = None
    return load_config(config_path)


def get_provider() -> UniversalFileProvider:
    """
    Get the provider built from the loaded configuration.

    Raises:
        RuntimeError: If config not yet loaded

    Example:
        >>> provider = get_provider()
        >>> file = provider.build_new_file("https://example.com/a.txt")
    """
    if _provider is None:
        raise RuntimeError("Provider not initialized. Call load_config() first.")
    return _provider
