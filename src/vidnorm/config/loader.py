"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to get_config)
2. Environment variables (VIDNORM_*)
3. Config file (~/.vidnorm/config.toml)
4. Default values

Environment variables:
- VIDNORM_CONFIG_PATH: Path to config file (overrides default location)
- VIDNORM_FFMPEG_PATH: Path to ffmpeg executable
- VIDNORM_FFPROBE_PATH: Path to ffprobe executable
- VIDNORM_LOG_LEVEL: debug, info, warning or error
- VIDNORM_LOG_FORMAT: text or json
- VIDNORM_LOG_FILE: Log file path
- VIDNORM_LOG_STDERR: Also log to stderr when a log file is set
- VIDNORM_TIMEOUT: Worker timeout in seconds (0 = no limit)
- VIDNORM_TEMP_DIR: Directory for intermediate files
- VIDNORM_PRESET: Default built-in preset name
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path

from vidnorm.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from vidnorm.config.env import EnvReader
from vidnorm.config.models import VidnormConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".vidnorm"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class TomlParseError(Exception):
    """Raised when a config file exists but cannot be parsed."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"Invalid TOML in {path}: {message}")


def get_default_config_path() -> Path:
    """Get the config file path, honouring VIDNORM_CONFIG_PATH."""
    env_path = os.environ.get("VIDNORM_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def _read_toml(path: Path, strict: bool) -> dict:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as e:
        if strict:
            raise TomlParseError(path, str(e)) from e
        logger.warning("Ignoring unparseable config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file.

    Results are cached with mtime-based invalidation.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise TomlParseError on parse failures.
                If False (default), return empty dict on errors.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.

    Raises:
        TomlParseError: When strict=True and the file cannot be parsed.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = _read_toml(path, strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    cli_source: ConfigSource | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> VidnormConfig:
    """Get vidnorm configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides VIDNORM_CONFIG_PATH).
        cli_source: Values given on the command line (highest precedence).
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise TomlParseError on config file parse failures.

    Returns:
        VidnormConfig with merged configuration.

    Raises:
        TomlParseError: When strict=True and the config file cannot be parsed.
    """
    reader = env_reader or EnvReader()
    file_config = load_config_file(config_path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name="file")
    builder.apply(source_from_env(reader), source_name="env")
    if cli_source is not None:
        builder.apply(cli_source, source_name="cli")

    config = builder.build()
    logger.debug(
        "Configuration loaded: log_level=%s (%s), timeout=%s (%s)",
        config.logging.level,
        builder.origin_of("logging_level"),
        config.processing.timeout_seconds,
        builder.origin_of("processing_timeout"),
    )
    return config
