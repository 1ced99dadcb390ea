"""Configuration builder with explicit layering.

ConfigBuilder composes VidnormConfig from several ConfigSources. Later
sources override earlier ones, but only for values they actually set.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from vidnorm.config.env import EnvReader
from vidnorm.config.models import (
    LoggingConfig,
    ProcessingConfig,
    ToolPathsConfig,
    VidnormConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Tool paths
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None

    # Processing config
    processing_timeout: int | None = None
    processing_validate_timeout: int | None = None
    processing_temp_directory: Path | None = None
    processing_default_preset: str | None = None


class ConfigBuilder:
    """Builds VidnormConfig by layering ConfigSources with precedence.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config), source_name="file")
        builder.apply(source_from_env(reader), source_name="env")
        builder.apply(cli_source, source_name="cli")
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}
        self._origins: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "unknown") -> None:
        """Apply a configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
            source_name: Label recorded as the origin of each value set.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value
                self._origins[field_obj.name] = source_name

    def origin_of(self, key: str) -> str:
        """Return which source set a value ("default" if none did)."""
        return self._origins.get(key, "default")

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> VidnormConfig:
        """Build the final VidnormConfig with defaults for unset values."""
        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )

        # 0 means "no limit" in files and env, convert to None
        timeout = self._get("processing_timeout", 1800)
        validate_timeout = self._get("processing_validate_timeout", 1800)
        processing = ProcessingConfig(
            timeout_seconds=timeout if timeout else None,
            validate_timeout_seconds=validate_timeout if validate_timeout else None,
            temp_directory=self._get("processing_temp_directory", None),
            default_preset=self._get("processing_default_preset", "preserve"),
        )

        return VidnormConfig(
            tools=tools,
            logging=logging_config,
            processing=processing,
        )


def _optional_path(value: str | None) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from a parsed TOML config file.

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    tools = file_config.get("tools", {})
    logging_conf = file_config.get("logging", {})
    processing = file_config.get("processing", {})

    return ConfigSource(
        ffmpeg_path=_optional_path(tools.get("ffmpeg")),
        ffprobe_path=_optional_path(tools.get("ffprobe")),
        logging_level=logging_conf.get("level"),
        logging_file=_optional_path(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
        processing_timeout=processing.get("timeout_seconds"),
        processing_validate_timeout=processing.get("validate_timeout_seconds"),
        processing_temp_directory=_optional_path(processing.get("temp_directory")),
        processing_default_preset=processing.get("default_preset"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from VIDNORM_* environment variables.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    return ConfigSource(
        ffmpeg_path=reader.get_path("VIDNORM_FFMPEG_PATH"),
        ffprobe_path=reader.get_path("VIDNORM_FFPROBE_PATH"),
        logging_level=reader.get_str("VIDNORM_LOG_LEVEL"),
        logging_file=reader.get_path("VIDNORM_LOG_FILE", must_exist=False),
        logging_format=reader.get_str("VIDNORM_LOG_FORMAT"),
        logging_include_stderr=reader.get_bool("VIDNORM_LOG_STDERR"),
        processing_timeout=reader.get_int("VIDNORM_TIMEOUT"),
        processing_temp_directory=reader.get_path("VIDNORM_TEMP_DIR"),
        processing_default_preset=reader.get_str("VIDNORM_PRESET"),
    )
