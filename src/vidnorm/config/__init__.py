"""Configuration management for vidnorm.

Configuration is layered with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (VIDNORM_*)
3. Config file (~/.vidnorm/config.toml)
4. Default values (lowest priority)
"""

from vidnorm.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from vidnorm.config.env import EnvReader
from vidnorm.config.loader import (
    TomlParseError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from vidnorm.config.models import (
    LoggingConfig,
    ProcessingConfig,
    ToolPathsConfig,
    VidnormConfig,
)

__all__ = [
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "LoggingConfig",
    "ProcessingConfig",
    "TomlParseError",
    "ToolPathsConfig",
    "VidnormConfig",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    "source_from_env",
    "source_from_file",
]
