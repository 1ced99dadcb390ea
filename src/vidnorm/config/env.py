"""Environment variable reader with dependency injection support.

EnvReader reads and converts VIDNORM_* variables. Tests pass a plain dict
instead of touching os.environ.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class EnvReader:
    """Environment variable reader with type conversion.

    Invalid values are logged and replaced by the default rather than
    raising, so a bad variable never prevents startup.

    Example:
        reader = EnvReader(env={"VIDNORM_TIMEOUT": "600"})
        reader.get_int("VIDNORM_TIMEOUT")  # 600
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the environment reader.

        Args:
            env: Optional mapping to use instead of os.environ.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string, treating empty values as unset."""
        value = self._env.get(var)
        if value is None or value == "":
            return default
        return value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer.

        Args:
            var: Environment variable name.
            default: Default value if not set or invalid.

        Returns:
            Parsed integer value, or default if not set or invalid.
        """
        value = self.get_str(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean; "true", "1", "yes" and "on" are true."""
        value = self.get_str(var)
        if value is None:
            return default
        return value.casefold() in _TRUE_VALUES

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Get a path.

        Args:
            var: Environment variable name.
            must_exist: If True, ignore (with a warning) paths that do not exist.
            default: Default value if not set or missing.

        Returns:
            Expanded Path, or default.
        """
        value = self.get_str(var)
        if value is None:
            return default

        path = Path(value).expanduser()
        if must_exist and not path.exists():
            logger.warning(
                "Environment variable %s points to non-existent path: %s",
                var,
                value,
            )
            return default
        return path
