"""Logging setup for the vidnorm CLI.

configure_logging() installs vidnorm's handlers on the root logger. A
second call replaces the handlers the first one installed; handlers that
belong to an embedding application are left in place.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from vidnorm.logging.context import RequestContextFilter
from vidnorm.logging.handlers import JSONFormatter, TextFormatter

if TYPE_CHECKING:
    from vidnorm.config.models import LoggingConfig

HANDLER_NAME = "vidnorm"


def _remove_own_handlers(root: logging.Logger) -> None:
    for handler in root.handlers[:]:
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()


def _open_log_file(file: Path, config: LoggingConfig) -> logging.Handler | None:
    """Rotating handler for file, or None if it cannot be opened."""
    path = Path(file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Could not open log file {file}: {e}\n")
        return None


def configure_logging(config: LoggingConfig) -> list[logging.Handler]:
    """Install vidnorm's log handlers as described by config.

    Output goes to the rotating log file when one is configured, and to
    stderr when include_stderr is set or the file cannot be opened.

    Returns:
        The installed handlers.
    """
    level = logging.getLevelName(config.level.upper())
    root = logging.getLogger()
    root.setLevel(level)
    _remove_own_handlers(root)

    formatter: logging.Formatter = (
        JSONFormatter() if config.format.casefold() == "json" else TextFormatter()
    )

    handlers: list[logging.Handler] = []
    if config.file:
        file_handler = _open_log_file(config.file, config)
        if file_handler is not None:
            handlers.append(file_handler)
    if config.include_stderr or not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.set_name(HANDLER_NAME)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(RequestContextFilter())
        root.addHandler(handler)
    return handlers
