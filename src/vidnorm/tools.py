"""External tool discovery.

ffmpeg and ffprobe are resolved from the configured path first, then from
PATH.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from vidnorm.config.models import VidnormConfig
from vidnorm.exceptions import VidnormError

logger = logging.getLogger(__name__)


class ToolNotFoundError(VidnormError):
    """Raised when a required external tool cannot be located."""

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(
            f"Required tool not available: {tool_name}. "
            f"Install ffmpeg or set VIDNORM_{tool_name.upper()}_PATH."
        )


def find_tool(tool_name: str, config: VidnormConfig | None = None) -> Path | None:
    """Locate a tool, or return None if it is not available.

    Args:
        tool_name: Executable name ("ffmpeg" or "ffprobe").
        config: Configuration holding explicit tool paths.

    Returns:
        Path to the executable, or None.
    """
    if config is not None:
        configured = config.get_tool_path(tool_name)
        if configured is not None:
            if configured.exists():
                return configured
            logger.warning(
                "Configured %s path does not exist: %s", tool_name, configured
            )

    found = shutil.which(tool_name)
    return Path(found) if found else None


def require_tool(tool_name: str, config: VidnormConfig | None = None) -> Path:
    """Locate a tool, raising if it is not available.

    Raises:
        ToolNotFoundError: If the tool cannot be found.
    """
    path = find_tool(tool_name, config)
    if path is None:
        raise ToolNotFoundError(tool_name)
    return path
