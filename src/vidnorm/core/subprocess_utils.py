"""Subprocess utilities for short-lived external tool invocations.

Used for ffprobe and the decode-only validation pass. The main transcode
run goes through the cancellable runner in vidnorm.executor.runner.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for ffmpeg/ffprobe
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished command."""

    stdout: str
    stderr: str
    returncode: int
    elapsed_seconds: float

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_command(
    args: list[str | Path],
    timeout: float | None = 120,
) -> CommandResult:
    """Run an external command and capture its text output.

    Output is decoded as UTF-8 with replacement so that non-UTF8 tags in
    media files never raise.

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Timeout in seconds, or None for no limit.

    Returns:
        CommandResult with stdout, stderr and the exit code.

    Raises:
        subprocess.TimeoutExpired: If the command times out. subprocess.run
            kills the child before raising.
        FileNotFoundError: If the executable does not exist.
    """
    str_args = [str(arg) for arg in args]
    command_name = Path(str_args[0]).name if str_args else "unknown"

    logger.debug(
        "Executing command: %s",
        " ".join(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )

    start_time = time.monotonic()
    try:
        result = subprocess.run(  # nosec B603 - args are built, never shell
            str_args,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "Command timed out after %ss: %s",
            timeout,
            " ".join(str_args[:3]) + ("..." if len(str_args) > 3 else ""),
            extra={"command": command_name, "timeout_seconds": timeout},
        )
        raise

    elapsed = time.monotonic() - start_time
    logger.debug(
        "Command completed",
        extra={
            "command": command_name,
            "elapsed_seconds": round(elapsed, 3),
            "returncode": result.returncode,
        },
    )
    return CommandResult(
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        returncode=result.returncode,
        elapsed_seconds=elapsed,
    )


def tail_lines(text: str | list[str], limit: int = 20) -> str:
    """Return the last ``limit`` non-empty lines of tool output."""
    lines = text.splitlines() if isinstance(text, str) else text
    kept = [line.rstrip("\n") for line in lines if line.strip()]
    return "\n".join(kept[-limit:])
