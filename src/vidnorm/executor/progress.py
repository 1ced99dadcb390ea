"""FFmpeg progress parsing.

Parses the status lines ffmpeg writes to stderr while encoding and turns
them into a monotonic completion fraction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass
class FFmpegProgress:
    """Parsed FFmpeg progress output."""

    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    out_time_us: int | None = None  # Output time in microseconds
    speed: str | None = None

    @property
    def out_time_seconds(self) -> float | None:
        """Get output time in seconds."""
        if self.out_time_us is not None:
            return self.out_time_us / 1_000_000
        return None


PROGRESS_PATTERNS = {
    "frame": re.compile(r"frame=\s*(\d+)"),
    "fps": re.compile(r"fps=\s*([\d.]+)"),
    "bitrate": re.compile(r"bitrate=\s*([^\s]+)"),
    "speed": re.compile(r"speed=\s*([^\s]+)"),
}

_TIME_PATTERN = re.compile(r"time=(-?)(\d+):(\d+):(\d+)\.(\d+)")


def _convert_progress_value(key: str, value: str) -> int | float | str | None:
    if key == "frame":
        try:
            return int(value)
        except ValueError:
            return None
    if key == "fps":
        try:
            return float(value)
        except ValueError:
            return None
    return value if value != "N/A" else None


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Parse FFmpeg stderr progress line.

    FFmpeg outputs progress to stderr in format:
    frame= 1234 fps= 30 ... time=00:01:23.45 bitrate=5000kbits/s speed=2.0x

    Audio-only runs omit ``frame=`` but still report ``time=``.

    Args:
        line: A line from FFmpeg stderr.

    Returns:
        Parsed FFmpegProgress or None if not a progress line.
    """
    if "frame=" not in line and "time=" not in line:
        return None

    result = FFmpegProgress()
    for key, pattern in PROGRESS_PATTERNS.items():
        match = pattern.search(line)
        if match:
            converted = _convert_progress_value(key, match.group(1))
            if converted is not None:
                setattr(result, key, converted)

    time_match = _TIME_PATTERN.search(line)
    if time_match:
        # Fractional digits vary with ffmpeg version; treat as a decimal
        fraction = time_match.group(5)
        micros = int(fraction.ljust(6, "0")[:6])
        total = (
            int(time_match.group(2)) * 3600
            + int(time_match.group(3)) * 60
            + int(time_match.group(4))
        ) * 1_000_000 + micros
        result.out_time_us = 0 if time_match.group(1) else total

    if result.frame is None and result.out_time_us is None:
        return None
    return result


class ProgressTracker:
    """Converts progress samples into a completion fraction.

    The fraction is clamped to [0, 1] and never decreases, even when
    ffmpeg reports a timestamp earlier than a previous one.
    """

    def __init__(self, duration_seconds: float | None) -> None:
        self._duration = duration_seconds
        self._fraction = 0.0

    @property
    def fraction(self) -> float:
        return self._fraction

    def update(self, progress: FFmpegProgress) -> float:
        """Fold in a sample and return the current fraction."""
        seconds = progress.out_time_seconds
        if self._duration and self._duration > 0 and seconds is not None:
            value = min(1.0, max(0.0, seconds / self._duration))
            if value > self._fraction:
                self._fraction = value
        return self._fraction

    def finish(self) -> float:
        self._fraction = 1.0
        return self._fraction
