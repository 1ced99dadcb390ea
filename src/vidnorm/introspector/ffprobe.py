"""FFprobe-based implementation of MediaIntrospector protocol."""

import json
import logging
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from dataclasses import replace
from pathlib import Path

from vidnorm.core.formats import FASTSTART_FORMATS
from vidnorm.core.subprocess_utils import run_command, tail_lines
from vidnorm.domain.models import MediaDescriptor
from vidnorm.introspector.interface import MediaIntrospectionError
from vidnorm.introspector.layout import is_faststart, read_signature
from vidnorm.introspector.parsers import parse_ffprobe_output

logger = logging.getLogger(__name__)


class FFprobeIntrospector:
    """ffprobe-based implementation of MediaIntrospector protocol.

    Extracts container and stream metadata. The container format is always
    taken from the probe, never from the file name.
    """

    DEFAULT_TIMEOUT: int = 60

    def __init__(self, ffprobe_path: Path, timeout: int | None = None) -> None:
        """Initialize the introspector.

        Args:
            ffprobe_path: Path to the ffprobe executable
                (see vidnorm.tools.require_tool).
            timeout: Probe timeout in seconds. None uses DEFAULT_TIMEOUT.
        """
        self._ffprobe_path = ffprobe_path
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT

    def build_command(self, path: Path) -> list[str]:
        """Build the ffprobe argument list for a file."""
        return [
            str(self._ffprobe_path),
            "-v",
            "error",
            "-hide_banner",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            "-i",
            str(path),
        ]

    def get_descriptor(
        self, path: Path, extension_hint: str | None = None
    ) -> MediaDescriptor:
        """Probe a media file.

        Args:
            path: Path to the media file.
            extension_hint: Extension the caller believes the file has.
                Defaults to the path's own suffix. Never overrides the
                probed format; see resolve_container_format.

        Returns:
            MediaDescriptor for the file.

        Raises:
            MediaIntrospectionError: If the file cannot be introspected.
        """
        if not path.exists():
            raise MediaIntrospectionError(f"File not found: {path}")

        data = self._run_ffprobe(path)
        descriptor = parse_ffprobe_output(
            path,
            data,
            extension_hint=extension_hint,
            signature=read_signature(path),
        )

        if descriptor.container_format in FASTSTART_FORMATS:
            descriptor = replace(descriptor, faststart=is_faststart(path))

        for warning in descriptor.warnings:
            logger.warning("%s: %s", path, warning)
        logger.debug(
            "Probed %s: format=%s streams=%d duration=%s",
            path,
            descriptor.format_name,
            len(descriptor.streams),
            descriptor.duration_seconds,
        )
        return descriptor

    def _run_ffprobe(self, path: Path) -> dict:
        """Run ffprobe and return parsed JSON output.

        Raises:
            MediaIntrospectionError: On timeout, non-zero exit, invalid JSON
                or missing required keys.
        """
        try:
            result = run_command(self.build_command(path), timeout=self._timeout)
        except subprocess.TimeoutExpired as e:
            raise MediaIntrospectionError(
                f"ffprobe timed out for {path} after {e.timeout}s"
            ) from e
        except OSError as e:
            raise MediaIntrospectionError(f"Could not run ffprobe: {e}") from e

        if not result.ok:
            raise MediaIntrospectionError(
                f"ffprobe failed for {path}: {tail_lines(result.stderr, 5)}"
            )

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MediaIntrospectionError(
                f"Invalid ffprobe output for {path}: {e}"
            ) from e

        if "streams" not in data:
            raise MediaIntrospectionError(
                f"Missing 'streams' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file."
            )
        if "format" not in data:
            raise MediaIntrospectionError(
                f"Missing 'format' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file."
            )
        return data
