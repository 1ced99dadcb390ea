"""Thumbnail extraction façade."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

from vidnorm.config.models import VidnormConfig
from vidnorm.exceptions import ProcessingCancelledError, WorkerFailureError
from vidnorm.executor import FFmpegRunner, Outcome
from vidnorm.introspector import FFprobeIntrospector, MediaIntrospector
from vidnorm.logging import request_context
from vidnorm.options import ThumbnailProcessingOptions
from vidnorm.thumbnail import (
    ThumbnailSelection,
    build_thumbnail_directive,
    compute_thumbnail_dimensions,
    fallback_selections,
    select_thumbnail_source,
)
from vidnorm.tools import require_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThumbnailResult:
    """A written thumbnail image."""

    output_path: Path
    stream_index: int
    timestamp: float | None
    width: int | None
    height: int | None
    outcome: Outcome
    from_end: bool = False
    """True when timestamp counts back from the end of the video."""


class ThumbnailProcessor:
    """Extracts a single PNG still from a media file."""

    def __init__(self, introspector: MediaIntrospector, runner: FFmpegRunner) -> None:
        self._introspector = introspector
        self._runner = runner

    @classmethod
    def from_config(cls, config: VidnormConfig) -> ThumbnailProcessor:
        ffprobe = require_tool("ffprobe", config)
        ffmpeg = require_tool("ffmpeg", config)
        return cls(
            FFprobeIntrospector(ffprobe),
            FFmpegRunner(
                ffmpeg,
                timeout=config.processing.timeout_seconds,
                temp_dir=config.processing.temp_directory,
            ),
        )

    def extract(
        self,
        source: Path,
        output_path: Path,
        options: ThumbnailProcessingOptions,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ThumbnailResult:
        """Write a thumbnail for ``source`` to ``output_path``.

        If no frame can be read at the selected time, extraction is retried
        from the positions fallback_selections() gives. When every attempt
        fails, the error from the first one is raised.

        Raises:
            NoEligibleStreamError: If the source has no usable video stream.
            OutOfRangeParameterError: If the timestamp cannot be satisfied.
            ProcessingCancelledError: If cancel_event was set.
            WorkerFailureError: If ffmpeg fails or times out.
        """
        with request_context(uuid.uuid4().hex[:8], source):
            media = self._introspector.get_descriptor(source)
            selection = select_thumbnail_source(media, options)
            stream = media.stream(selection.stream_index)

            width = height = None
            if stream.width and stream.height:
                width, height = compute_thumbnail_dimensions(
                    stream.width,
                    stream.height,
                    stream.sample_aspect_ratio,
                    force_square_pixels=options.force_square_pixels,
                    rotation_degrees=stream.rotation_degrees,
                )

            errors: list[WorkerFailureError] = []
            for attempt in [selection, *fallback_selections(selection)]:
                directive = build_thumbnail_directive(
                    media, attempt, options, output_path
                )
                try:
                    outcome = self._runner.run(
                        directive, timeout=timeout, cancel_event=cancel_event
                    )
                except ProcessingCancelledError:
                    raise
                except WorkerFailureError as e:
                    logger.warning(
                        "No thumbnail frame at %s: %s",
                        _describe_position(attempt),
                        e.message,
                        extra={"stream_index": attempt.stream_index},
                    )
                    errors.append(e)
                    continue

                logger.info(
                    "Thumbnail written: %s (%sx%s)", outcome.output_path, width, height
                )
                return ThumbnailResult(
                    output_path=outcome.output_path,
                    stream_index=attempt.stream_index,
                    timestamp=attempt.timestamp,
                    width=width,
                    height=height,
                    outcome=outcome,
                    from_end=attempt.from_end,
                )
            raise errors[0]


def _describe_position(selection: ThumbnailSelection) -> str:
    if selection.timestamp is None:
        return "the stream's own frame"
    if selection.is_last_frame:
        return "the last frame"
    if selection.from_end:
        return f"{selection.timestamp:.3f}s before the end"
    return f"{selection.timestamp:.3f}s"
