"""Video normalization façade.

Runs probe, validate, resolve, emit and run for one source file, and
reports the true container and extension of the result.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

from vidnorm.config.models import VidnormConfig
from vidnorm.core.formats import FORMAT_EXTENSIONS, extension_matches
from vidnorm.decision import DecisionPlan, resolve, validate_source
from vidnorm.domain.models import ContainerFormat, MediaDescriptor
from vidnorm.executor import Directive, FFmpegRunner, Outcome, ProgressCallback, emit
from vidnorm.introspector import FFprobeIntrospector, MediaIntrospector
from vidnorm.logging import request_context
from vidnorm.options import ProcessingOptions
from vidnorm.tools import require_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of processing one file."""

    changed: bool
    """False when the source already satisfied every constraint."""

    output_path: Path
    """The new file, or the source itself when unchanged."""

    format: ContainerFormat
    extension: str
    """Extension matching ``format``, with leading dot."""

    plan: DecisionPlan
    outcome: Outcome | None = None


def output_path_for(source: Path, output_dir: Path, fmt: ContainerFormat) -> Path:
    """Output file name: the source stem plus the container's own extension."""
    return output_dir / f"{source.stem}{FORMAT_EXTENSIONS[fmt]}"


class VideoProcessor:
    """Normalizes media files against a set of ProcessingOptions.

    Each call is independent; a processor may be reused across files but
    never shares mutable state between them.
    """

    def __init__(
        self,
        introspector: MediaIntrospector,
        runner: FFmpegRunner,
        validate_timeout: float | None = None,
    ) -> None:
        self._introspector = introspector
        self._runner = runner
        self._validate_timeout = validate_timeout

    @classmethod
    def from_config(cls, config: VidnormConfig) -> VideoProcessor:
        """Build a processor from resolved configuration.

        Raises:
            ToolNotFoundError: If ffmpeg or ffprobe is not available.
        """
        ffprobe = require_tool("ffprobe", config)
        ffmpeg = require_tool("ffmpeg", config)
        return cls(
            FFprobeIntrospector(ffprobe),
            FFmpegRunner(
                ffmpeg,
                timeout=config.processing.timeout_seconds,
                temp_dir=config.processing.temp_directory,
            ),
            validate_timeout=config.processing.validate_timeout_seconds,
        )

    def probe(self, source: Path) -> MediaDescriptor:
        return self._introspector.get_descriptor(source)

    def plan(self, source: Path, options: ProcessingOptions) -> DecisionPlan:
        """Probe and resolve without running anything."""
        return resolve(self.probe(source), options)

    def directive_for(self, plan: DecisionPlan, output_dir: Path) -> Directive | None:
        """ffmpeg directive for a plan, or None when nothing needs doing."""
        if plan.is_noop:
            return None
        return emit(
            plan, output_path_for(plan.source.path, output_dir, plan.target_format)
        )

    def process(
        self,
        source: Path,
        output_dir: Path,
        options: ProcessingOptions,
        *,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ProcessingResult:
        """Normalize one file.

        Args:
            source: Input media file. Its extension is only a hint.
            output_dir: Directory receiving the output when a new file is
                written.
            options: Resolved processing options.
            timeout: ffmpeg timeout overriding the runner default.
            cancel_event: Set from another thread to cancel the run.
            progress_callback: Receives the completion fraction.

        Returns:
            ProcessingResult. When unchanged, ``output_path`` is ``source``.

        Raises:
            UnsupportedInputError: If the source cannot be probed, validated
                or decoded.
            NoEligibleStreamError: If no stream can be kept.
            WorkerFailureError: If ffmpeg fails or times out.
            ProcessingCancelledError: If the run is cancelled.
        """
        with request_context(uuid.uuid4().hex[:8], source):
            media = self.probe(source)
            validate_source(media, options)
            if options.force_validate_all_streams:
                self._runner.validate_streams(source, timeout=self._validate_timeout)

            plan = resolve(media, options)
            if plan.is_noop:
                return self._unchanged(media, plan)

            directive = self.directive_for(plan, output_dir)
            assert directive is not None
            outcome = self._runner.run(
                directive,
                timeout=timeout,
                cancel_event=cancel_event,
                progress_callback=progress_callback,
                duration_seconds=media.duration_seconds,
            )
            return ProcessingResult(
                changed=True,
                output_path=outcome.output_path,
                format=plan.target_format,
                extension=FORMAT_EXTENSIONS[plan.target_format],
                plan=plan,
                outcome=outcome,
            )

    def _unchanged(
        self, media: MediaDescriptor, plan: DecisionPlan
    ) -> ProcessingResult:
        fmt = plan.target_format
        extension = FORMAT_EXTENSIONS[fmt]
        if not extension_matches(fmt, media.path.suffix):
            logger.warning(
                "Extension %r does not match probed container %s; "
                "reporting %s",
                media.path.suffix,
                fmt.value,
                extension,
            )
        logger.info("No changes needed for %s", media.path)
        return ProcessingResult(
            changed=False,
            output_path=media.path,
            format=fmt,
            extension=extension,
            plan=plan,
        )
