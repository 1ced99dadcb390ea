"""Execution plan emitter and ffmpeg runner."""

from vidnorm.executor.directive import Directive, emit
from vidnorm.executor.ffmpeg_utils import (
    check_output,
    discard,
    move_into_place,
    reserve_temp_output,
)
from vidnorm.executor.progress import (
    FFmpegProgress,
    ProgressTracker,
    parse_stderr_progress,
)
from vidnorm.executor.runner import FFmpegRunner, Outcome, ProgressCallback, RunStatus

__all__ = [
    "Directive",
    "FFmpegProgress",
    "FFmpegRunner",
    "Outcome",
    "ProgressCallback",
    "ProgressTracker",
    "RunStatus",
    "check_output",
    "discard",
    "emit",
    "move_into_place",
    "parse_stderr_progress",
    "reserve_temp_output",
]
