"""Processing façades tying probe, decision and execution together."""

from vidnorm.processing.thumbnail import ThumbnailProcessor, ThumbnailResult
from vidnorm.processing.video import ProcessingResult, VideoProcessor, output_path_for

__all__ = [
    "ProcessingResult",
    "ThumbnailProcessor",
    "ThumbnailResult",
    "VideoProcessor",
    "output_path_for",
]
