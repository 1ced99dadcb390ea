"""Processing option types.

Options are immutable value objects. Every field has a default, and
layered configuration is done with vidnorm.options.merge rather than by
mutating an instance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from vidnorm.core.formats import WRITABLE_FORMATS
from vidnorm.domain.models import ContainerFormat
from vidnorm.exceptions import OutOfRangeParameterError

# =============================================================================
# Enums
# =============================================================================


class ReencodeMode(Enum):
    """When a stream of a given kind may be re-encoded."""

    NEVER = "never"
    """Never re-encode; a stream that needs it makes the request fail."""

    IF_NEEDED = "if_needed"
    """Re-encode only when no lossless path satisfies the constraints."""

    ALWAYS = "always"
    """Re-encode every stream of this kind."""


class VideoQuality(IntEnum):
    """Target video quality. Higher values never produce smaller output."""

    LOWEST = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    HIGHEST = 4


class VideoCompressionLevel(IntEnum):
    """Encoder effort. Higher values never produce larger output."""

    LOWEST = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    HIGHEST = 4


class AudioQuality(IntEnum):
    """Target audio quality. Higher values never produce smaller output."""

    LOWEST = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    HIGHEST = 4


class MetadataStrippingMode(Enum):
    """How much metadata is removed from the output."""

    NONE = "none"
    """Keep all metadata, including thumbnails."""

    THUMBNAIL_ONLY = "thumbnail_only"
    """Drop thumbnail/cover streams, keep everything else."""

    PREFERRED = "preferred"
    """Strip global metadata and chapters when the file is rewritten anyway."""

    REQUIRED = "required"
    """Always strip; forces a remux even when nothing else changes."""


class ResizeMode(Enum):
    """How a video stream is fitted into the resize bounds."""

    FIT_DOWN = "fit_down"
    """Shrink to fit inside the bounds, keeping aspect ratio. Never upscale."""


# Accepted values for the pixel-format limits
VALID_BITS_PER_CHANNEL: frozenset[int] = frozenset({8, 10, 12})
VALID_CHROMA_SUBSAMPLING: frozenset[int] = frozenset({420, 422, 444})

DEFAULT_VIDEO_CODECS: tuple[str, ...] = (
    "h264",
    "hevc",
    "vp9",
    "av1",
    "vp8",
    "mpeg4",
    "mpeg2video",
    "mpeg1video",
    "h263",
    "vvc",
    "prores",
    "mjpeg",
)

DEFAULT_AUDIO_CODECS: tuple[str, ...] = (
    "aac",
    "opus",
    "mp3",
    "mp2",
    "ac3",
    "eac3",
    "vorbis",
    "flac",
    "alac",
    "truehd",
    "dts",
    "pcm_s16le",
    "pcm_s24le",
)


def _require_positive(value: float | None, name: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not math.isfinite(value) or value <= 0:
        raise OutOfRangeParameterError(f"{name} must be positive, got {value!r}")


# =============================================================================
# Option value objects
# =============================================================================


@dataclass(frozen=True)
class ResizeOptions:
    """Bounding box a video stream must fit into."""

    max_width: int
    max_height: int
    mode: ResizeMode = ResizeMode.FIT_DOWN

    def __post_init__(self) -> None:
        _require_positive(self.max_width, "max_width")
        _require_positive(self.max_height, "max_height")


@dataclass(frozen=True)
class SourceLimits:
    """Limits a source must satisfy before any work is planned.

    A None field is not checked.
    """

    max_width: int | None = None
    max_height: int | None = None
    max_duration_seconds: float | None = None
    max_streams: int | None = None

    def __post_init__(self) -> None:
        _require_positive(self.max_width, "max_width")
        _require_positive(self.max_height, "max_height")
        _require_positive(self.max_duration_seconds, "max_duration_seconds")
        _require_positive(self.max_streams, "max_streams")


@dataclass(frozen=True)
class ProcessingOptions:
    """Target constraints for normalizing a media file.

    The defaults accept any recognized container and codec and only
    rewrite what must change.
    """

    result_formats: frozenset[ContainerFormat] = field(
        default_factory=lambda: frozenset(ContainerFormat)
    )
    result_video_codecs: tuple[str, ...] = DEFAULT_VIDEO_CODECS
    result_audio_codecs: tuple[str, ...] = DEFAULT_AUDIO_CODECS
    video_reencode_mode: ReencodeMode = ReencodeMode.IF_NEEDED
    audio_reencode_mode: ReencodeMode = ReencodeMode.IF_NEEDED
    video_quality: VideoQuality = VideoQuality.MEDIUM
    video_compression_level: VideoCompressionLevel = VideoCompressionLevel.MEDIUM
    audio_quality: AudioQuality = AudioQuality.MEDIUM
    resize_options: ResizeOptions | None = None
    metadata_stripping_mode: MetadataStrippingMode = MetadataStrippingMode.NONE
    force_progressive_frames: bool = False
    force_progressive_download: bool = False
    remove_audio_streams: bool = False
    max_channels: int | None = None
    remap_hdr_to_sdr: bool = False
    try_preserve_unrecognized_streams: bool = False
    force_validate_all_streams: bool = False
    max_frame_rate: int | None = None
    max_bits_per_channel: int | None = None
    max_chroma_subsampling: int | None = None
    audio_sample_rate: int | None = None
    """Maximum audio sample rate in Hz; higher rates are resampled."""
    force_square_pixels: bool = False
    source_limits: SourceLimits = field(default_factory=SourceLimits)

    def __post_init__(self) -> None:
        if not self.result_formats:
            raise OutOfRangeParameterError("result_formats cannot be empty")
        if not any(f in self.result_formats for f in WRITABLE_FORMATS):
            raise OutOfRangeParameterError(
                "result_formats must include at least one writable format: "
                + ", ".join(f.value for f in WRITABLE_FORMATS)
            )
        if not self.result_video_codecs:
            raise OutOfRangeParameterError("result_video_codecs cannot be empty")
        if not self.result_audio_codecs:
            raise OutOfRangeParameterError("result_audio_codecs cannot be empty")
        _require_positive(self.max_channels, "max_channels")
        _require_positive(self.max_frame_rate, "max_frame_rate")
        _require_positive(self.audio_sample_rate, "audio_sample_rate")
        if (
            self.max_bits_per_channel is not None
            and self.max_bits_per_channel not in VALID_BITS_PER_CHANNEL
        ):
            raise OutOfRangeParameterError(
                f"max_bits_per_channel must be one of 8, 10, 12, "
                f"got {self.max_bits_per_channel!r}"
            )
        if (
            self.max_chroma_subsampling is not None
            and self.max_chroma_subsampling not in VALID_CHROMA_SUBSAMPLING
        ):
            raise OutOfRangeParameterError(
                f"max_chroma_subsampling must be one of 420, 422, 444, "
                f"got {self.max_chroma_subsampling!r}"
            )


@dataclass(frozen=True)
class ThumbnailProcessingOptions:
    """Options for extracting a single-frame thumbnail.

    When both timestamps are set, the earlier of the two resolved times
    is used.
    """

    image_timestamp: float | None = None
    """Absolute time in seconds."""

    image_timestamp_fraction: float | None = None
    """Fraction of the source duration, in [0, 1]."""

    include_thumbnail_video_streams: bool = False
    remap_hdr_to_sdr: bool = True
    force_square_pixels: bool = True

    def __post_init__(self) -> None:
        ts = self.image_timestamp
        if ts is not None and (
            isinstance(ts, bool) or not math.isfinite(ts) or ts < 0
        ):
            raise OutOfRangeParameterError(
                f"image_timestamp must be a non-negative number of seconds, got {ts!r}"
            )
        frac = self.image_timestamp_fraction
        if frac is not None and (
            isinstance(frac, bool) or not math.isfinite(frac) or not 0 <= frac <= 1
        ):
            raise OutOfRangeParameterError(
                f"image_timestamp_fraction must be between 0 and 1, got {frac!r}"
            )
