"""Core domain models for probed media.

These are the immutable descriptors produced by the introspector and
consumed by the decision engine and thumbnail selector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class StreamKind(Enum):
    """Kind of an input stream."""

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    ATTACHMENT = "attachment"
    OTHER = "other"


class FieldOrder(Enum):
    """Interlacing field order of a video stream."""

    PROGRESSIVE = "progressive"
    TOP_FIRST = "top_first"
    BOTTOM_FIRST = "bottom_first"
    UNKNOWN = "unknown"


class ContainerFormat(Enum):
    """Container formats recognized by vidnorm.

    The value is the canonical lowercase name, which doubles as the
    ffmpeg muxer name for the writable formats.
    """

    MP4 = "mp4"
    MOV = "mov"
    THREE_GP = "3gp"
    MKV = "matroska"
    WEBM = "webm"
    AVI = "avi"
    WMV = "asf"
    TS = "mpegts"
    MTS = "mts"
    M2TS = "m2ts"


@dataclass(frozen=True)
class StreamDescriptor:
    """Probed description of a single input stream.

    Fields that do not apply to the stream's kind are None.
    """

    index: int
    kind: StreamKind
    codec: str | None = None
    language: str = "und"
    title: str | None = None
    is_default: bool = False
    is_thumbnail: bool = False
    is_still_image: bool = False
    is_secondary: bool = False
    """True for commentary, dubbed, forced, accessibility and similar tracks."""
    duration_seconds: float | None = None
    tags: dict[str, str] = field(default_factory=dict, compare=False)

    # Video
    width: int | None = None
    height: int | None = None
    sample_aspect_ratio: tuple[int, int] | None = None
    pixel_format: str | None = None
    bit_depth: int | None = None
    chroma_subsampling: int | None = None
    color_primaries: str | None = None
    color_transfer: str | None = None
    color_space: str | None = None
    color_range: str | None = None
    field_order: FieldOrder = FieldOrder.PROGRESSIVE
    rotation_degrees: int = 0
    frame_rate: float | None = None

    # Audio
    channels: int | None = None
    channel_layout: str | None = None
    sample_rate: int | None = None

    @property
    def is_video(self) -> bool:
        return self.kind == StreamKind.VIDEO

    @property
    def is_audio(self) -> bool:
        return self.kind == StreamKind.AUDIO

    @property
    def is_unrecognized(self) -> bool:
        """True for attachment and data streams the engine cannot act on."""
        return self.kind in (StreamKind.ATTACHMENT, StreamKind.OTHER)

    @property
    def has_square_pixels(self) -> bool:
        """True when the sample aspect ratio is 1:1 or unknown."""
        if self.sample_aspect_ratio is None:
            return True
        num, den = self.sample_aspect_ratio
        return num <= 0 or den <= 0 or num == den


@dataclass(frozen=True)
class MediaDescriptor:
    """Probed description of a media file."""

    path: Path
    container_format: ContainerFormat | None
    format_name: str | None
    streams: tuple[StreamDescriptor, ...]
    duration_seconds: float | None = None
    start_time_offset: float = 0.0
    faststart: bool = False
    tags: dict[str, str] = field(default_factory=dict, compare=False)
    warnings: tuple[str, ...] = ()

    @property
    def video_streams(self) -> tuple[StreamDescriptor, ...]:
        return tuple(s for s in self.streams if s.kind == StreamKind.VIDEO)

    @property
    def audio_streams(self) -> tuple[StreamDescriptor, ...]:
        return tuple(s for s in self.streams if s.kind == StreamKind.AUDIO)

    def stream(self, index: int) -> StreamDescriptor:
        """Look up a stream by its original index.

        Raises:
            KeyError: If no stream has that index.
        """
        for stream in self.streams:
            if stream.index == index:
                return stream
        raise KeyError(index)

    def index_within_kind(self, index: int) -> int:
        """Position of a stream among the streams of the same kind.

        ffmpeg stream specifiers such as ``0:v:1`` address streams this way.
        """
        target = self.stream(index)
        position = 0
        for stream in self.streams:
            if stream.index == index:
                return position
            if stream.kind == target.kind:
                position += 1
        raise KeyError(index)
