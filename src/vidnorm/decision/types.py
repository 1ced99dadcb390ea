"""Decision types produced by the decision engine.

A DecisionPlan is created fresh for every request and never mutated.
The emitter turns it into a single ffmpeg directive.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from vidnorm.domain.models import ContainerFormat, MediaDescriptor, StreamKind


class StreamAction(Enum):
    """What happens to one input stream."""

    DROP = "drop"
    COPY = "copy"
    REENCODE = "reencode"


class ContainerAction(Enum):
    """What happens to the file as a whole."""

    NOOP = "noop"
    """Source bytes are returned unchanged."""

    REMUX = "remux"
    """Streams are copied (or dropped) into a new container."""

    REENCODE = "reencode"
    """At least one stream is re-encoded."""


@dataclass(frozen=True)
class VideoEncodeParams:
    """Encoder settings for a re-encoded video stream."""

    codec: str
    encoder: str
    crf: int | None = None
    preset: str | None = None
    filters: tuple[str, ...] = ()
    pixel_format: str | None = None
    profile: str | None = None
    codec_tag: str | None = None
    color_args: tuple[str, ...] = ()
    """Output color tags as option/value pairs without the stream suffix."""

    @property
    def filter_chain(self) -> str | None:
        return ",".join(self.filters) if self.filters else None


@dataclass(frozen=True)
class AudioEncodeParams:
    """Encoder settings for a re-encoded audio stream."""

    codec: str
    encoder: str
    bitrate: int | None = None
    channels: int | None = None
    sample_rate: int | None = None


@dataclass(frozen=True)
class SubtitleEncodeParams:
    """Conversion target for a text subtitle stream."""

    codec: str


@dataclass(frozen=True)
class StreamDecision:
    """Decision for a single input stream."""

    input_index: int
    kind: StreamKind
    action: StreamAction
    rule: str
    """Name of the rule that decided the action."""

    reason: str
    output_index: int | None = None
    """Position in the output file; None when dropped."""

    video: VideoEncodeParams | None = None
    audio: AudioEncodeParams | None = None
    subtitle: SubtitleEncodeParams | None = None
    language: str = "und"
    disposition: str = "0"
    """ffmpeg disposition flags, e.g. ``default`` or ``attached_pic``."""

    rotation_degrees: int = 0
    """Rotation carried to the output; 0 when cleared or not rotated."""

    forces_rewrite: bool = True
    """False when a drop alone does not require rewriting the file."""

    @property
    def is_kept(self) -> bool:
        return self.action != StreamAction.DROP


@dataclass(frozen=True)
class ContainerDecision:
    """File-level outcome of the decision engine."""

    action: ContainerAction
    target_format: ContainerFormat
    strip_global_metadata: bool
    strip_stream_metadata: bool
    map_chapters: bool
    faststart: bool
    preserve_start_time: bool
    clear_rotation: bool
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionPlan:
    """Complete, unambiguous plan for one processing request."""

    source: MediaDescriptor
    decisions: tuple[StreamDecision, ...]
    container_action: ContainerAction
    target_format: ContainerFormat
    strip_global_metadata: bool = False
    strip_stream_metadata: bool = False
    map_chapters: bool = True
    faststart: bool = False
    preserve_start_time: bool = True
    clear_rotation: bool = False
    copy_unknown: bool = False
    reasons: tuple[str, ...] = ()

    @property
    def is_noop(self) -> bool:
        return self.container_action == ContainerAction.NOOP

    @property
    def kept(self) -> tuple[StreamDecision, ...]:
        return tuple(d for d in self.decisions if d.is_kept)

    @property
    def dropped(self) -> tuple[StreamDecision, ...]:
        return tuple(d for d in self.decisions if not d.is_kept)

    @property
    def reencoded(self) -> tuple[StreamDecision, ...]:
        return tuple(d for d in self.decisions if d.action == StreamAction.REENCODE)

    def decision_for(self, input_index: int) -> StreamDecision:
        """Look up the decision for an input stream.

        Raises:
            KeyError: If the index is not part of the plan.
        """
        for decision in self.decisions:
            if decision.input_index == input_index:
                return decision
        raise KeyError(input_index)
