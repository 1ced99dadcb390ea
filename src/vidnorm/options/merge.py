"""Copy-with-override merging of processing options."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from vidnorm.domain.models import ContainerFormat
from vidnorm.options.types import (
    AudioQuality,
    MetadataStrippingMode,
    ProcessingOptions,
    ReencodeMode,
    ResizeOptions,
    SourceLimits,
    VideoCompressionLevel,
    VideoQuality,
)


@dataclass(frozen=True)
class OptionsOverride:
    """A partial set of processing options.

    Mirrors ProcessingOptions field for field. None means "not specified":
    the base value is kept. Fields whose meaningful value is None in
    ProcessingOptions (e.g. ``max_channels``) therefore cannot be reset to
    None through an override; start from a different base instead.
    """

    result_formats: frozenset[ContainerFormat] | None = None
    result_video_codecs: tuple[str, ...] | None = None
    result_audio_codecs: tuple[str, ...] | None = None
    video_reencode_mode: ReencodeMode | None = None
    audio_reencode_mode: ReencodeMode | None = None
    video_quality: VideoQuality | None = None
    video_compression_level: VideoCompressionLevel | None = None
    audio_quality: AudioQuality | None = None
    resize_options: ResizeOptions | None = None
    metadata_stripping_mode: MetadataStrippingMode | None = None
    force_progressive_frames: bool | None = None
    force_progressive_download: bool | None = None
    remove_audio_streams: bool | None = None
    max_channels: int | None = None
    remap_hdr_to_sdr: bool | None = None
    try_preserve_unrecognized_streams: bool | None = None
    force_validate_all_streams: bool | None = None
    max_frame_rate: int | None = None
    max_bits_per_channel: int | None = None
    max_chroma_subsampling: int | None = None
    audio_sample_rate: int | None = None
    force_square_pixels: bool | None = None
    source_limits: SourceLimits | None = None

    def specified(self) -> dict[str, Any]:
        """Return the fields that are set, keyed by name."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.specified()


def merge_options(
    base: ProcessingOptions, override: OptionsOverride | None
) -> ProcessingOptions:
    """Overlay the specified fields of an override onto a base.

    The base is never modified. The result is validated like any other
    ProcessingOptions.

    Args:
        base: Starting options (usually a preset).
        override: Partial options; None fields are ignored.

    Returns:
        New ProcessingOptions.

    Raises:
        OutOfRangeParameterError: If the merged options are inconsistent.
    """
    if override is None:
        return base
    changes = override.specified()
    if not changes:
        return base
    return replace(base, **changes)


def combine_overrides(*overrides: OptionsOverride | None) -> OptionsOverride:
    """Fold several overrides into one; later ones take precedence."""
    combined: dict[str, Any] = {}
    for override in overrides:
        if override is not None:
            combined.update(override.specified())
    return OptionsOverride(**combined)
