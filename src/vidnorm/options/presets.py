"""Named option presets.

Presets are ordinary ProcessingOptions instances. Profiles and CLI flags
are merged on top of them with merge_options.
"""

from __future__ import annotations

from vidnorm.domain.models import ContainerFormat
from vidnorm.options.types import (
    MetadataStrippingMode,
    ProcessingOptions,
    ReencodeMode,
    ThumbnailProcessingOptions,
)

STANDARDIZED_H264_AAC_MP4 = ProcessingOptions(
    result_formats=frozenset({ContainerFormat.MP4}),
    result_video_codecs=("h264",),
    result_audio_codecs=("aac",),
    video_reencode_mode=ReencodeMode.ALWAYS,
    audio_reencode_mode=ReencodeMode.IF_NEEDED,
    metadata_stripping_mode=MetadataStrippingMode.THUMBNAIL_ONLY,
    force_progressive_download=True,
    try_preserve_unrecognized_streams=False,
    max_bits_per_channel=8,
    max_chroma_subsampling=420,
    max_frame_rate=60,
    remap_hdr_to_sdr=True,
    max_channels=2,
    audio_sample_rate=48000,
    force_square_pixels=True,
    force_progressive_frames=True,
)
"""H.264 + AAC in MP4: 8-bit 4:2:0 SDR, at most 60 fps, stereo 48 kHz.

Subtitles, attachments and data streams are dropped.
"""

STANDARDIZED_HEVC_AAC_MP4 = ProcessingOptions(
    result_formats=frozenset({ContainerFormat.MP4}),
    result_video_codecs=("hevc",),
    result_audio_codecs=("aac",),
    video_reencode_mode=ReencodeMode.ALWAYS,
    audio_reencode_mode=ReencodeMode.IF_NEEDED,
    metadata_stripping_mode=MetadataStrippingMode.THUMBNAIL_ONLY,
    force_progressive_download=True,
    try_preserve_unrecognized_streams=False,
    max_bits_per_channel=8,
    max_chroma_subsampling=420,
    max_frame_rate=60,
    remap_hdr_to_sdr=True,
    max_channels=2,
    audio_sample_rate=48000,
    force_square_pixels=True,
    force_progressive_frames=True,
)
"""HEVC (hvc1) + AAC in MP4, otherwise as STANDARDIZED_H264_AAC_MP4."""

PRESERVE = ProcessingOptions(
    metadata_stripping_mode=MetadataStrippingMode.NONE,
    try_preserve_unrecognized_streams=True,
)
"""Keep the source whenever it is already acceptable.

Subtitles and unrecognized streams are kept where the output container
can carry them.
"""

THUMBNAIL_STANDARD = ThumbnailProcessingOptions(
    image_timestamp=5.0,
    image_timestamp_fraction=0.3,
)
"""Frame at 5 s or 30% of the duration, whichever comes first."""

PRESETS: dict[str, ProcessingOptions] = {
    "standardized-h264-aac-mp4": STANDARDIZED_H264_AAC_MP4,
    "standardized-hevc-aac-mp4": STANDARDIZED_HEVC_AAC_MP4,
    "preserve": PRESERVE,
}


def get_preset(name: str) -> ProcessingOptions:
    """Look up a preset by name.

    Names are case-insensitive and ``_`` is accepted in place of ``-``.

    Raises:
        KeyError: If no preset has that name.
    """
    key = name.strip().casefold().replace("_", "-")
    try:
        return PRESETS[key]
    except KeyError:
        raise KeyError(
            f"Unknown preset '{name}'. Available: {', '.join(sorted(PRESETS))}"
        ) from None
