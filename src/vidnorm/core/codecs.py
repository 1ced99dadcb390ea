"""Centralized codec registry and utilities.

This module is the single source of truth for codec knowledge in vidnorm:
- Codec alias groups for matching/normalization
- Container compatibility matrices
- Encoder names for the codecs vidnorm can produce
"""

from __future__ import annotations

from vidnorm.domain.models import ContainerFormat, StreamKind

# =============================================================================
# Codec Alias Groups
# =============================================================================
# Groups of equivalent codec identifiers. The key is the canonical name as
# reported by ffprobe's codec_name.

VIDEO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "hevc": frozenset({"hevc", "h265", "h.265", "x265", "hvc1", "hev1"}),
    "h264": frozenset({"h264", "h.264", "avc", "avc1", "x264"}),
    "vp8": frozenset({"vp8"}),
    "vp9": frozenset({"vp9", "vp09"}),
    "av1": frozenset({"av1", "av01", "libaom-av1"}),
    "mpeg4": frozenset({"mpeg4", "mp4v"}),
    "mpeg2video": frozenset({"mpeg2video", "mpeg2", "h262"}),
    "mpeg1video": frozenset({"mpeg1video", "mpeg1"}),
    "h263": frozenset({"h263"}),
    "vvc": frozenset({"vvc", "h266"}),
}

AUDIO_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "aac": frozenset({"aac", "aac_latm", "mp4a"}),
    "mp3": frozenset({"mp3", "mp3float"}),
    "mp2": frozenset({"mp2"}),
    "ac3": frozenset({"ac3", "ac-3", "a52"}),
    "eac3": frozenset({"eac3", "e-ac-3", "ec3"}),
    "opus": frozenset({"opus"}),
    "vorbis": frozenset({"vorbis"}),
    "flac": frozenset({"flac"}),
    "alac": frozenset({"alac"}),
    "truehd": frozenset({"truehd", "mlp"}),
    "dts": frozenset({"dts", "dca"}),
}

SUBTITLE_CODEC_ALIASES: dict[str, frozenset[str]] = {
    "subrip": frozenset({"subrip", "srt"}),
    "ass": frozenset({"ass", "ssa"}),
    "mov_text": frozenset({"mov_text", "tx3g"}),
    "webvtt": frozenset({"webvtt"}),
    "hdmv_pgs_subtitle": frozenset({"hdmv_pgs_subtitle", "pgssub", "pgs"}),
    "dvd_subtitle": frozenset({"dvd_subtitle", "dvdsub", "vobsub"}),
}

_ALIASES_BY_KIND: dict[StreamKind, dict[str, frozenset[str]]] = {
    StreamKind.VIDEO: VIDEO_CODEC_ALIASES,
    StreamKind.AUDIO: AUDIO_CODEC_ALIASES,
    StreamKind.SUBTITLE: SUBTITLE_CODEC_ALIASES,
}

# Text-based subtitle codecs that can be converted without OCR
TEXT_SUBTITLE_CODECS: frozenset[str] = frozenset(
    {"subrip", "ass", "mov_text", "webvtt", "text"}
)


# =============================================================================
# Container Compatibility Matrices
# =============================================================================

_ISOBMFF_VIDEO: frozenset[str] = frozenset(
    {"h264", "hevc", "av1", "mpeg4", "vp9", "mpeg2video", "mpeg1video", "vvc"}
)
_ISOBMFF_AUDIO: frozenset[str] = frozenset(
    {"aac", "mp3", "mp2", "ac3", "eac3", "opus", "flac", "alac"}
)

CONTAINER_VIDEO_CODECS: dict[ContainerFormat, frozenset[str]] = {
    ContainerFormat.MP4: _ISOBMFF_VIDEO,
    ContainerFormat.MOV: _ISOBMFF_VIDEO | {"h263", "prores", "mjpeg"},
    ContainerFormat.MKV: _ISOBMFF_VIDEO | {"vp8", "h263", "prores", "mjpeg"},
    ContainerFormat.WEBM: frozenset({"vp8", "vp9", "av1"}),
}

CONTAINER_AUDIO_CODECS: dict[ContainerFormat, frozenset[str]] = {
    ContainerFormat.MP4: _ISOBMFF_AUDIO,
    ContainerFormat.MOV: _ISOBMFF_AUDIO | {"pcm_s16le", "pcm_s24le"},
    ContainerFormat.MKV: _ISOBMFF_AUDIO
    | {"vorbis", "truehd", "dts", "pcm_s16le", "pcm_s24le"},
    ContainerFormat.WEBM: frozenset({"opus", "vorbis"}),
}

CONTAINER_SUBTITLE_CODECS: dict[ContainerFormat, frozenset[str]] = {
    ContainerFormat.MP4: frozenset({"mov_text"}),
    ContainerFormat.MOV: frozenset({"mov_text"}),
    ContainerFormat.MKV: frozenset(
        {"subrip", "ass", "webvtt", "hdmv_pgs_subtitle", "dvd_subtitle"}
    ),
    ContainerFormat.WEBM: frozenset({"webvtt"}),
}

# Subtitle codec to convert text subtitles into for each writable container
CONTAINER_TEXT_SUBTITLE_TARGET: dict[ContainerFormat, str] = {
    ContainerFormat.MP4: "mov_text",
    ContainerFormat.MOV: "mov_text",
    ContainerFormat.MKV: "subrip",
    ContainerFormat.WEBM: "webvtt",
}

# Containers that can hold attachments / data streams copied verbatim
CONTAINERS_WITH_ATTACHMENTS: frozenset[ContainerFormat] = frozenset(
    {ContainerFormat.MKV}
)

# Containers that can hold attached-picture (cover art) video streams
CONTAINERS_WITH_COVER_ART: frozenset[ContainerFormat] = frozenset(
    {ContainerFormat.MP4, ContainerFormat.MOV, ContainerFormat.MKV}
)


# =============================================================================
# Encoders
# =============================================================================

VIDEO_ENCODERS: dict[str, str] = {
    "h264": "libx264",
    "hevc": "libx265",
    "vp9": "libvpx-vp9",
    "av1": "libsvtav1",
}

AUDIO_ENCODERS: dict[str, str] = {
    "aac": "aac",
    "opus": "libopus",
    "mp3": "libmp3lame",
    "flac": "flac",
    "vorbis": "libvorbis",
    "ac3": "ac3",
    "eac3": "eac3",
}

# Codec tag to force when writing HEVC into ISO-BMFF so Apple players accept it
HEVC_MP4_TAG = "hvc1"


# =============================================================================
# Functions
# =============================================================================


def normalize_codec(codec: str | None) -> str:
    """Normalize a codec name for comparison.

    Args:
        codec: Codec name or None.

    Returns:
        Lowercase, stripped codec name, or empty string if None.
    """
    if not codec:
        return ""
    return codec.casefold().strip()


def get_canonical_codec(codec: str | None, kind: StreamKind) -> str:
    """Get the canonical name for a codec within its stream kind.

    Args:
        codec: Codec name (any alias).
        kind: Stream kind used to select the alias table.

    Returns:
        Canonical codec name, or the normalized input if no alias matches.
    """
    normalized = normalize_codec(codec)
    for canonical, aliases in _ALIASES_BY_KIND.get(kind, {}).items():
        if normalized in aliases:
            return canonical
    return normalized


def codec_in(
    codec: str | None,
    permitted: tuple[str, ...] | frozenset[str],
    kind: StreamKind,
) -> bool:
    """Check whether a codec belongs to a set of permitted codecs.

    Both sides are compared by canonical name, so ``avc1`` matches ``h264``.
    """
    if not codec:
        return False
    canonical = get_canonical_codec(codec, kind)
    return any(get_canonical_codec(p, kind) == canonical for p in permitted)


def container_accepts(
    container: ContainerFormat, kind: StreamKind, codec: str | None
) -> bool:
    """Check whether a container can carry a stream of this kind and codec.

    Args:
        container: Target container.
        kind: Stream kind.
        codec: Stream codec name.

    Returns:
        True if the stream can be muxed into the container without
        re-encoding.
    """
    if kind in (StreamKind.ATTACHMENT, StreamKind.OTHER):
        return container in CONTAINERS_WITH_ATTACHMENTS

    table = {
        StreamKind.VIDEO: CONTAINER_VIDEO_CODECS,
        StreamKind.AUDIO: CONTAINER_AUDIO_CODECS,
        StreamKind.SUBTITLE: CONTAINER_SUBTITLE_CODECS,
    }[kind]
    accepted = table.get(container)
    if accepted is None:
        return False
    return get_canonical_codec(codec, kind) in accepted


def is_text_subtitle(codec: str | None) -> bool:
    """Check whether a subtitle codec is text based (convertible without OCR)."""
    return get_canonical_codec(codec, StreamKind.SUBTITLE) in TEXT_SUBTITLE_CODECS
