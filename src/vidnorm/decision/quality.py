"""Quality and compression tables.

Higher quality maps to a lower CRF and a higher audio bitrate; higher
compression maps to a slower encoder preset. The tables are monotonic in
both directions and tests enforce it.
"""

from vidnorm.options.types import AudioQuality, VideoCompressionLevel, VideoQuality

H264_CRF: dict[VideoQuality, int] = {
    VideoQuality.HIGHEST: 17,
    VideoQuality.HIGH: 20,
    VideoQuality.MEDIUM: 23,
    VideoQuality.LOW: 26,
    VideoQuality.LOWEST: 29,
}

HEVC_CRF: dict[VideoQuality, int] = {
    VideoQuality.HIGHEST: 19,
    VideoQuality.HIGH: 23,
    VideoQuality.MEDIUM: 28,
    VideoQuality.LOW: 31,
    VideoQuality.LOWEST: 34,
}

# libvpx-vp9 and libsvtav1 use a 0-63 scale
VP9_AV1_CRF: dict[VideoQuality, int] = {
    VideoQuality.HIGHEST: 24,
    VideoQuality.HIGH: 28,
    VideoQuality.MEDIUM: 32,
    VideoQuality.LOW: 37,
    VideoQuality.LOWEST: 42,
}

X26X_PRESETS: dict[VideoCompressionLevel, str] = {
    VideoCompressionLevel.HIGHEST: "slower",
    VideoCompressionLevel.HIGH: "slow",
    VideoCompressionLevel.MEDIUM: "medium",
    VideoCompressionLevel.LOW: "faster",
    VideoCompressionLevel.LOWEST: "superfast",
}

# Relative encoder effort of the x264/x265 presets, fastest first
PRESET_ORDER: tuple[str, ...] = (
    "ultrafast",
    "superfast",
    "veryfast",
    "faster",
    "fast",
    "medium",
    "slow",
    "slower",
    "veryslow",
    "placebo",
)

AAC_BITRATE_PER_CHANNEL: dict[AudioQuality, int] = {
    AudioQuality.HIGHEST: 192_000,
    AudioQuality.HIGH: 160_000,
    AudioQuality.MEDIUM: 128_000,
    AudioQuality.LOW: 80_000,
    AudioQuality.LOWEST: 64_000,
}

# Opus and the other lossy encoders need less than AAC for the same quality
OTHER_BITRATE_PER_CHANNEL: dict[AudioQuality, int] = {
    AudioQuality.HIGHEST: 128_000,
    AudioQuality.HIGH: 96_000,
    AudioQuality.MEDIUM: 64_000,
    AudioQuality.LOW: 48_000,
    AudioQuality.LOWEST: 32_000,
}

# Lossless audio encoders take no bitrate
LOSSLESS_AUDIO_CODECS: frozenset[str] = frozenset({"flac", "alac"})

_CRF_TABLES: dict[str, dict[VideoQuality, int]] = {
    "h264": H264_CRF,
    "hevc": HEVC_CRF,
    "vp9": VP9_AV1_CRF,
    "av1": VP9_AV1_CRF,
}


def crf_for(codec: str, quality: VideoQuality) -> int | None:
    """CRF for a video codec at a quality level, or None if unsupported."""
    table = _CRF_TABLES.get(codec)
    return table[quality] if table else None


def preset_for(codec: str, level: VideoCompressionLevel) -> str | None:
    """x264/x265 preset for a compression level; other encoders return None."""
    if codec in ("h264", "hevc"):
        return X26X_PRESETS[level]
    return None


def audio_bitrate_for(codec: str, quality: AudioQuality, channels: int) -> int | None:
    """Total audio bitrate in bits/s for a codec, quality and channel count."""
    if codec in LOSSLESS_AUDIO_CODECS:
        return None
    table = AAC_BITRATE_PER_CHANNEL if codec == "aac" else OTHER_BITRATE_PER_CHANNEL
    return max(channels, 1) * table[quality]
