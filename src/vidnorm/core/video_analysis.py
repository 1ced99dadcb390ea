"""Video stream analysis utilities.

Pure functions for interpreting ffprobe video properties: frame rates,
pixel formats and color metadata. None of these touch the filesystem.
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class HDRType(Enum):
    """Type of HDR content detected in video."""

    NONE = "none"
    """Known SDR color profile."""

    HDR10 = "hdr10"
    """PQ transfer function (smpte2084)."""

    HLG = "hlg"
    """Hybrid Log-Gamma (arib-std-b67)."""

    WIDE_GAMUT = "wide_gamut"
    """Non-SDR primaries or matrix (e.g. bt2020) with an SDR-looking transfer."""


# Color metadata values known to describe SDR content. None means the
# property was not tagged, which players treat as SDR.
SDR_TRANSFERS: frozenset[str | None] = frozenset(
    {
        None,
        "bt709",
        "bt601",
        "bt470",
        "bt470bg",
        "smpte170m",
        "smpte240m",
        "iec61966-2-1",
    }
)
SDR_PRIMARIES: frozenset[str | None] = frozenset(
    {None, "bt709", "bt470m", "bt470bg", "smpte170m", "smpte240m"}
)
SDR_COLOR_SPACES: frozenset[str | None] = frozenset(
    {
        None,
        "bt709",
        "bt470m",
        "bt470bg",
        "smpte170m",
        "smpte240m",
        "srgb",
        "iec61966-2-1",
        "gbr",
    }
)


@dataclass(frozen=True)
class PixelFormatInfo:
    """Decoded properties of an ffmpeg pixel format name."""

    bit_depth: int
    chroma_subsampling: int
    """420, 422, 440 or 444."""

    is_yuv: bool


_PIXEL_FORMATS: dict[str, PixelFormatInfo] = {
    "yuv420p": PixelFormatInfo(8, 420, True),
    "yuvj420p": PixelFormatInfo(8, 420, True),
    "nv12": PixelFormatInfo(8, 420, True),
    "yuv422p": PixelFormatInfo(8, 422, True),
    "yuvj422p": PixelFormatInfo(8, 422, True),
    "yuv444p": PixelFormatInfo(8, 444, True),
    "yuvj444p": PixelFormatInfo(8, 444, True),
    "yuv440p": PixelFormatInfo(8, 440, True),
    "gbrp": PixelFormatInfo(8, 444, False),
    "yuv420p10le": PixelFormatInfo(10, 420, True),
    "p010le": PixelFormatInfo(10, 420, True),
    "yuv422p10le": PixelFormatInfo(10, 422, True),
    "yuv444p10le": PixelFormatInfo(10, 444, True),
    "yuv440p10le": PixelFormatInfo(10, 440, True),
    "gbrp10le": PixelFormatInfo(10, 444, False),
    "yuv420p12le": PixelFormatInfo(12, 420, True),
    "yuv422p12le": PixelFormatInfo(12, 422, True),
    "yuv444p12le": PixelFormatInfo(12, 444, True),
    "yuv440p12le": PixelFormatInfo(12, 440, True),
    "gbrp12le": PixelFormatInfo(12, 444, False),
}


def parse_frame_rate(frame_rate_str: str | None) -> float | None:
    """Parse FFprobe frame rate string (e.g., '24000/1001') to float.

    Args:
        frame_rate_str: Frame rate string from ffprobe.

    Returns:
        Frame rate as float, or None if unparseable.
    """
    if not frame_rate_str or frame_rate_str == "0/0":
        return None

    if "/" in frame_rate_str:
        try:
            num, denom = frame_rate_str.split("/")
            denom_val = float(denom)
            if denom_val == 0:
                return None
            return float(num) / denom_val
        except ValueError:
            return None

    try:
        return float(frame_rate_str)
    except ValueError:
        return None


def parse_pixel_format(pixel_format: str | None) -> PixelFormatInfo | None:
    """Look up bit depth and chroma subsampling for a pixel format.

    Unknown formats fall back to a best-effort guess from the name suffix
    (``...10le``, ``...12be``) so that bit depth is still preserved.

    Args:
        pixel_format: ffmpeg pixel format name (e.g. ``yuv420p10le``).

    Returns:
        PixelFormatInfo, or None if the format is unknown.
    """
    if not pixel_format:
        return None
    name = pixel_format.casefold()
    info = _PIXEL_FORMATS.get(name)
    if info is not None:
        return info

    bit_depth = 8
    for depth in (16, 14, 12, 10, 9):
        if f"{depth}le" in name or f"{depth}be" in name:
            bit_depth = depth
            break
    if name.startswith(("yuv420", "yuva420", "nv")):
        return PixelFormatInfo(bit_depth, 420, True)
    if name.startswith(("yuv422", "yuva422")):
        return PixelFormatInfo(bit_depth, 422, True)
    if name.startswith(("yuv444", "yuva444")):
        return PixelFormatInfo(bit_depth, 444, True)

    logger.debug("Unknown pixel format: %s", pixel_format)
    return None


def yuv_pixel_format(bit_depth: int, chroma_subsampling: int) -> str:
    """Build the planar YUV pixel format name for a depth/subsampling pair."""
    base = f"yuv{chroma_subsampling}p"
    if bit_depth <= 8:
        return base
    return f"{base}{bit_depth}le"


def _norm(value: str | None) -> str | None:
    if value is None or value in ("", "unknown", "unspecified", "reserved"):
        return None
    return value.casefold()


def detect_hdr_type(
    color_transfer: str | None,
    color_primaries: str | None,
    color_space: str | None,
) -> HDRType:
    """Classify a stream's color metadata.

    Anything that is not a known SDR combination counts as HDR for the
    purposes of tone-mapping.

    Args:
        color_transfer: ffprobe ``color_transfer``.
        color_primaries: ffprobe ``color_primaries``.
        color_space: ffprobe ``color_space``.

    Returns:
        HDRType.NONE for a known SDR profile, otherwise the detected type.
    """
    transfer = _norm(color_transfer)
    if transfer == "smpte2084":
        return HDRType.HDR10
    if transfer == "arib-std-b67":
        return HDRType.HLG
    if (
        transfer in SDR_TRANSFERS
        and _norm(color_primaries) in SDR_PRIMARIES
        and _norm(color_space) in SDR_COLOR_SPACES
    ):
        return HDRType.NONE
    return HDRType.WIDE_GAMUT


def is_known_sdr(
    color_transfer: str | None,
    color_primaries: str | None,
    color_space: str | None,
) -> bool:
    """Return True when the color metadata describes SDR content."""
    return detect_hdr_type(color_transfer, color_primaries, color_space) == (
        HDRType.NONE
    )
