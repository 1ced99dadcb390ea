"""Video filter and pixel format builders.

Pure helpers that turn stream properties and option limits into ffmpeg
filter strings, output dimensions and encoder profiles.
"""

from __future__ import annotations

import math
from fractions import Fraction

from vidnorm.core.video_analysis import parse_pixel_format, yuv_pixel_format
from vidnorm.domain.models import FieldOrder, StreamDescriptor

# Output color tags written when HDR is mapped to BT.709
BT709_COLOR_ARGS: tuple[str, ...] = (
    "-color_trc",
    "bt709",
    "-color_primaries",
    "bt709",
    "-colorspace",
    "bt709",
)

# Highest bit depth each encoder accepts
_ENCODER_MAX_BITS: dict[str, int] = {
    "h264": 10,
    "hevc": 12,
    "vp9": 12,
    "av1": 10,
}

_CHROMA_RANK: dict[int, int] = {420: 0, 422: 1, 440: 1, 444: 2}


def round_even(value: float) -> int:
    """Round to the nearest even integer, never below 2."""
    return max(2, int(round(value / 2)) * 2)


def floor_even(value: float) -> int:
    """Round down to an even integer, never below 2."""
    return max(2, int(math.floor(value / 2)) * 2)


# =============================================================================
# Deinterlace
# =============================================================================


def is_interlaced(stream: StreamDescriptor) -> bool:
    return stream.field_order in (FieldOrder.TOP_FIRST, FieldOrder.BOTTOM_FIRST)


def deinterlace_filter(field_order: FieldOrder) -> str:
    """bwdif filter emitting one frame per frame, with the stream's parity."""
    parity = "bff" if field_order == FieldOrder.BOTTOM_FIRST else "tff"
    return f"bwdif=mode=send_frame:parity={parity}:deint=all"


# =============================================================================
# Frame rate
# =============================================================================


def limited_frame_rate(frame_rate: float, max_frame_rate: int) -> Fraction | None:
    """Divide a frame rate by the smallest integer that brings it under a limit.

    Args:
        frame_rate: Source frame rate.
        max_frame_rate: Upper bound.

    Returns:
        The reduced rate as a fraction, or None if the source already fits.
    """
    if frame_rate <= 0:
        return None
    rate = Fraction(frame_rate).limit_denominator(1001)
    if rate <= max_frame_rate:
        return None
    divisor = math.ceil(rate / max_frame_rate)
    return rate / divisor


def fps_filter(rate: Fraction) -> str:
    if rate.denominator == 1:
        return f"fps={rate.numerator}"
    return f"fps={rate.numerator}/{rate.denominator}"


# =============================================================================
# Geometry
# =============================================================================


def square_pixel_dimensions(
    width: int, height: int, sample_aspect_ratio: tuple[int, int] | None
) -> tuple[int, int]:
    """Dimensions after stretching non-square pixels to square.

    A wide SAR widens the frame; a tall SAR stretches its height. The
    corrected axis is rounded to even.
    """
    if sample_aspect_ratio is None:
        return width, height
    num, den = sample_aspect_ratio
    if num <= 0 or den <= 0 or num == den:
        return width, height
    if num > den:
        return round_even(width * num / den), height
    return width, round_even(height * den / num)


def fit_down_dimensions(
    width: int, height: int, max_width: int, max_height: int
) -> tuple[int, int] | None:
    """Shrink dimensions to fit a bounding box, keeping aspect ratio.

    Returns:
        Even (width, height), or None if the frame already fits.
    """
    if width <= max_width and height <= max_height:
        return None
    ratio = min(Fraction(max_width, width), Fraction(max_height, height))
    return floor_even(width * ratio), floor_even(height * ratio)


def scale_filter(width: int, height: int) -> str:
    return f"scale={width}x{height}"


# =============================================================================
# Color
# =============================================================================


def hdr_to_sdr_filter(color_range: str | None, pixel_format: str) -> str:
    """zscale/tonemap chain mapping HDR to BT.709 SDR."""
    out_range = color_range if color_range in ("tv", "pc") else "pc"
    return (
        "zscale=t=linear:npl=500,"
        "format=gbrpf32le,"
        "zscale=p=bt709,"
        "tonemap=tonemap=mobius:param=0.3:desat=0,"
        f"zscale=t=bt709:m=bt709:r={out_range},"
        f"format={pixel_format}"
    )


# =============================================================================
# Pixel format and profile
# =============================================================================


def exceeds_pixel_limits(
    stream: StreamDescriptor,
    max_bits: int | None,
    max_chroma: int | None,
) -> bool:
    """True when a stream's bit depth or chroma resolution is above a limit."""
    if max_bits is not None and stream.bit_depth and stream.bit_depth > max_bits:
        return True
    if max_chroma is not None and stream.chroma_subsampling:
        return _CHROMA_RANK.get(stream.chroma_subsampling, 2) > _CHROMA_RANK[
            max_chroma
        ]
    return False


def target_pixel_format(
    stream: StreamDescriptor,
    codec: str,
    max_bits: int | None,
    max_chroma: int | None,
) -> tuple[int, int, str]:
    """Pick the output bit depth, chroma subsampling and pixel format.

    The source properties are kept where the limits and the encoder allow.
    Non-YUV and unknown sources become YUV.

    Returns:
        Tuple of (bit_depth, chroma_subsampling, pixel_format).
    """
    info = parse_pixel_format(stream.pixel_format)
    bits = info.bit_depth if info else (stream.bit_depth or 8)
    chroma = info.chroma_subsampling if info else 420

    bits = 8 if bits <= 8 else (10 if bits <= 10 else 12)
    if max_bits is not None:
        bits = min(bits, max_bits)
    bits = min(bits, _ENCODER_MAX_BITS.get(codec, 8))

    # 4:4:0 has no encoder profile; widen it
    if chroma == 440:
        chroma = 444
    if max_chroma is not None and _CHROMA_RANK[chroma] > _CHROMA_RANK[max_chroma]:
        chroma = max_chroma

    return bits, chroma, yuv_pixel_format(bits, chroma)


def encoder_profile(codec: str, bit_depth: int, chroma_subsampling: int) -> str | None:
    """H.264/HEVC profile able to carry a bit depth and chroma subsampling."""
    if codec == "h264":
        if chroma_subsampling == 444:
            return "high444"
        if chroma_subsampling == 422:
            return "high422"
        return "high10" if bit_depth > 8 else "high"
    if codec == "hevc":
        if chroma_subsampling == 420 and bit_depth <= 10:
            return "main10" if bit_depth > 8 else "main"
        return "rext"
    return None
