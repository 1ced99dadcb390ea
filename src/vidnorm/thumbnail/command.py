"""Build the ffmpeg directive that extracts a single PNG thumbnail."""

from __future__ import annotations

import logging
from pathlib import Path

from vidnorm.core.video_analysis import HDRType, detect_hdr_type, parse_pixel_format
from vidnorm.decision.filters import hdr_to_sdr_filter, scale_filter
from vidnorm.domain.models import MediaDescriptor, StreamDescriptor
from vidnorm.executor.directive import Directive
from vidnorm.options.types import ThumbnailProcessingOptions
from vidnorm.thumbnail.selector import (
    ThumbnailSelection,
    compute_thumbnail_dimensions,
    displayed_dimensions,
)

logger = logging.getLogger(__name__)

# Decoded in full when the last frame is wanted
LAST_FRAME_WINDOW_SECONDS = 1.0


def has_alpha(pixel_format: str | None) -> bool:
    """True when an ffmpeg pixel format carries an alpha channel."""
    if not pixel_format:
        return False
    name = pixel_format.casefold()
    if name.startswith(("gray", "bayer")):
        return False
    return "a" in name


def thumbnail_pixel_format(stream: StreamDescriptor) -> str:
    """PNG pixel format for a source stream.

    8-bit sources become rgb24 (rgba with alpha); deeper sources keep 16
    bits per channel.
    """
    info = parse_pixel_format(stream.pixel_format)
    bits = info.bit_depth if info else (stream.bit_depth or 8)
    alpha = has_alpha(stream.pixel_format)
    if bits <= 8:
        return "rgba" if alpha else "rgb24"
    return "rgba64be" if alpha else "rgb48be"


def _needs_tonemap(stream: StreamDescriptor) -> bool:
    hdr_type = detect_hdr_type(
        stream.color_transfer, stream.color_primaries, stream.color_space
    )
    return hdr_type != HDRType.NONE


def thumbnail_filters(
    stream: StreamDescriptor,
    options: ThumbnailProcessingOptions,
    pixel_format: str,
) -> list[str]:
    """Filter chain applied to the extracted frame, possibly empty."""
    filters: list[str] = []
    if options.remap_hdr_to_sdr and _needs_tonemap(stream):
        filters.append(hdr_to_sdr_filter(stream.color_range, pixel_format))

    if stream.width and stream.height:
        width, height = compute_thumbnail_dimensions(
            stream.width,
            stream.height,
            stream.sample_aspect_ratio,
            force_square_pixels=options.force_square_pixels,
            rotation_degrees=stream.rotation_degrees,
        )
        upright = displayed_dimensions(
            stream.width, stream.height, stream.rotation_degrees
        )
        if (width, height) != upright:
            filters.append(scale_filter(width, height))

    if options.force_square_pixels and not stream.has_square_pixels:
        filters.append("setsar=1")
    return filters


def seek_args(selection: ThumbnailSelection) -> list[str]:
    """Input options positioning ffmpeg at the selected frame."""
    if selection.use_stream_frame or selection.timestamp is None:
        return []
    if selection.is_last_frame:
        return ["-sseof", f"-{LAST_FRAME_WINDOW_SECONDS:.6f}"]
    if selection.from_end:
        return ["-sseof", f"-{selection.timestamp:.6f}"]
    return ["-ss", f"{selection.timestamp:.6f}"]


def build_thumbnail_directive(
    media: MediaDescriptor,
    selection: ThumbnailSelection,
    options: ThumbnailProcessingOptions,
    output_path: Path,
) -> Directive:
    """Build the single ffmpeg run that writes one PNG frame.

    Autorotation stays enabled so the image is upright. For the last frame
    every frame of the final second is decoded, and each one overwrites the
    image so the last one remains.

    Args:
        media: Probed source.
        selection: From select_thumbnail_source() or fallback_selections().
        options: Thumbnail options.
        output_path: Final PNG path.

    Returns:
        Directive writing exactly one frame.
    """
    stream = media.stream(selection.stream_index)
    pixel_format = thumbnail_pixel_format(stream)

    args: list[str] = ["-nostdin", "-hide_banner", "-y"]
    args += seek_args(selection)
    args += ["-i", str(media.path)]
    args += ["-map", f"0:{selection.stream_index}"]
    args += ["-map_metadata", "-1", "-map_chapters", "-1"]

    filters = thumbnail_filters(stream, options, pixel_format)
    if filters:
        args += ["-filter:v", ",".join(filters)]

    if not selection.is_last_frame:
        args += ["-frames:v", "1"]
    args += ["-c:v", "png", "-pix_fmt", pixel_format]
    args += ["-update", "1", "-f", "image2"]

    logger.debug(
        "Thumbnail from stream %d: pix_fmt=%s filters=%s",
        selection.stream_index,
        pixel_format,
        filters,
    )
    return Directive(
        args=tuple(args),
        input_path=media.path,
        output_path=output_path,
        description=f"thumbnail {media.path.name} stream {selection.stream_index}",
    )
