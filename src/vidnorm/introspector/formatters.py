"""Formatters for media descriptors.

Human-readable and JSON renderings of MediaDescriptor, used by the
``inspect`` command.
"""

import json
from typing import Any

from vidnorm.core.video_analysis import HDRType, detect_hdr_type
from vidnorm.domain.models import (
    FieldOrder,
    MediaDescriptor,
    StreamDescriptor,
    StreamKind,
)

_SECTION_TITLES: tuple[tuple[StreamKind, str], ...] = (
    (StreamKind.VIDEO, "Video"),
    (StreamKind.AUDIO, "Audio"),
    (StreamKind.SUBTITLE, "Subtitles"),
    (StreamKind.ATTACHMENT, "Attachments"),
    (StreamKind.OTHER, "Other"),
)


def format_human(descriptor: MediaDescriptor) -> str:
    """Format a descriptor for terminal output.

    Args:
        descriptor: The probed media.

    Returns:
        Multi-line string.
    """
    lines: list[str] = [f"File: {descriptor.path}"]
    container = (
        descriptor.container_format.name
        if descriptor.container_format
        else f"unrecognized ({descriptor.format_name})"
    )
    lines.append(f"Container: {container}")
    if descriptor.duration_seconds is not None:
        lines.append(f"Duration: {descriptor.duration_seconds:.3f}s")
    if descriptor.start_time_offset:
        lines.append(f"Start time: {descriptor.start_time_offset:.3f}s")
    if descriptor.faststart:
        lines.append("Layout: faststart")
    lines.append("")
    lines.append("Streams:")

    for kind, title in _SECTION_TITLES:
        streams = [s for s in descriptor.streams if s.kind == kind]
        if streams:
            lines.append(f"  {title}:")
            lines.extend(f"    {format_stream_line(s)}" for s in streams)

    if not descriptor.streams:
        lines.append("  (no streams found)")

    if descriptor.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {w}" for w in descriptor.warnings)

    return "\n".join(lines)


def format_stream_line(stream: StreamDescriptor) -> str:
    """Format a single stream as one line."""
    parts = [f"#{stream.index}", f"[{stream.kind.value}]"]

    if stream.codec:
        parts.append(stream.codec)

    if stream.kind == StreamKind.VIDEO:
        if stream.width and stream.height:
            parts.append(f"{stream.width}x{stream.height}")
        if stream.frame_rate:
            parts.append(f"@ {stream.frame_rate:.3f}fps")
        if stream.pixel_format:
            parts.append(stream.pixel_format)
        if not stream.has_square_pixels and stream.sample_aspect_ratio:
            num, den = stream.sample_aspect_ratio
            parts.append(f"SAR {num}:{den}")
        if stream.field_order not in (FieldOrder.PROGRESSIVE, FieldOrder.UNKNOWN):
            parts.append("[interlaced]")
        if stream.rotation_degrees:
            parts.append(f"rotated {stream.rotation_degrees}°")
        hdr = detect_hdr_type(
            stream.color_transfer, stream.color_primaries, stream.color_space
        )
        if hdr != HDRType.NONE:
            parts.append(f"[{hdr.value.upper()}]")

    if stream.kind == StreamKind.AUDIO:
        if stream.channel_layout:
            parts.append(stream.channel_layout)
        elif stream.channels:
            parts.append(f"{stream.channels}ch")
        if stream.sample_rate:
            parts.append(f"{stream.sample_rate}Hz")

    if stream.language != "und":
        parts.append(stream.language)
    if stream.title:
        parts.append(f'"{stream.title}"')

    flags = []
    if stream.is_default:
        flags.append("default")
    if stream.is_thumbnail:
        flags.append("thumbnail")
    if stream.is_still_image:
        flags.append("still")
    if stream.is_secondary:
        flags.append("secondary")
    if flags:
        parts.append(f"({', '.join(flags)})")

    return " ".join(parts)


def stream_to_dict(stream: StreamDescriptor) -> dict[str, Any]:
    """Convert a StreamDescriptor to a JSON-serializable dict."""
    data: dict[str, Any] = {
        "index": stream.index,
        "kind": stream.kind.value,
        "codec": stream.codec,
        "language": stream.language,
        "title": stream.title,
        "is_default": stream.is_default,
        "is_thumbnail": stream.is_thumbnail,
        "duration_seconds": stream.duration_seconds,
    }
    if stream.kind == StreamKind.VIDEO:
        data.update(
            {
                "width": stream.width,
                "height": stream.height,
                "sample_aspect_ratio": (
                    f"{stream.sample_aspect_ratio[0]}:{stream.sample_aspect_ratio[1]}"
                    if stream.sample_aspect_ratio
                    else None
                ),
                "pixel_format": stream.pixel_format,
                "bit_depth": stream.bit_depth,
                "color_primaries": stream.color_primaries,
                "color_transfer": stream.color_transfer,
                "color_space": stream.color_space,
                "field_order": stream.field_order.value,
                "rotation_degrees": stream.rotation_degrees,
                "frame_rate": stream.frame_rate,
                "is_still_image": stream.is_still_image,
            }
        )
    elif stream.kind == StreamKind.AUDIO:
        data.update(
            {
                "channels": stream.channels,
                "channel_layout": stream.channel_layout,
                "sample_rate": stream.sample_rate,
            }
        )
    return data


def descriptor_to_dict(descriptor: MediaDescriptor) -> dict[str, Any]:
    """Convert a MediaDescriptor to a JSON-serializable dict."""
    return {
        "path": str(descriptor.path),
        "container_format": (
            descriptor.container_format.value if descriptor.container_format else None
        ),
        "format_name": descriptor.format_name,
        "duration_seconds": descriptor.duration_seconds,
        "start_time_offset": descriptor.start_time_offset,
        "faststart": descriptor.faststart,
        "streams": [stream_to_dict(s) for s in descriptor.streams],
        "warnings": list(descriptor.warnings),
    }


def format_json(descriptor: MediaDescriptor) -> str:
    """Format a descriptor as indented JSON."""
    return json.dumps(descriptor_to_dict(descriptor), indent=2)
