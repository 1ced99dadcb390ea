"""Pure parsing functions for ffprobe JSON output.

These functions transform ffprobe JSON data into MediaDescriptor objects.
All functions are pure (no I/O, no side effects) for easy testing.
"""

import logging
import re
from pathlib import Path

from vidnorm.core.formats import (
    family_of,
    format_from_extension,
    resolve_container_format,
)
from vidnorm.core.video_analysis import parse_frame_rate, parse_pixel_format
from vidnorm.domain.models import (
    FieldOrder,
    MediaDescriptor,
    StreamDescriptor,
    StreamKind,
)
from vidnorm.introspector.layout import ContainerSignature

logger = logging.getLogger(__name__)

_KIND_MAP: dict[str, StreamKind] = {
    "video": StreamKind.VIDEO,
    "audio": StreamKind.AUDIO,
    "subtitle": StreamKind.SUBTITLE,
    "attachment": StreamKind.ATTACHMENT,
}

# ffprobe field_order values; tb/bt are coded in one order and displayed
# in the other, and the deinterlacer cares about display order
_FIELD_ORDER_MAP: dict[str, FieldOrder] = {
    "progressive": FieldOrder.PROGRESSIVE,
    "tt": FieldOrder.TOP_FIRST,
    "bt": FieldOrder.TOP_FIRST,
    "bb": FieldOrder.BOTTOM_FIRST,
    "tb": FieldOrder.BOTTOM_FIRST,
}

# Dispositions marking a track as an alternative to the main one
_SECONDARY_DISPOSITIONS = (
    "dub",
    "comment",
    "lyrics",
    "karaoke",
    "forced",
    "hearing_impaired",
    "visual_impaired",
    "clean_effects",
    "non_diegetic",
    "captions",
    "descriptions",
    "metadata",
    "dependent",
    "multilayer",
)

_LANGUAGE_RE = re.compile(r"^[a-z]{3}$")

_MAX_TAG_KEY_LENGTH = 255
_MAX_TAG_VALUE_LENGTH = 4096


def sanitize_string(value: str | None) -> str | None:
    """Sanitize a string by replacing invalid UTF-8 characters.

    Args:
        value: String value to sanitize.

    Returns:
        Sanitized string or None if input was None.
    """
    if value is None:
        return None
    return value.encode("utf-8", errors="replace").decode("utf-8")


def _log_validation_warning(
    message: str,
    field_name: str,
    file_path: str | None,
    *args: object,
) -> None:
    """Log a validation warning with optional file context."""
    context = f" in {file_path}" if file_path else ""
    logger.warning(f"{message}{context}", field_name, *args)


def validate_positive_int(
    value: object,
    field_name: str,
    file_path: str | None = None,
) -> int | None:
    """Validate that a value is a non-negative integer or None.

    ffprobe reports some integers as strings (``sample_rate``), so numeric
    strings are accepted.

    Args:
        value: Value to validate.
        field_name: Field name for warning messages.
        file_path: File path context for warnings.

    Returns:
        Validated value or None if invalid.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError:
            _log_validation_warning(
                "Expected int for %s, got %r", field_name, file_path, value
            )
            return None
    if not isinstance(value, int) or isinstance(value, bool):
        _log_validation_warning(
            "Expected int for %s, got %s", field_name, file_path, type(value).__name__
        )
        return None
    if value < 0:
        _log_validation_warning("Invalid negative %s: %d", field_name, file_path, value)
        return None
    return value


def parse_seconds(value: object) -> float | None:
    """Parse a seconds value from ffprobe (e.g. "3600.000") into a float.

    Args:
        value: Duration/time string or number, or None.

    Returns:
        Seconds as float, or None if parsing fails.
    """
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def parse_sample_aspect_ratio(value: str | None) -> tuple[int, int] | None:
    """Parse a ``num:den`` sample aspect ratio.

    ``0:1`` and malformed values mean "unknown" and return None.
    """
    if not value or ":" not in value:
        return None
    num_str, _, den_str = value.partition(":")
    try:
        num, den = int(num_str), int(den_str)
    except ValueError:
        return None
    if num <= 0 or den <= 0:
        return None
    return num, den


def normalize_rotation(degrees: float) -> int:
    """Normalize a rotation to the range [-180, 180)."""
    return ((int(round(degrees)) + 180) % 360) - 180


def parse_rotation(stream: dict) -> int:
    """Extract display rotation from side data or the legacy rotate tag.

    Side data uses the display-matrix convention (counter-clockwise
    positive). The legacy ``rotate`` tag is clockwise, so it is negated.

    Args:
        stream: Stream dictionary from ffprobe JSON.

    Returns:
        Rotation in degrees, 0 when the stream is not rotated.
    """
    for side_data in stream.get("side_data_list") or []:
        if "rotation" in side_data:
            try:
                return normalize_rotation(float(side_data["rotation"]))
            except (TypeError, ValueError):
                logger.debug("Unparseable rotation side data: %r", side_data)

    rotate_tag = (stream.get("tags") or {}).get("rotate")
    if rotate_tag:
        try:
            return normalize_rotation(-float(rotate_tag))
        except ValueError:
            logger.debug("Unparseable rotate tag: %r", rotate_tag)
    return 0


def parse_language(raw: str | None) -> str:
    """Normalize a language tag to a lowercase 3-letter code or "und"."""
    if not raw:
        return "und"
    lang = raw.strip().casefold()
    if _LANGUAGE_RE.match(lang):
        return lang
    return "und"


def parse_tags(tags: dict | None, file_path: str | None = None) -> dict[str, str]:
    """Sanitize a tags dictionary, lowercasing keys.

    Oversized keys and values are skipped with a warning.
    """
    if not tags:
        return {}

    result: dict[str, str] = {}
    for key, value in tags.items():
        if len(key) > _MAX_TAG_KEY_LENGTH:
            logger.warning(
                "Tag key %r (%d chars) exceeds max length %d, skipping in %s",
                key[:50] + "...",
                len(key),
                _MAX_TAG_KEY_LENGTH,
                file_path or "unknown",
            )
            continue
        sanitized = sanitize_string(str(value))
        if sanitized is None:
            continue
        if len(sanitized) > _MAX_TAG_VALUE_LENGTH:
            logger.warning(
                "Tag %r value (%d chars) exceeds max length %d, skipping in %s",
                key,
                len(sanitized),
                _MAX_TAG_VALUE_LENGTH,
                file_path or "unknown",
            )
            continue
        result[key.casefold()] = sanitized
    return result


def parse_stream(
    stream: dict,
    container_duration: float | None = None,
    file_path: str | None = None,
) -> StreamDescriptor:
    """Parse a single ffprobe stream dict into a StreamDescriptor.

    Args:
        stream: Stream dictionary from ffprobe JSON.
        container_duration: Fallback duration from container format.
        file_path: Optional file path for context in warning messages.

    Returns:
        StreamDescriptor domain object.
    """
    index = stream.get("index", 0)
    kind = _KIND_MAP.get(stream.get("codec_type", ""), StreamKind.OTHER)

    disposition = stream.get("disposition") or {}
    tags = parse_tags(stream.get("tags"), file_path)

    duration = parse_seconds(stream.get("duration"))
    if duration is None or duration < 0:
        duration = container_duration

    common = {
        "index": index,
        "kind": kind,
        "codec": stream.get("codec_name"),
        "language": parse_language(tags.get("language")),
        "title": tags.get("title"),
        "is_default": disposition.get("default", 0) == 1,
        "is_thumbnail": (
            disposition.get("attached_pic", 0) == 1
            or disposition.get("timed_thumbnails", 0) == 1
        ),
        "is_still_image": disposition.get("still_image", 0) == 1,
        "is_secondary": any(
            disposition.get(name, 0) == 1 for name in _SECONDARY_DISPOSITIONS
        ),
        "duration_seconds": duration,
        "tags": tags,
    }

    if kind == StreamKind.VIDEO:
        pixel_format = stream.get("pix_fmt")
        pix_info = parse_pixel_format(pixel_format)
        bit_depth = pix_info.bit_depth if pix_info else None
        if bit_depth is None:
            bit_depth = validate_positive_int(
                stream.get("bits_per_raw_sample"), "bits_per_raw_sample", file_path
            )
        frame_rate = parse_frame_rate(
            stream.get("r_frame_rate") or stream.get("avg_frame_rate")
        )
        return StreamDescriptor(
            **common,
            width=validate_positive_int(stream.get("width"), "width", file_path),
            height=validate_positive_int(stream.get("height"), "height", file_path),
            sample_aspect_ratio=parse_sample_aspect_ratio(
                stream.get("sample_aspect_ratio")
            ),
            pixel_format=pixel_format,
            bit_depth=bit_depth,
            chroma_subsampling=pix_info.chroma_subsampling if pix_info else None,
            color_primaries=stream.get("color_primaries"),
            color_transfer=stream.get("color_transfer"),
            color_space=stream.get("color_space"),
            color_range=stream.get("color_range"),
            field_order=_FIELD_ORDER_MAP.get(
                stream.get("field_order", "progressive"), FieldOrder.UNKNOWN
            ),
            rotation_degrees=parse_rotation(stream),
            frame_rate=frame_rate,
        )

    if kind == StreamKind.AUDIO:
        return StreamDescriptor(
            **common,
            channels=validate_positive_int(
                stream.get("channels"), "channels", file_path
            ),
            channel_layout=stream.get("channel_layout"),
            sample_rate=validate_positive_int(
                stream.get("sample_rate"), "sample_rate", file_path
            ),
        )

    return StreamDescriptor(**common)


def parse_streams(
    streams: list[dict],
    container_duration: float | None = None,
    file_path: str | None = None,
) -> tuple[list[StreamDescriptor], list[str]]:
    """Parse stream data into StreamDescriptor objects.

    Duplicate indices are skipped so that index stays a unique key.

    Args:
        streams: List of stream dictionaries from ffprobe.
        container_duration: Container-level duration as fallback.
        file_path: Optional file path for context in warning messages.

    Returns:
        Tuple of (streams list sorted by index, warnings list).
    """
    parsed: list[StreamDescriptor] = []
    warnings: list[str] = []
    seen_indices: set[int] = set()

    for stream in streams:
        index = stream.get("index", 0)
        if index in seen_indices:
            warnings.append(f"Duplicate stream index {index}, skipping")
            continue
        seen_indices.add(index)
        parsed.append(parse_stream(stream, container_duration, file_path))

    parsed.sort(key=lambda s: s.index)
    return parsed, warnings


def parse_ffprobe_output(
    path: Path,
    data: dict,
    extension_hint: str | None = None,
    faststart: bool = False,
    signature: ContainerSignature | None = None,
) -> MediaDescriptor:
    """Parse ffprobe JSON output into a MediaDescriptor.

    Args:
        path: Path to the probed file.
        data: Parsed ffprobe JSON output.
        extension_hint: Extension the caller believes the file has.
            Defaults to the path's suffix. A hint that names another
            member of the probed family is logged, not followed.
        faststart: Whether the structural index precedes the payload.
        signature: Header details read from the file itself.

    Returns:
        MediaDescriptor with streams and warnings.
    """
    format_info = data.get("format", {})
    format_name = format_info.get("format_name")
    container_duration = parse_seconds(format_info.get("duration"))
    container_tags = parse_tags(format_info.get("tags"), str(path))
    start_time = parse_seconds(format_info.get("start_time")) or 0.0

    if extension_hint is None:
        extension_hint = path.suffix
    if signature is None:
        signature = ContainerSignature()
    container_format = resolve_container_format(
        format_name,
        major_brand=container_tags.get("major_brand"),
        doctype=signature.doctype,
        ts_packet_size=signature.ts_packet_size,
        extension_hint=extension_hint,
    )
    hinted = format_from_extension(extension_hint)
    if (
        container_format is not None
        and hinted is not None
        and hinted != container_format
        and hinted in family_of(container_format)
    ):
        logger.info(
            "%s is named as %s but its header says %s",
            path,
            hinted.value,
            container_format.value,
        )

    streams, warnings = parse_streams(
        data.get("streams", []), container_duration, str(path)
    )
    if not streams:
        warnings.append("No streams found in file")
    if container_format is None:
        warnings.append(f"Unrecognized container format: {format_name}")

    return MediaDescriptor(
        path=path,
        container_format=container_format,
        format_name=format_name,
        streams=tuple(streams),
        duration_seconds=container_duration,
        start_time_offset=start_time,
        faststart=faststart,
        tags=container_tags,
        warnings=tuple(warnings),
    )
