"""Thumbnail stream and timestamp selection.

Picks one video stream and one point in time to extract a still image
from, and computes the output geometry. Pure functions only.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

from vidnorm.domain.models import MediaDescriptor, StreamDescriptor
from vidnorm.exceptions import NoEligibleStreamError, OutOfRangeParameterError
from vidnorm.options.types import ThumbnailProcessingOptions

logger = logging.getLogger(__name__)

# Many image viewers and editors cannot open images larger than this
MAX_THUMBNAIL_DIMENSION = 32767

# ffmpeg refuses frames whose estimated buffer exceeds INT_MAX bytes
MAX_IMAGE_BYTES_DIV8 = (2**31 - 1) // 8

NO_ELIGIBLE_STREAM_MESSAGE = "No suitable video stream found to extract thumbnail from."
NO_TIMESTAMP_MESSAGE = "No timestamp specified to extract thumbnail at."
BEYOND_END_MESSAGE = "Specified thumbnail timestamp is beyond the end of the video."


@dataclass(frozen=True)
class ThumbnailSelection:
    """The stream and time a thumbnail is extracted from."""

    stream_index: int
    timestamp: float | None
    """Seek position in seconds; None when the stream's own frame is used."""

    use_stream_frame: bool
    """True for cover art and still images, whose single frame is used as-is."""

    from_end: bool = False
    """True when timestamp counts back from the end of the video."""

    duration: float | None = None
    """Duration the timestamp was resolved against, if known."""

    @property
    def is_last_frame(self) -> bool:
        return self.from_end and self.timestamp == 0.0


def _rank(stream: StreamDescriptor) -> int:
    if stream.is_thumbnail:
        return 0 if stream.is_default else 1
    if stream.is_still_image:
        return 2 if stream.is_default else 3
    if stream.is_secondary:
        return 6
    return 4 if stream.is_default else 5


def eligible_streams(
    media: MediaDescriptor, options: ThumbnailProcessingOptions
) -> list[StreamDescriptor]:
    """Video streams a thumbnail may be taken from, best first."""
    candidates = [
        s
        for s in media.video_streams
        if options.include_thumbnail_video_streams or not s.is_thumbnail
    ]
    return sorted(candidates, key=lambda s: (_rank(s), s.index))


def resolve_timestamp(
    duration: float | None, options: ThumbnailProcessingOptions
) -> float:
    """Resolve the requested absolute and fractional timestamps to one time.

    The earlier of the two is used when both are set.

    Args:
        duration: Stream or container duration in seconds, if known.
        options: Thumbnail options.

    Returns:
        Seek position in seconds.

    Raises:
        OutOfRangeParameterError: If no timestamp is specified, or the
            resolved time lies beyond the end of the video.
    """
    absolute = options.image_timestamp
    fraction = options.image_timestamp_fraction

    if duration is None:
        # Without a duration only the absolute time can be honoured
        if absolute is None and fraction is None:
            raise OutOfRangeParameterError(NO_TIMESTAMP_MESSAGE)
        logger.warning("Video duration unknown; thumbnail timestamp not checked")
        return absolute if absolute is not None else 0.0

    candidates = []
    if absolute is not None:
        candidates.append(absolute)
    if fraction is not None:
        candidates.append(fraction * duration)
    if not candidates:
        raise OutOfRangeParameterError(NO_TIMESTAMP_MESSAGE)

    timestamp = min(candidates)
    if timestamp > duration:
        raise OutOfRangeParameterError(BEYOND_END_MESSAGE)
    return timestamp


def select_thumbnail_source(
    media: MediaDescriptor, options: ThumbnailProcessingOptions
) -> ThumbnailSelection:
    """Choose the stream and timestamp to extract a thumbnail from.

    Ranking, best first: included thumbnail streams (default disposition
    first), still images, default-disposition video, other video, then
    secondary video such as commentary or dubbed tracks. Ties go to the
    lower index.

    Raises:
        NoEligibleStreamError: If there is no eligible video stream.
        OutOfRangeParameterError: If the timestamp cannot be resolved.
    """
    candidates = eligible_streams(media, options)
    if not candidates:
        raise NoEligibleStreamError(NO_ELIGIBLE_STREAM_MESSAGE)

    stream = candidates[0]
    if stream.is_thumbnail or stream.is_still_image:
        selection = ThumbnailSelection(
            stream_index=stream.index, timestamp=None, use_stream_frame=True
        )
    else:
        duration = stream.duration_seconds
        if duration is None:
            duration = media.duration_seconds
        selection = ThumbnailSelection(
            stream_index=stream.index,
            timestamp=resolve_timestamp(duration, options),
            use_stream_frame=False,
            duration=duration,
        )

    logger.debug(
        "Selected stream %d for thumbnail (timestamp=%s)",
        selection.stream_index,
        selection.timestamp,
        extra={"stream_index": selection.stream_index},
    )
    return selection


def fallback_selections(selection: ThumbnailSelection) -> list[ThumbnailSelection]:
    """Further attempts for when no frame could be read at the selection.

    Container and stream durations are approximate, so a seek close to the
    end can land past the last frame. The same position is retried counted
    back from the end, then the first or last frame is used, whichever is
    nearer the requested time. Stream frames and selections made without a
    known duration have no fallbacks.
    """
    if (
        selection.use_stream_frame
        or selection.timestamp is None
        or selection.duration is None
    ):
        return []

    duration = selection.duration
    from_end = replace(
        selection, timestamp=max(duration - selection.timestamp, 0.0), from_end=True
    )
    nearer_end = selection.timestamp > 0.5 * duration
    edge = replace(selection, timestamp=0.0, from_end=nearer_end)
    if edge == from_end:
        return [from_end]
    return [from_end, edge]


def _cap(width: float, height: float, max_w: int, max_h: int) -> tuple[float, float]:
    if width <= max_w and height <= max_h:
        return width, height
    return min(max_w, width / height * max_h), min(max_h, height / width * max_w)


def _to_pixels(value: float, limit: int) -> int:
    # Pre-round so values that should be exact do not drift across .5
    exact = round(value, 8)
    rounded = round(exact)
    if rounded > limit:
        rounded = math.floor(exact)
    return max(1, int(rounded))


def _image_bytes_div8(width: int, height: int) -> int:
    """ffmpeg's allocation estimate for a frame, divided by eight."""
    return (((width + 63) & ~63) + 128) * (height + 128)


def displayed_dimensions(
    width: int, height: int, rotation_degrees: int
) -> tuple[int, int]:
    """Frame size after autorotation."""
    if abs(rotation_degrees) == 90:
        return height, width
    return width, height


def compute_thumbnail_dimensions(
    width: int,
    height: int,
    sample_aspect_ratio: tuple[int, int] | None = None,
    force_square_pixels: bool = True,
    rotation_degrees: int = 0,
) -> tuple[int, int]:
    """Compute output thumbnail dimensions.

    Geometry is computed for the upright frame: a quarter-turn rotation
    swaps both the dimensions and the sample aspect ratio, since ffmpeg
    transposes the frame before any scale filter runs. Each axis is capped
    at MAX_THUMBNAIL_DIMENSION by scaling both axes so the larger one equals
    the cap. Non-square pixels are then corrected by stretching one axis,
    and the result is capped again. If the frame would still exceed
    ffmpeg's image size limit, the bounds are tightened until it fits.

    Example: 64x65534 becomes 32x32767.
    """
    if abs(rotation_degrees) == 90:
        width, height = height, width
        if sample_aspect_ratio is not None:
            sample_aspect_ratio = (sample_aspect_ratio[1], sample_aspect_ratio[0])

    w, h = _cap(
        float(width), float(height), MAX_THUMBNAIL_DIMENSION, MAX_THUMBNAIL_DIMENSION
    )
    if force_square_pixels and sample_aspect_ratio is not None:
        num, den = sample_aspect_ratio
        if num > 0 and den > 0 and num != den:
            if num > den:
                w *= num / den
            else:
                h *= den / num

    max_w = max_h = MAX_THUMBNAIL_DIMENSION
    while True:
        capped_w, capped_h = _cap(w, h, max_w, max_h)
        result = _to_pixels(capped_w, max_w), _to_pixels(capped_h, max_h)
        required = _image_bytes_div8(*result)
        if required <= MAX_IMAGE_BYTES_DIV8:
            return result

        scale = math.sqrt(MAX_IMAGE_BYTES_DIV8 / required)
        max_w, max_h = result
        new_w = min(math.ceil(max_w * scale), max_w)
        new_h = min(math.ceil(max_h * scale), max_h)
        if (new_w, new_h) == (max_w, max_h):
            if new_w > new_h:
                new_w -= 1
            else:
                new_h -= 1
        max_w, max_h = new_w, new_h
