"""Per-stream decision rules.

Each input stream is checked against STREAM_RULES in order and the first
matching rule decides whether it is dropped, copied or re-encoded. When a
stream is re-encoded, the encode parameters are built from every
applicable transform, not only the rule that matched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from vidnorm.core.codecs import (
    AUDIO_ENCODERS,
    CONTAINER_TEXT_SUBTITLE_TARGET,
    CONTAINERS_WITH_COVER_ART,
    HEVC_MP4_TAG,
    VIDEO_ENCODERS,
    codec_in,
    container_accepts,
    get_canonical_codec,
    is_text_subtitle,
)
from vidnorm.core.formats import FASTSTART_FORMATS
from vidnorm.core.video_analysis import HDRType, detect_hdr_type
from vidnorm.decision.filters import (
    BT709_COLOR_ARGS,
    deinterlace_filter,
    encoder_profile,
    exceeds_pixel_limits,
    fit_down_dimensions,
    fps_filter,
    hdr_to_sdr_filter,
    is_interlaced,
    limited_frame_rate,
    scale_filter,
    square_pixel_dimensions,
    target_pixel_format,
)
from vidnorm.decision.quality import audio_bitrate_for, crf_for, preset_for
from vidnorm.decision.types import (
    AudioEncodeParams,
    StreamAction,
    SubtitleEncodeParams,
    VideoEncodeParams,
)
from vidnorm.domain.models import (
    ContainerFormat,
    MediaDescriptor,
    StreamDescriptor,
    StreamKind,
)
from vidnorm.exceptions import UnsupportedInputError
from vidnorm.options.types import (
    MetadataStrippingMode,
    ProcessingOptions,
    ReencodeMode,
)

logger = logging.getLogger(__name__)

# ffmpeg encoder names for subtitle codecs
_SUBTITLE_ENCODERS: dict[str, str] = {
    "subrip": "srt",
    "mov_text": "mov_text",
    "webvtt": "webvtt",
    "ass": "ass",
}

# Frame rates this close to the limit count as within it
_FPS_TOLERANCE = 0.01


@dataclass(frozen=True)
class StreamContext:
    """Everything a rule may look at for one stream."""

    stream: StreamDescriptor
    media: MediaDescriptor
    options: ProcessingOptions
    target_format: ContainerFormat


@dataclass(frozen=True)
class Rule:
    """One entry of the rule table."""

    name: str
    predicate: Callable[[StreamContext], bool]
    action: StreamAction
    reason: str
    forces_rewrite: bool = True
    """False for drops that only apply when the file is rewritten anyway."""


# =============================================================================
# Predicates
# =============================================================================


def _is_video(ctx: StreamContext) -> bool:
    return ctx.stream.kind == StreamKind.VIDEO and not ctx.stream.is_thumbnail


def _is_audio(ctx: StreamContext) -> bool:
    return ctx.stream.kind == StreamKind.AUDIO


def _is_subtitle(ctx: StreamContext) -> bool:
    return ctx.stream.kind == StreamKind.SUBTITLE


def _is_thumbnail(ctx: StreamContext) -> bool:
    return ctx.stream.kind == StreamKind.VIDEO and ctx.stream.is_thumbnail


def _target_accepts(ctx: StreamContext) -> bool:
    return container_accepts(ctx.target_format, ctx.stream.kind, ctx.stream.codec)


def _display_dimensions(ctx: StreamContext) -> tuple[int, int] | None:
    """Frame size after square-pixel correction (when requested)."""
    s = ctx.stream
    if not s.width or not s.height:
        return None
    if ctx.options.force_square_pixels:
        return square_pixel_dimensions(s.width, s.height, s.sample_aspect_ratio)
    return s.width, s.height


def _needs_resize(ctx: StreamContext) -> bool:
    resize = ctx.options.resize_options
    dims = _display_dimensions(ctx)
    if resize is None or dims is None:
        return False
    return fit_down_dimensions(*dims, resize.max_width, resize.max_height) is not None


def _is_hdr(ctx: StreamContext) -> bool:
    s = ctx.stream
    return (
        detect_hdr_type(s.color_transfer, s.color_primaries, s.color_space)
        != HDRType.NONE
    )


def _needs_fps_limit(ctx: StreamContext) -> bool:
    limit = ctx.options.max_frame_rate
    rate = ctx.stream.frame_rate
    if limit is None or rate is None or ctx.stream.is_still_image:
        return False
    return rate > limit + _FPS_TOLERANCE


def _video_codec_permitted(ctx: StreamContext) -> bool:
    return (
        codec_in(ctx.stream.codec, ctx.options.result_video_codecs, StreamKind.VIDEO)
        and _target_accepts(ctx)
    )


def _audio_codec_permitted(ctx: StreamContext) -> bool:
    return (
        codec_in(ctx.stream.codec, ctx.options.result_audio_codecs, StreamKind.AUDIO)
        and _target_accepts(ctx)
    )


def _exceeds_channels(ctx: StreamContext) -> bool:
    limit = ctx.options.max_channels
    return limit is not None and (ctx.stream.channels or 0) > limit


def _exceeds_sample_rate(ctx: StreamContext) -> bool:
    limit = ctx.options.audio_sample_rate
    return limit is not None and (ctx.stream.sample_rate or 0) > limit


# =============================================================================
# Rule table
# =============================================================================

STREAM_RULES: tuple[Rule, ...] = (
    Rule(
        "unrecognized_not_preserved",
        lambda c: c.stream.is_unrecognized
        and not c.options.try_preserve_unrecognized_streams,
        StreamAction.DROP,
        "unrecognized stream",
    ),
    Rule(
        "subtitle_not_preserved",
        lambda c: _is_subtitle(c) and not c.options.try_preserve_unrecognized_streams,
        StreamAction.DROP,
        "subtitles not preserved",
    ),
    Rule(
        "unrecognized_unsupported_container",
        lambda c: c.stream.is_unrecognized and not _target_accepts(c),
        StreamAction.DROP,
        "target container cannot carry unrecognized streams",
        forces_rewrite=False,
    ),
    Rule(
        "unrecognized_preserved",
        lambda c: c.stream.is_unrecognized,
        StreamAction.COPY,
        "unrecognized stream preserved",
    ),
    Rule(
        "remove_audio",
        lambda c: _is_audio(c) and c.options.remove_audio_streams,
        StreamAction.DROP,
        "audio removal requested",
    ),
    Rule(
        "thumbnail_stripped",
        lambda c: _is_thumbnail(c)
        and c.options.metadata_stripping_mode
        in (MetadataStrippingMode.THUMBNAIL_ONLY, MetadataStrippingMode.REQUIRED),
        StreamAction.DROP,
        "thumbnail stripped",
    ),
    Rule(
        "thumbnail_unsupported_container",
        lambda c: _is_thumbnail(c) and c.target_format not in CONTAINERS_WITH_COVER_ART,
        StreamAction.DROP,
        "target container cannot carry thumbnails",
    ),
    Rule(
        "thumbnail",
        _is_thumbnail,
        StreamAction.COPY,
        "thumbnail preserved",
    ),
    Rule(
        "subtitle_unsupported_bitmap",
        lambda c: _is_subtitle(c)
        and not _target_accepts(c)
        and not is_text_subtitle(c.stream.codec),
        StreamAction.DROP,
        "bitmap subtitle not supported by target container",
    ),
    Rule(
        "subtitle_convert",
        lambda c: _is_subtitle(c) and not _target_accepts(c),
        StreamAction.REENCODE,
        "subtitle converted for target container",
    ),
    Rule(
        "subtitle",
        _is_subtitle,
        StreamAction.COPY,
        "subtitle copied",
    ),
    Rule(
        "video_codec_not_permitted",
        lambda c: _is_video(c) and not _video_codec_permitted(c),
        StreamAction.REENCODE,
        "video codec not permitted",
    ),
    Rule(
        "audio_codec_not_permitted",
        lambda c: _is_audio(c) and not _audio_codec_permitted(c),
        StreamAction.REENCODE,
        "audio codec not permitted",
    ),
    Rule(
        "deinterlace",
        lambda c: _is_video(c)
        and c.options.force_progressive_frames
        and is_interlaced(c.stream),
        StreamAction.REENCODE,
        "interlaced video",
    ),
    Rule(
        "resize",
        lambda c: _is_video(c) and _needs_resize(c),
        StreamAction.REENCODE,
        "video exceeds resize bounds",
    ),
    Rule(
        "hdr_to_sdr",
        lambda c: _is_video(c) and c.options.remap_hdr_to_sdr and _is_hdr(c),
        StreamAction.REENCODE,
        "HDR remapped to SDR",
    ),
    Rule(
        "max_channels",
        lambda c: _is_audio(c) and _exceeds_channels(c),
        StreamAction.REENCODE,
        "audio exceeds channel limit",
    ),
    Rule(
        "max_frame_rate",
        lambda c: _is_video(c) and _needs_fps_limit(c),
        StreamAction.REENCODE,
        "video exceeds frame rate limit",
    ),
    Rule(
        "pixel_format_limits",
        lambda c: _is_video(c)
        and exceeds_pixel_limits(
            c.stream, c.options.max_bits_per_channel, c.options.max_chroma_subsampling
        ),
        StreamAction.REENCODE,
        "pixel format exceeds limits",
    ),
    Rule(
        "square_pixels",
        lambda c: _is_video(c)
        and c.options.force_square_pixels
        and not c.stream.has_square_pixels,
        StreamAction.REENCODE,
        "non-square pixels",
    ),
    Rule(
        "sample_rate",
        lambda c: _is_audio(c) and _exceeds_sample_rate(c),
        StreamAction.REENCODE,
        "audio exceeds sample rate limit",
    ),
    Rule(
        "always_reencode_video",
        lambda c: _is_video(c) and c.options.video_reencode_mode == ReencodeMode.ALWAYS,
        StreamAction.REENCODE,
        "video re-encoding always requested",
    ),
    Rule(
        "always_reencode_audio",
        lambda c: _is_audio(c) and c.options.audio_reencode_mode == ReencodeMode.ALWAYS,
        StreamAction.REENCODE,
        "audio re-encoding always requested",
    ),
    Rule(
        "copy",
        lambda c: True,
        StreamAction.COPY,
        "stream already satisfies constraints",
    ),
)


def match_rule(
    ctx: StreamContext, rules: tuple[Rule, ...] = STREAM_RULES
) -> Rule:
    """Return the first rule whose predicate holds for the stream."""
    for rule in rules:
        if rule.predicate(ctx):
            logger.debug(
                "Stream %d matched rule %s",
                ctx.stream.index,
                rule.name,
                extra={"stream_index": ctx.stream.index, "rule": rule.name},
            )
            return rule
    raise RuntimeError(f"no rule matched stream {ctx.stream.index}")


# =============================================================================
# Encode parameters
# =============================================================================


def _reencode_mode(ctx: StreamContext) -> ReencodeMode | None:
    if _is_video(ctx):
        return ctx.options.video_reencode_mode
    if _is_audio(ctx):
        return ctx.options.audio_reencode_mode
    return None


def check_reencode_allowed(ctx: StreamContext, rule: Rule) -> None:
    """Reject a re-encode of a stream kind whose mode is NEVER.

    Raises:
        UnsupportedInputError: If the stream must be re-encoded but may not.
    """
    if rule.action != StreamAction.REENCODE:
        return
    if _reencode_mode(ctx) == ReencodeMode.NEVER:
        raise UnsupportedInputError(
            f"Stream {ctx.stream.index} ({ctx.stream.kind.value}) requires "
            f"re-encoding ({rule.reason}) but re-encoding is disabled."
        )


def _choose_codec(
    ctx: StreamContext,
    permitted: tuple[str, ...],
    encoders: dict[str, str],
) -> str:
    kind = ctx.stream.kind
    source = get_canonical_codec(ctx.stream.codec, kind)
    candidates = [source] if codec_in(source, permitted, kind) else []
    candidates += [get_canonical_codec(c, kind) for c in permitted]
    for codec in candidates:
        if codec in encoders and container_accepts(ctx.target_format, kind, codec):
            return codec
    raise UnsupportedInputError(
        f"None of the permitted {kind.value} codecs "
        f"({', '.join(permitted)}) can be encoded into {ctx.target_format.value}."
    )


def build_video_params(ctx: StreamContext) -> VideoEncodeParams:
    """Collect every applicable video transform into encoder settings.

    Filter order: deinterlace, fps, scale, square pixels, HDR tonemap,
    pixel format.
    """
    s = ctx.stream
    opts = ctx.options
    codec = _choose_codec(ctx, opts.result_video_codecs, VIDEO_ENCODERS)
    filters: list[str] = []

    if opts.force_progressive_frames and is_interlaced(s):
        filters.append(deinterlace_filter(s.field_order))

    if _needs_fps_limit(ctx):
        rate = limited_frame_rate(s.frame_rate, opts.max_frame_rate)
        if rate is not None:
            filters.append(fps_filter(rate))

    dims = _display_dimensions(ctx)
    square = opts.force_square_pixels and not s.has_square_pixels
    if dims is not None:
        resized = None
        if opts.resize_options is not None:
            resized = fit_down_dimensions(
                *dims, opts.resize_options.max_width, opts.resize_options.max_height
            )
        if resized is not None:
            filters.append(scale_filter(*resized))
        elif square:
            filters.append(scale_filter(*dims))
        if square:
            filters.append("setsar=1")

    bits, chroma, pix_fmt = target_pixel_format(
        s, codec, opts.max_bits_per_channel, opts.max_chroma_subsampling
    )
    color_args: tuple[str, ...] = ()
    if opts.remap_hdr_to_sdr and _is_hdr(ctx):
        filters.append(hdr_to_sdr_filter(s.color_range, pix_fmt))
        color_args = BT709_COLOR_ARGS
    else:
        filters.append(f"format={pix_fmt}")

    codec_tag = None
    if codec == "hevc" and ctx.target_format in FASTSTART_FORMATS:
        codec_tag = HEVC_MP4_TAG

    return VideoEncodeParams(
        codec=codec,
        encoder=VIDEO_ENCODERS[codec],
        crf=crf_for(codec, opts.video_quality),
        preset=preset_for(codec, opts.video_compression_level),
        filters=tuple(filters),
        pixel_format=pix_fmt,
        profile=encoder_profile(codec, bits, chroma),
        codec_tag=codec_tag,
        color_args=color_args,
    )


def build_audio_params(ctx: StreamContext) -> AudioEncodeParams:
    """Collect every applicable audio transform into encoder settings."""
    s = ctx.stream
    opts = ctx.options
    codec = _choose_codec(ctx, opts.result_audio_codecs, AUDIO_ENCODERS)

    channels = opts.max_channels if _exceeds_channels(ctx) else None
    sample_rate = opts.audio_sample_rate if _exceeds_sample_rate(ctx) else None
    effective_channels = channels or s.channels or 2

    return AudioEncodeParams(
        codec=codec,
        encoder=AUDIO_ENCODERS[codec],
        bitrate=audio_bitrate_for(codec, opts.audio_quality, effective_channels),
        channels=channels,
        sample_rate=sample_rate,
    )


def build_subtitle_params(ctx: StreamContext) -> SubtitleEncodeParams:
    target = CONTAINER_TEXT_SUBTITLE_TARGET[ctx.target_format]
    return SubtitleEncodeParams(codec=_SUBTITLE_ENCODERS[target])
