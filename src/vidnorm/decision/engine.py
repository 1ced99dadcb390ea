"""Decision engine entry points.

resolve() is pure and deterministic: the same descriptor and options
always produce the same DecisionPlan, and nothing here touches the
filesystem or spawns processes.
"""

from __future__ import annotations

import logging

from vidnorm.decision.container import choose_target_format, decide_container
from vidnorm.decision.rules import (
    STREAM_RULES,
    Rule,
    StreamContext,
    build_audio_params,
    build_subtitle_params,
    build_video_params,
    check_reencode_allowed,
    match_rule,
)
from vidnorm.decision.types import (
    ContainerAction,
    DecisionPlan,
    StreamAction,
    StreamDecision,
)
from vidnorm.domain.models import (
    ContainerFormat,
    MediaDescriptor,
    StreamDescriptor,
    StreamKind,
)
from vidnorm.exceptions import UnsupportedInputError
from vidnorm.options.types import MetadataStrippingMode, ProcessingOptions

logger = logging.getLogger(__name__)


def validate_source(media: MediaDescriptor, options: ProcessingOptions) -> None:
    """Reject sources that cannot be processed under the given options.

    Raises:
        UnsupportedInputError: If the source is structurally unusable or
            exceeds the configured source limits.
    """
    has_video = bool(media.video_streams)
    has_audio = bool(media.audio_streams)
    if not has_video and not has_audio:
        raise UnsupportedInputError(
            "The source video contains no audio or video streams."
        )
    if options.remove_audio_streams and not has_video:
        raise UnsupportedInputError("The source video contains no video streams.")
    if media.container_format is None:
        raise UnsupportedInputError(
            f"Unrecognized container format: {media.format_name}"
        )

    limits = options.source_limits
    for stream in media.video_streams:
        if stream.is_thumbnail:
            continue
        if limits.max_width and (stream.width or 0) > limits.max_width:
            raise UnsupportedInputError(
                f"The video width ({stream.width}) exceeds the maximum allowed "
                f"({limits.max_width})."
            )
        if limits.max_height and (stream.height or 0) > limits.max_height:
            raise UnsupportedInputError(
                f"The video height ({stream.height}) exceeds the maximum allowed "
                f"({limits.max_height})."
            )
    if (
        limits.max_duration_seconds
        and media.duration_seconds is not None
        and media.duration_seconds > limits.max_duration_seconds
    ):
        raise UnsupportedInputError(
            f"The video duration ({media.duration_seconds:.3f}s) exceeds the "
            f"maximum allowed ({limits.max_duration_seconds}s)."
        )
    if limits.max_streams and len(media.streams) > limits.max_streams:
        raise UnsupportedInputError(
            f"The number of streams ({len(media.streams)}) exceeds the maximum "
            f"allowed ({limits.max_streams})."
        )


def _disposition(stream: StreamDescriptor, action: StreamAction) -> str:
    flags = []
    if stream.is_default:
        flags.append("default")
    if stream.is_thumbnail and action == StreamAction.COPY:
        flags.append("attached_pic")
    return "+".join(flags) if flags else "0"


def resolve_stream(
    ctx: StreamContext,
    output_index: int | None,
    rules: tuple[Rule, ...] = STREAM_RULES,
) -> StreamDecision:
    """Decide the action and encode parameters for one stream.

    Raises:
        UnsupportedInputError: If the stream must be re-encoded but the
            re-encode mode for its kind is NEVER, or no permitted codec can
            be produced.
    """
    stream = ctx.stream
    rule = match_rule(ctx, rules)
    check_reencode_allowed(ctx, rule)

    video = audio = subtitle = None
    if rule.action == StreamAction.REENCODE:
        if stream.kind == StreamKind.VIDEO:
            video = build_video_params(ctx)
        elif stream.kind == StreamKind.AUDIO:
            audio = build_audio_params(ctx)
        elif stream.kind == StreamKind.SUBTITLE:
            subtitle = build_subtitle_params(ctx)

    keep_rotation = (
        ctx.options.metadata_stripping_mode != MetadataStrippingMode.REQUIRED
    )
    return StreamDecision(
        input_index=stream.index,
        kind=stream.kind,
        action=rule.action,
        rule=rule.name,
        reason=rule.reason,
        output_index=output_index if rule.action != StreamAction.DROP else None,
        video=video,
        audio=audio,
        subtitle=subtitle,
        language=stream.language,
        disposition=_disposition(stream, rule.action),
        rotation_degrees=stream.rotation_degrees if keep_rotation else 0,
        forces_rewrite=rule.forces_rewrite,
    )


def _resolve_streams(
    media: MediaDescriptor,
    options: ProcessingOptions,
    target_format: ContainerFormat,
    rules: tuple[Rule, ...],
) -> list[StreamDecision]:
    decisions: list[StreamDecision] = []
    next_output = 0
    for stream in media.streams:
        ctx = StreamContext(
            stream=stream, media=media, options=options, target_format=target_format
        )
        decision = resolve_stream(ctx, next_output, rules)
        if decision.is_kept:
            next_output += 1
        decisions.append(decision)
    return decisions


def resolve(media: MediaDescriptor, options: ProcessingOptions) -> DecisionPlan:
    """Resolve a probed source and options into a DecisionPlan.

    Args:
        media: Probed source.
        options: Fully merged processing options.

    Returns:
        DecisionPlan with one decision per input stream, in input order.

    Raises:
        UnsupportedInputError: If the source fails validation or cannot be
            brought within the constraints.
    """
    validate_source(media, options)
    target_format = choose_target_format(media, options)
    decisions = _resolve_streams(media, options, target_format, STREAM_RULES)

    if not any(
        d.is_kept and d.kind in (StreamKind.VIDEO, StreamKind.AUDIO)
        for d in decisions
    ):
        raise UnsupportedInputError(
            "No audio or video streams would remain in the output."
        )

    container = decide_container(media, options, decisions, target_format)
    if container.action == ContainerAction.NOOP and any(
        not d.forces_rewrite for d in decisions
    ):
        # An untouched file keeps the streams a rewrite would have dropped
        logger.debug("No rewrite needed; keeping streams dropped only on rewrite")
        rules = tuple(r for r in STREAM_RULES if r.forces_rewrite)
        decisions = _resolve_streams(media, options, target_format, rules)
        container = decide_container(media, options, decisions, target_format)
    return DecisionPlan(
        source=media,
        decisions=tuple(decisions),
        container_action=container.action,
        target_format=container.target_format,
        strip_global_metadata=container.strip_global_metadata,
        strip_stream_metadata=container.strip_stream_metadata,
        map_chapters=container.map_chapters,
        faststart=container.faststart,
        preserve_start_time=container.preserve_start_time,
        clear_rotation=container.clear_rotation,
        copy_unknown=options.try_preserve_unrecognized_streams,
        reasons=container.reasons,
    )
