"""Container-level decision.

Decides whether the file is returned unchanged, remuxed or re-encoded,
which container is written, and what happens to file-level metadata.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from vidnorm.core.formats import FASTSTART_FORMATS, WRITABLE_FORMATS
from vidnorm.decision.types import (
    ContainerAction,
    ContainerDecision,
    StreamAction,
    StreamDecision,
)
from vidnorm.domain.models import ContainerFormat, MediaDescriptor, StreamKind
from vidnorm.exceptions import UnsupportedInputError
from vidnorm.options.types import MetadataStrippingMode, ProcessingOptions

logger = logging.getLogger(__name__)


def choose_target_format(
    media: MediaDescriptor, options: ProcessingOptions
) -> ContainerFormat:
    """Pick the container written when the file is rewritten.

    The probed container is kept when it is permitted and writable.
    Otherwise the first writable permitted format is used, in the order
    MP4, MOV, MKV, WebM.

    Raises:
        UnsupportedInputError: If no permitted format can be written.
    """
    probed = media.container_format
    if probed in options.result_formats and probed in WRITABLE_FORMATS:
        return probed
    for fmt in WRITABLE_FORMATS:
        if fmt in options.result_formats:
            return fmt
    raise UnsupportedInputError("None of the result formats can be written.")


def decide_container(
    media: MediaDescriptor,
    options: ProcessingOptions,
    decisions: Sequence[StreamDecision],
    target_format: ContainerFormat | None = None,
) -> ContainerDecision:
    """Decide the file-level action for a set of stream decisions.

    Args:
        media: Probed source.
        options: Resolved processing options.
        decisions: Per-stream decisions, in input order.
        target_format: Container the stream rules were evaluated against.
            Defaults to choose_target_format().

    Returns:
        ContainerDecision.
    """
    if target_format is None:
        target_format = choose_target_format(media, options)
    mode = options.metadata_stripping_mode
    probed = media.container_format
    reasons: list[str] = []

    if probed not in options.result_formats:
        reasons.append(
            f"container {probed.value if probed else media.format_name} "
            "is not a result format"
        )
    if mode == MetadataStrippingMode.REQUIRED:
        reasons.append("metadata stripping required")
    if (
        options.force_progressive_download
        and target_format in FASTSTART_FORMATS
        and not (media.faststart and probed == target_format)
    ):
        reasons.append("progressive download layout required")
    if any(d.action == StreamAction.DROP and d.forces_rewrite for d in decisions):
        reasons.append("streams dropped")
    reencoded = any(d.action == StreamAction.REENCODE for d in decisions)
    if reencoded:
        reasons.append("streams re-encoded")

    if reencoded:
        action = ContainerAction.REENCODE
    elif reasons:
        action = ContainerAction.REMUX
    else:
        action = ContainerAction.NOOP

    rewriting = action != ContainerAction.NOOP
    strip = mode == MetadataStrippingMode.REQUIRED or (
        mode == MetadataStrippingMode.PREFERRED and rewriting
    )
    clear_rotation = mode == MetadataStrippingMode.REQUIRED and any(
        d.is_kept
        and d.kind == StreamKind.VIDEO
        and media.stream(d.input_index).rotation_degrees != 0
        for d in decisions
    )

    decision = ContainerDecision(
        action=action,
        target_format=target_format if rewriting else probed,
        strip_global_metadata=strip,
        strip_stream_metadata=strip,
        map_chapters=not strip,
        faststart=(
            rewriting
            and options.force_progressive_download
            and target_format in FASTSTART_FORMATS
        ),
        preserve_start_time=mode != MetadataStrippingMode.REQUIRED,
        clear_rotation=clear_rotation,
        reasons=tuple(reasons),
    )
    logger.info(
        "Container action for %s: %s -> %s%s",
        media.path,
        decision.action.value,
        decision.target_format.value,
        f" ({'; '.join(reasons)})" if reasons else "",
        extra={
            "container_action": decision.action.value,
            "target_format": decision.target_format.value,
        },
    )
    return decision
