"""Formatters for decision plans.

Renders a DecisionPlan and its ffmpeg directive for the ``plan`` command,
either as aligned text or as JSON.
"""

from __future__ import annotations

import json
import shlex
from typing import Any

from vidnorm.decision import DecisionPlan, StreamAction, StreamDecision
from vidnorm.executor import Directive


def _params_summary(decision: StreamDecision) -> str:
    if decision.video is not None:
        v = decision.video
        parts = [v.encoder]
        if v.crf is not None:
            parts.append(f"crf={v.crf}")
        if v.preset:
            parts.append(f"preset={v.preset}")
        if v.pixel_format:
            parts.append(v.pixel_format)
        if v.filter_chain:
            parts.append(f"filters={v.filter_chain}")
        return " ".join(parts)
    if decision.audio is not None:
        a = decision.audio
        parts = [a.encoder]
        if a.bitrate:
            parts.append(f"{a.bitrate // 1000}k")
        if a.channels:
            parts.append(f"{a.channels}ch")
        if a.sample_rate:
            parts.append(f"{a.sample_rate}Hz")
        return " ".join(parts)
    if decision.subtitle is not None:
        return decision.subtitle.codec
    return ""


def format_decision_line(plan: DecisionPlan, decision: StreamDecision) -> str:
    """One-line summary of a stream decision."""
    stream = plan.source.stream(decision.input_index)
    codec = stream.codec or "unknown"
    line = (
        f"#{decision.input_index} {decision.kind.value:<8} {codec:<10} "
        f"{decision.action.value:<8}"
    )
    if decision.action == StreamAction.REENCODE:
        line += f" -> {_params_summary(decision)}"
    if decision.output_index is not None:
        line += f" [out #{decision.output_index}]"
    return f"{line}  ({decision.rule}: {decision.reason})"


def format_plan_human(
    plan: DecisionPlan,
    directive: Directive | None,
    ffmpeg: str = "ffmpeg",
) -> str:
    """Format a plan for terminal output.

    Args:
        plan: The resolved plan.
        directive: The ffmpeg directive, or None for a NOOP plan.
        ffmpeg: Executable name shown in the command line.

    Returns:
        Multi-line string.
    """
    lines = [
        f"File: {plan.source.path}",
        f"Action: {plan.container_action.value.upper()} -> {plan.target_format.value}",
    ]
    if plan.reasons:
        lines.append("Reasons:")
        lines.extend(f"  - {reason}" for reason in plan.reasons)

    lines.append("")
    lines.append("Streams:")
    lines.extend(f"  {format_decision_line(plan, d)}" for d in plan.decisions)

    lines.append("")
    if directive is None:
        lines.append("No changes needed; the source is returned as-is.")
    else:
        lines.append("Command:")
        lines.append(f"  {shlex.join(directive.argv(ffmpeg))}")
    return "\n".join(lines)


def decision_to_dict(decision: StreamDecision) -> dict[str, Any]:
    """Convert a StreamDecision to a JSON-serializable dict."""
    data: dict[str, Any] = {
        "input_index": decision.input_index,
        "output_index": decision.output_index,
        "kind": decision.kind.value,
        "action": decision.action.value,
        "rule": decision.rule,
        "reason": decision.reason,
        "language": decision.language,
        "disposition": decision.disposition,
    }
    if decision.video is not None:
        v = decision.video
        data["video"] = {
            "codec": v.codec,
            "encoder": v.encoder,
            "crf": v.crf,
            "preset": v.preset,
            "pixel_format": v.pixel_format,
            "profile": v.profile,
            "filters": list(v.filters),
        }
    if decision.audio is not None:
        a = decision.audio
        data["audio"] = {
            "codec": a.codec,
            "encoder": a.encoder,
            "bitrate": a.bitrate,
            "channels": a.channels,
            "sample_rate": a.sample_rate,
        }
    if decision.subtitle is not None:
        data["subtitle"] = {"codec": decision.subtitle.codec}
    return data


def plan_to_dict(
    plan: DecisionPlan,
    directive: Directive | None,
    ffmpeg: str = "ffmpeg",
) -> dict[str, Any]:
    """Convert a plan and its directive to a JSON-serializable dict."""
    return {
        "source": str(plan.source.path),
        "container_action": plan.container_action.value,
        "target_format": plan.target_format.value,
        "reasons": list(plan.reasons),
        "strip_global_metadata": plan.strip_global_metadata,
        "faststart": plan.faststart,
        "streams": [decision_to_dict(d) for d in plan.decisions],
        "output_path": str(directive.output_path) if directive else None,
        "argv": directive.argv(ffmpeg) if directive else None,
    }


def format_plan_json(
    plan: DecisionPlan,
    directive: Directive | None,
    ffmpeg: str = "ffmpeg",
) -> str:
    """Format a plan as indented JSON."""
    return json.dumps(plan_to_dict(plan, directive, ffmpeg), indent=2)
