"""Translate a DecisionPlan into a single ffmpeg invocation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from vidnorm.core.codecs import HEVC_MP4_TAG, get_canonical_codec
from vidnorm.core.formats import FASTSTART_FORMATS
from vidnorm.decision.types import DecisionPlan, StreamAction, StreamDecision
from vidnorm.domain.models import ContainerFormat, StreamKind


@dataclass(frozen=True)
class Directive:
    """A ready-to-run ffmpeg command.

    ``args`` holds every argument except the executable and the output
    path, so the runner can redirect output to a temporary file.
    """

    args: tuple[str, ...]
    input_path: Path
    output_path: Path
    description: str
    output_format: ContainerFormat | None = None

    def argv(
        self, ffmpeg_path: Path | str, output_path: Path | None = None
    ) -> list[str]:
        """Full argument list, optionally writing to a different path."""
        return [str(ffmpeg_path), *self.args, str(output_path or self.output_path)]


def _stream_codec_args(plan: DecisionPlan, decision: StreamDecision) -> list[str]:
    o = decision.output_index
    if decision.action == StreamAction.COPY:
        args = [f"-c:{o}", "copy"]
        source = plan.source.stream(decision.input_index)
        if (
            decision.kind == StreamKind.VIDEO
            and not source.is_thumbnail
            and get_canonical_codec(source.codec, StreamKind.VIDEO) == "hevc"
            and plan.target_format in FASTSTART_FORMATS
        ):
            args += [f"-tag:{o}", HEVC_MP4_TAG]
        return args

    if decision.video is not None:
        v = decision.video
        args = [f"-c:{o}", v.encoder]
        if v.crf is not None:
            args += [f"-crf:{o}", str(v.crf)]
            if v.codec == "vp9":
                args += [f"-b:{o}", "0"]
        if v.preset is not None:
            args += [f"-preset:{o}", v.preset]
        if v.filter_chain:
            args += [f"-filter:{o}", v.filter_chain]
        if v.profile is not None:
            args += [f"-profile:{o}", v.profile]
        if v.codec_tag is not None:
            args += [f"-tag:{o}", v.codec_tag]
        for option, value in zip(v.color_args[::2], v.color_args[1::2]):
            args += [f"{option}:{o}", value]
        return args

    if decision.audio is not None:
        a = decision.audio
        args = [f"-c:{o}", a.encoder]
        if a.bitrate is not None:
            args += [f"-b:{o}", str(a.bitrate)]
        if a.channels is not None:
            args += [f"-ac:{o}", str(a.channels)]
        if a.sample_rate is not None:
            args += [f"-ar:{o}", str(a.sample_rate)]
        return args

    if decision.subtitle is not None:
        return [f"-c:{o}", decision.subtitle.codec]

    raise ValueError(
        f"Re-encode decision for stream {decision.input_index} has no parameters"
    )


def emit(plan: DecisionPlan, output_path: Path) -> Directive:
    """Build the ffmpeg directive for a plan.

    Argument order: global flags, input options, input, chapter mapping,
    stream maps (with negative maps for drops), metadata mapping,
    per-stream codec and filter options, language tags, dispositions,
    movflags, error handling, output.

    Args:
        plan: A plan whose container action is not NOOP.
        output_path: Final output file.

    Returns:
        Directive for exactly one ffmpeg run.

    Raises:
        ValueError: If the plan requires no work.
    """
    if plan.is_noop:
        raise ValueError("A NOOP plan has no ffmpeg directive")

    media = plan.source
    args: list[str] = ["-nostdin", "-hide_banner", "-y", "-noautorotate"]

    if plan.clear_rotation:
        for decision in plan.kept:
            source = media.stream(decision.input_index)
            if decision.kind == StreamKind.VIDEO and source.rotation_degrees:
                position = media.index_within_kind(decision.input_index)
                args += [f"-display_rotation:v:{position}", "0"]

    if plan.preserve_start_time and media.start_time_offset:
        args.append("-copyts")

    args += ["-i", str(media.path)]
    args += ["-map_chapters", "0" if plan.map_chapters else "-1"]

    args += ["-map", "0"]
    for decision in plan.dropped:
        args += ["-map", f"-0:{decision.input_index}"]

    if plan.strip_global_metadata:
        args += ["-map_metadata:g", "-1"]
    if plan.strip_stream_metadata:
        for decision in plan.kept:
            args += [f"-map_metadata:s:{decision.output_index}", "-1"]

    for decision in plan.kept:
        args += _stream_codec_args(plan, decision)

    for decision in plan.kept:
        if decision.language != "und":
            args += [
                f"-metadata:s:{decision.output_index}",
                f"language={decision.language}",
            ]

    for decision in plan.kept:
        args += [f"-disposition:{decision.output_index}", decision.disposition]

    if plan.target_format in FASTSTART_FORMATS:
        flags = "+use_metadata_tags"
        if plan.faststart:
            flags = "+faststart" + flags
        args += ["-movflags", flags]

    if plan.copy_unknown:
        args.append("-copy_unknown")
    args.append("-xerror")
    args += ["-f", plan.target_format.value]

    return Directive(
        args=tuple(args),
        input_path=media.path,
        output_path=output_path,
        description=(
            f"{plan.container_action.value} {media.path.name} "
            f"-> {plan.target_format.value}"
        ),
        output_format=plan.target_format,
    )
