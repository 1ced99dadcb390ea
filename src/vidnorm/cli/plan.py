"""CLI plan command: show what would be done without running ffmpeg."""

import logging
import sys
from pathlib import Path

import click

from vidnorm.cli.exit_codes import ExitCode
from vidnorm.cli.options_loader import resolve_options_or_exit
from vidnorm.cli.output import error_exit, fail
from vidnorm.cli.plan_formatter import format_plan_human, format_plan_json
from vidnorm.decision import resolve
from vidnorm.exceptions import VidnormError
from vidnorm.executor import emit
from vidnorm.introspector import FFprobeIntrospector
from vidnorm.processing import output_path_for
from vidnorm.tools import find_tool, require_tool

logger = logging.getLogger(__name__)


@click.command("plan")
@click.argument("file", type=click.Path(path_type=Path))
@click.option("--preset", default=None, help="Named option preset.")
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML processing profile merged over the preset.",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory the output would be written to (default: FILE's directory).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["human", "json"]),
    default="human",
    help="Output format (default: human)",
)
@click.pass_context
def plan_command(
    ctx: click.Context,
    file: Path,
    preset: str | None,
    profile_path: Path | None,
    output_dir: Path | None,
    output_format: str,
) -> None:
    """Show per-stream decisions and the ffmpeg command for FILE.

    Nothing is written.
    """
    json_output = output_format == "json"
    if not file.exists():
        error_exit(f"File not found: {file}", ExitCode.USAGE_ERROR, json_output)

    config = ctx.obj["config"]
    options = resolve_options_or_exit(preset, profile_path, config, json_output)

    try:
        introspector = FFprobeIntrospector(require_tool("ffprobe", config))
        plan = resolve(introspector.get_descriptor(file), options)
    except VidnormError as e:
        fail(e, json_output)

    directive = None
    if not plan.is_noop:
        target_dir = output_dir if output_dir is not None else file.parent
        directive = emit(plan, output_path_for(file, target_dir, plan.target_format))

    ffmpeg_path = find_tool("ffmpeg", config)
    ffmpeg = str(ffmpeg_path) if ffmpeg_path else "ffmpeg"
    if json_output:
        click.echo(format_plan_json(plan, directive, ffmpeg))
    else:
        click.echo(format_plan_human(plan, directive, ffmpeg))
    sys.exit(ExitCode.SUCCESS)
