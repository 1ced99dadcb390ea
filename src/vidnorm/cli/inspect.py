"""CLI inspect command for vidnorm."""

import logging
import sys
from pathlib import Path

import click

from vidnorm.cli.exit_codes import ExitCode
from vidnorm.cli.output import error_exit, fail
from vidnorm.exceptions import VidnormError
from vidnorm.introspector import FFprobeIntrospector, format_human, format_json
from vidnorm.tools import require_tool

logger = logging.getLogger(__name__)


@click.command("inspect")
@click.argument("file", type=click.Path(path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["human", "json"]),
    default="human",
    help="Output format (default: human)",
)
@click.pass_context
def inspect_command(ctx: click.Context, file: Path, output_format: str) -> None:
    """Probe a media file and print its streams.

    FILE is the path to the media file to inspect. The container is always
    taken from the probe; the file extension is ignored.
    """
    json_output = output_format == "json"
    if not file.exists():
        error_exit(f"File not found: {file}", ExitCode.USAGE_ERROR, json_output)

    config = ctx.obj["config"]
    try:
        introspector = FFprobeIntrospector(require_tool("ffprobe", config))
        descriptor = introspector.get_descriptor(file)
    except VidnormError as e:
        fail(e, json_output)

    if json_output:
        click.echo(format_json(descriptor))
    else:
        click.echo(format_human(descriptor))
    sys.exit(ExitCode.SUCCESS)
