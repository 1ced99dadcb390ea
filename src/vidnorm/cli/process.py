"""CLI process command: normalize one media file."""

import json
import logging
import sys
from pathlib import Path

import click

from vidnorm.cli.exit_codes import ExitCode
from vidnorm.cli.options_loader import resolve_options_or_exit
from vidnorm.cli.output import error_exit, fail
from vidnorm.exceptions import VidnormError
from vidnorm.processing import ProcessingResult, VideoProcessor

logger = logging.getLogger(__name__)


def _result_to_dict(result: ProcessingResult) -> dict:
    return {
        "changed": result.changed,
        "output_path": str(result.output_path),
        "format": result.format.value,
        "extension": result.extension,
        "container_action": result.plan.container_action.value,
        "elapsed_seconds": (
            round(result.outcome.elapsed_seconds, 3) if result.outcome else None
        ),
    }


class _PercentReporter:
    """Writes whole-percent progress updates to stderr."""

    def __init__(self) -> None:
        self._last = -1

    def __call__(self, fraction: float) -> None:
        percent = int(fraction * 100)
        if percent != self._last:
            self._last = percent
            click.echo(f"\rProgress: {percent:3d}%", err=True, nl=percent >= 100)


@click.command("process")
@click.argument("file", type=click.Path(path_type=Path))
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--preset", default=None, help="Named option preset.")
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML processing profile merged over the preset.",
)
@click.option(
    "--timeout",
    type=click.IntRange(min=1),
    default=None,
    help="ffmpeg timeout in seconds (overrides config).",
)
@click.option("--progress", is_flag=True, help="Show encoding progress.")
@click.option("--json", "json_output", is_flag=True, help="Print the result as JSON.")
@click.pass_context
def process_command(
    ctx: click.Context,
    file: Path,
    output_dir: Path,
    preset: str | None,
    profile_path: Path | None,
    timeout: int | None,
    progress: bool,
    json_output: bool,
) -> None:
    """Normalize FILE, writing any new file into OUTPUT_DIR.

    When FILE already satisfies the options it is left untouched and no
    file is written.
    """
    if not file.exists():
        error_exit(f"File not found: {file}", ExitCode.USAGE_ERROR, json_output)

    config = ctx.obj["config"]
    options = resolve_options_or_exit(preset, profile_path, config, json_output)

    try:
        processor = VideoProcessor.from_config(config)
        result = processor.process(
            file,
            output_dir,
            options,
            timeout=timeout,
            progress_callback=_PercentReporter() if progress else None,
        )
    except VidnormError as e:
        fail(e, json_output)
    except KeyboardInterrupt as e:
        fail(e, json_output)

    if json_output:
        click.echo(json.dumps(_result_to_dict(result), indent=2))
    elif result.changed:
        click.echo(
            f"{result.plan.container_action.value}: {result.output_path} "
            f"({result.format.value})"
        )
    else:
        click.echo(f"unchanged: {result.output_path} ({result.format.value})")
    sys.exit(ExitCode.SUCCESS)
