"""CLI thumbnail command: extract one still image."""

import logging
import sys
from pathlib import Path

import click

from vidnorm.cli.exit_codes import ExitCode
from vidnorm.cli.output import error_exit, fail
from vidnorm.exceptions import VidnormError
from vidnorm.options import THUMBNAIL_STANDARD, ThumbnailProcessingOptions
from vidnorm.processing import ThumbnailProcessor

logger = logging.getLogger(__name__)


def build_thumbnail_options(
    timestamp: float | None,
    fraction: float | None,
    include_thumbnails: bool,
    remap_hdr: bool,
    square_pixels: bool,
) -> ThumbnailProcessingOptions:
    """Thumbnail options from CLI flags.

    With neither --timestamp nor --fraction, the standard timestamps apply.

    Raises:
        OutOfRangeParameterError: If a value is out of range.
    """
    if timestamp is None and fraction is None:
        timestamp = THUMBNAIL_STANDARD.image_timestamp
        fraction = THUMBNAIL_STANDARD.image_timestamp_fraction
    return ThumbnailProcessingOptions(
        image_timestamp=timestamp,
        image_timestamp_fraction=fraction,
        include_thumbnail_video_streams=include_thumbnails,
        remap_hdr_to_sdr=remap_hdr,
        force_square_pixels=square_pixels,
    )


@click.command("thumbnail")
@click.argument("file", type=click.Path(path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--timestamp", type=float, default=None, help="Seconds into the video.")
@click.option(
    "--fraction",
    type=float,
    default=None,
    help="Fraction of the duration (0-1). The earlier of the two times wins.",
)
@click.option(
    "--include-thumbnails",
    is_flag=True,
    help="Allow embedded cover art to be used as the source.",
)
@click.option("--no-hdr-remap", is_flag=True, help="Do not tone-map HDR to SDR.")
@click.option("--no-square-pixels", is_flag=True, help="Keep non-square pixels.")
@click.pass_context
def thumbnail_command(
    ctx: click.Context,
    file: Path,
    output: Path,
    timestamp: float | None,
    fraction: float | None,
    include_thumbnails: bool,
    no_hdr_remap: bool,
    no_square_pixels: bool,
) -> None:
    """Extract a PNG thumbnail from FILE into OUTPUT."""
    if not file.exists():
        error_exit(f"File not found: {file}", ExitCode.USAGE_ERROR)

    config = ctx.obj["config"]
    try:
        options = build_thumbnail_options(
            timestamp,
            fraction,
            include_thumbnails,
            remap_hdr=not no_hdr_remap,
            square_pixels=not no_square_pixels,
        )
        processor = ThumbnailProcessor.from_config(config)
        result = processor.extract(file, output, options)
    except VidnormError as e:
        fail(e)
    except KeyboardInterrupt as e:
        fail(e)

    size = f" {result.width}x{result.height}" if result.width else ""
    click.echo(f"thumbnail: {result.output_path}{size}")
    sys.exit(ExitCode.SUCCESS)
