"""Scratch outputs for ffmpeg runs.

Every run writes into its own scratch file and the result is moved to the
directive's output path only once it checks out, so a failed or
concurrent run never leaves a partial file at the final path.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from vidnorm.exceptions import WorkerFailureError
from vidnorm.executor.directive import Directive

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".vidnorm_tmp_"

# Container outputs below this share of the input size are logged
SUSPICIOUS_SIZE_RATIO = 0.01


def reserve_temp_output(output_path: Path, temp_dir: Path | None = None) -> Path:
    """Create an empty scratch file for one ffmpeg run.

    The name is unique per call and keeps the output's suffix, which is
    what ffmpeg uses to pick the image muxer for stills.

    Args:
        output_path: Final output path.
        temp_dir: Directory for scratch files (None = beside the output).

    Raises:
        WorkerFailureError: If the scratch file cannot be created.
    """
    directory = temp_dir or output_path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix=f"{TEMP_PREFIX}{output_path.stem}_",
            suffix=output_path.suffix,
            dir=directory,
        )
    except OSError as e:
        raise WorkerFailureError(
            f"Could not create a scratch file in {directory}: {e}"
        ) from e
    os.close(fd)
    return Path(name)


def check_output(temp_path: Path, directive: Directive) -> str | None:
    """Return why a finished run's scratch file is unusable, or None.

    For container outputs an unusually small result is logged, since
    dropping streams can legitimately shrink a file a lot.
    """
    try:
        output_size = temp_path.stat().st_size
    except FileNotFoundError:
        return f"ffmpeg wrote no output for {directive.description}"
    except OSError as e:
        return f"Could not stat output of {directive.description}: {e}"
    if output_size == 0:
        return f"ffmpeg wrote an empty output for {directive.description}"

    if directive.output_format is None:
        return None
    try:
        input_size = directive.input_path.stat().st_size
    except OSError:
        return None
    if input_size and output_size / input_size < SUSPICIOUS_SIZE_RATIO:
        logger.warning(
            "Output of %s is only %.1f%% of the input size",
            directive.description,
            100 * output_size / input_size,
            extra={"output_format": directive.output_format.value},
        )
    return None


def move_into_place(temp_path: Path, output_path: Path) -> None:
    """Move a checked scratch file to its final path.

    Raises:
        WorkerFailureError: If the move fails.
    """
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(temp_path), str(output_path))
    except OSError as e:
        raise WorkerFailureError(f"Failed to move output to {output_path}: {e}") from e


def discard(temp_path: Path) -> None:
    """Remove a scratch file; failures are logged, not raised."""
    try:
        temp_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove scratch file %s: %s", temp_path, e)
        return
    logger.debug("Removed scratch file %s", temp_path)
