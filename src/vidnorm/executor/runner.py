"""Run ffmpeg directives with timeout, cancellation and progress.

The runner writes to a temp file next to the output (or in a configured
temp directory) and moves it into place only after ffmpeg succeeds and
the output validates. A partial output is never left at the final path.
"""

from __future__ import annotations

import logging
import queue
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from vidnorm.core.subprocess_utils import run_command, tail_lines
from vidnorm.exceptions import (
    ProcessingCancelledError,
    UnsupportedInputError,
    WorkerFailureError,
)
from vidnorm.executor import ffmpeg_utils
from vidnorm.executor.directive import Directive
from vidnorm.executor.progress import ProgressTracker, parse_stderr_progress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]
"""Receives the completion fraction in [0, 1]."""


class RunStatus(Enum):
    """How an ffmpeg process ended."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Outcome:
    """Result of a successful ffmpeg run."""

    output_path: Path
    return_code: int
    elapsed_seconds: float
    stderr_tail: str = ""


class FFmpegRunner:
    """Runs one ffmpeg directive at a time.

    Create one runner per request; it holds no state between runs.
    """

    DEFAULT_TIMEOUT: int = 1800  # 30 minutes
    STDERR_DRAIN_TIMEOUT: float = 5.0  # Timeout for draining stderr after exit
    POLL_INTERVAL: float = 0.5

    def __init__(
        self,
        ffmpeg_path: Path,
        timeout: float | None = DEFAULT_TIMEOUT,
        temp_dir: Path | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            ffmpeg_path: Path to the ffmpeg executable.
            timeout: Default timeout in seconds. None means no limit.
            temp_dir: Directory for temp output files (None = beside output).
        """
        self._ffmpeg_path = ffmpeg_path
        self._timeout = timeout
        self._temp_dir = temp_dir

    @property
    def ffmpeg_path(self) -> Path:
        return self._ffmpeg_path

    def run(
        self,
        directive: Directive,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
        duration_seconds: float | None = None,
    ) -> Outcome:
        """Execute a directive and move its output into place.

        Args:
            directive: The ffmpeg command to run.
            timeout: Per-run timeout overriding the runner default.
            cancel_event: Set from another thread to kill the process.
            progress_callback: Receives the completion fraction.
            duration_seconds: Source duration, used to compute the fraction.

        Returns:
            Outcome describing the finished run.

        Raises:
            ProcessingCancelledError: If cancel_event was set.
            WorkerFailureError: On timeout, non-zero exit or invalid output.
        """
        effective_timeout = timeout if timeout is not None else self._timeout
        output_path = directive.output_path
        temp_path = ffmpeg_utils.reserve_temp_output(output_path, self._temp_dir)
        argv = directive.argv(self._ffmpeg_path, temp_path)

        tracker = ProgressTracker(duration_seconds)
        logger.info("Running ffmpeg: %s", directive.description)
        logger.debug("ffmpeg argv: %s", " ".join(argv))

        succeeded = False
        start_time = time.monotonic()
        try:
            try:
                status, return_code, stderr_lines = self._execute(
                    argv,
                    directive.description,
                    effective_timeout,
                    cancel_event,
                    tracker,
                    progress_callback,
                )
            except OSError as e:
                raise WorkerFailureError(f"Could not start ffmpeg: {e}") from e

            tail = tail_lines(stderr_lines)
            if status == RunStatus.CANCELLED:
                raise ProcessingCancelledError()
            if status == RunStatus.TIMED_OUT:
                raise WorkerFailureError(
                    f"ffmpeg timed out after {effective_timeout} seconds "
                    f"({directive.description})",
                    return_code=-1,
                    stderr=tail,
                )
            if return_code != 0:
                raise WorkerFailureError(
                    f"ffmpeg exited with code {return_code} "
                    f"({directive.description})",
                    return_code=return_code,
                    stderr=tail,
                )

            error = ffmpeg_utils.check_output(temp_path, directive)
            if error is not None:
                raise WorkerFailureError(error, return_code=return_code, stderr=tail)

            ffmpeg_utils.move_into_place(temp_path, output_path)
            succeeded = True
        finally:
            if not succeeded:
                ffmpeg_utils.discard(temp_path)

        if progress_callback is not None:
            self._notify(progress_callback, tracker.finish())

        elapsed = time.monotonic() - start_time
        logger.info(
            "ffmpeg finished in %.1fs: %s",
            elapsed,
            output_path,
            extra={"elapsed_seconds": round(elapsed, 3)},
        )
        return Outcome(
            output_path=output_path,
            return_code=return_code,
            elapsed_seconds=elapsed,
            stderr_tail=tail,
        )

    def validate_streams(self, input_path: Path, timeout: float | None = None) -> None:
        """Decode every stream once without writing output.

        Raises:
            UnsupportedInputError: If ffmpeg reports a decode error.
            WorkerFailureError: If the pass times out or cannot start.
        """
        effective_timeout = timeout if timeout is not None else self._timeout
        args: list[str | Path] = [
            self._ffmpeg_path,
            "-nostdin",
            "-hide_banner",
            "-v",
            "error",
            "-i",
            input_path,
            "-map",
            "0",
            "-xerror",
            "-f",
            "null",
            "-",
        ]
        try:
            result = run_command(args, timeout=effective_timeout)
        except subprocess.TimeoutExpired as e:
            raise WorkerFailureError(
                f"Stream validation timed out after {effective_timeout} seconds",
                return_code=-1,
            ) from e
        except OSError as e:
            raise WorkerFailureError(f"Could not start ffmpeg: {e}") from e

        if not result.ok:
            detail = tail_lines(result.stderr, 5) or f"exit code {result.returncode}"
            raise UnsupportedInputError(
                f"Stream validation failed for {input_path}: {detail}"
            )
        logger.debug("All streams decoded cleanly: %s", input_path)

    @staticmethod
    def _notify(callback: ProgressCallback, fraction: float) -> None:
        try:
            callback(fraction)
        except Exception as e:
            logger.warning("Progress callback error: %s", e)

    def _execute(
        self,
        argv: list[str],
        description: str,
        timeout: float | None,
        cancel_event: threading.Event | None,
        tracker: ProgressTracker,
        progress_callback: ProgressCallback | None,
    ) -> tuple[RunStatus, int, list[str]]:
        """Run ffmpeg with threaded stderr reading.

        Returns:
            Tuple of (status, return_code, stderr_lines). return_code is -1
            when the process was killed.
        """
        process = subprocess.Popen(  # nosec B603 - argv built from a Directive
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )

        stderr_output: list[str] = []
        stderr_queue: queue.Queue[str | None] = queue.Queue()
        stop_event = threading.Event()

        def read_stderr() -> None:
            try:
                assert process.stderr is not None
                for line in process.stderr:
                    if stop_event.is_set():
                        break
                    stderr_queue.put(line)
            except (ValueError, OSError) as e:
                # Pipe closed or process terminated
                logger.debug("Stderr reader stopped: %s", e)
            finally:
                stderr_queue.put(None)

        reader_thread = threading.Thread(target=read_stderr, daemon=True)
        reader_thread.start()

        status = RunStatus.COMPLETED
        start_time = time.monotonic()

        while True:
            if cancel_event is not None and cancel_event.is_set():
                status = RunStatus.CANCELLED
                break
            if timeout is not None and time.monotonic() - start_time >= timeout:
                status = RunStatus.TIMED_OUT
                break
            if process.poll() is not None:
                break

            try:
                line = stderr_queue.get(timeout=self.POLL_INTERVAL)
            except queue.Empty:
                continue
            if line is None:
                break
            stderr_output.append(line)
            progress = parse_stderr_progress(line)
            if progress is not None and progress_callback is not None:
                self._notify(progress_callback, tracker.update(progress))

        if status != RunStatus.COMPLETED:
            if status == RunStatus.TIMED_OUT:
                logger.warning("%s timed out after %s seconds", description, timeout)
            else:
                logger.info("%s cancelled", description)
            stop_event.set()
            process.kill()
            if process.stderr:
                try:
                    process.stderr.close()
                except OSError as e:
                    logger.debug("Error closing stderr: %s", e)
            process.wait()
            reader_thread.join(timeout=2.0)
            if reader_thread.is_alive():
                logger.error("Stderr reader thread failed to terminate")
            return status, -1, stderr_output

        reader_thread.join(timeout=self.STDERR_DRAIN_TIMEOUT)
        while True:
            try:
                line = stderr_queue.get_nowait()
            except queue.Empty:
                break
            if line is None:
                break
            stderr_output.append(line)

        process.wait()
        return status, process.returncode, stderr_output
