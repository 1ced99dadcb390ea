"""Centralized exit codes for all CLI commands.

Exit codes:
    0: Success
    1: General error (including missing tools and config errors)
    2: Usage error (bad arguments, invalid profile)
    3: No eligible stream, or a parameter out of range
    4: Unsupported or malformed input
    5: ffmpeg failed or timed out
    130: Cancelled (Ctrl+C)
"""

from enum import IntEnum

from vidnorm.exceptions import (
    NoEligibleStreamError,
    OutOfRangeParameterError,
    ProcessingCancelledError,
    UnsupportedInputError,
    WorkerFailureError,
)
from vidnorm.options import ProfileValidationError


class ExitCode(IntEnum):
    """Exit codes for vidnorm CLI commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INVALID_REQUEST = 3
    UNSUPPORTED_INPUT = 4
    WORKER_FAILURE = 5
    CANCELLED = 130


def exit_code_for(error: BaseException) -> ExitCode:
    """Map an exception raised while handling a request to an exit code."""
    # Cancellation is a WorkerFailureError subclass; check it first
    if isinstance(error, (ProcessingCancelledError, KeyboardInterrupt)):
        return ExitCode.CANCELLED
    if isinstance(error, WorkerFailureError):
        return ExitCode.WORKER_FAILURE
    if isinstance(error, (NoEligibleStreamError, OutOfRangeParameterError)):
        return ExitCode.INVALID_REQUEST
    if isinstance(error, UnsupportedInputError):
        return ExitCode.UNSUPPORTED_INPUT
    if isinstance(error, ProfileValidationError):
        return ExitCode.USAGE_ERROR
    return ExitCode.GENERAL_ERROR
