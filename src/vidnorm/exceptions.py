"""Exception hierarchy for vidnorm.

Failures fall into four classes:

- NoEligibleStreamError: the input has no stream suitable for the request.
- OutOfRangeParameterError: a caller-supplied parameter cannot be satisfied.
- WorkerFailureError: the external ffmpeg/ffprobe process failed.
- UnsupportedInputError: the input itself is malformed or unsupported.

None of these are retried by the engine.
"""


class VidnormError(Exception):
    """Base class for all vidnorm errors."""

    pass


class NoEligibleStreamError(VidnormError):
    """Raised when no stream in the source satisfies the request."""

    pass


class OutOfRangeParameterError(VidnormError, ValueError):
    """Raised when a parameter is outside the range the source allows."""

    pass


class UnsupportedInputError(VidnormError):
    """Raised when the source file is malformed or not supported."""

    pass


class WorkerFailureError(VidnormError):
    """Raised when the external ffmpeg process fails or times out."""

    def __init__(
        self,
        message: str,
        return_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable description of the failure.
            return_code: Process exit code (-1 on timeout), if known.
            stderr: Tail of the worker's diagnostic output, if captured.
        """
        self.message = message
        self.return_code = return_code
        self.stderr = stderr
        super().__init__(message)

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}\n{self.stderr}"
        return self.message


class ProcessingCancelledError(WorkerFailureError):
    """Raised when a running worker is cancelled by the caller."""

    def __init__(self, message: str = "Processing was cancelled.") -> None:
        super().__init__(message, return_code=None, stderr=None)
