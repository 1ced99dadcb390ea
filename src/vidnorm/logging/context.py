"""Per-request context for structured logging.

A processing request binds its id and source path with request_context();
RequestContextFilter then stamps both onto every log record emitted while
the request runs, including records from the runner's helper threads that
copy the context.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_file_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_path", default=None
)


@contextmanager
def request_context(
    request_id: str,
    file_path: Path | str | None = None,
) -> Generator[None, None, None]:
    """Bind a request id (and optionally the source path) for log records.

    Example:
        with request_context("a1b2c3", "/media/in.mkv"):
            logger.info("Resolving plan")  # record carries request_id
    """
    id_token = _request_id.set(request_id)
    path_token = _file_path.set(str(file_path) if file_path is not None else None)
    try:
        yield
    finally:
        _request_id.reset(id_token)
        _file_path.reset(path_token)


def get_request_context() -> tuple[str | None, str | None]:
    """Return (request_id, file_path) for the current context."""
    return _request_id.get(), _file_path.get()


class RequestContextFilter(logging.Filter):
    """Logging filter that injects request context into log records.

    Adds request_id and file_path attributes, plus a request_tag such as
    ``[a1b2c3] `` for the text formatter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        request_id, file_path = get_request_context()
        record.request_id = request_id
        record.file_path = file_path
        record.request_tag = f"[{request_id}] " if request_id else ""
        return True
