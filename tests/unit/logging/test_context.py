"""Unit tests for logging context module."""

import contextvars
import logging
import threading
from pathlib import Path

from vidnorm.logging.context import (
    RequestContextFilter,
    get_request_context,
    request_context,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord("vidnorm.test", logging.INFO, __file__, 1, "msg", (), None)


class TestRequestContext:
    """Tests for request_context and get_request_context."""

    def test_empty_by_default(self) -> None:
        assert get_request_context() == (None, None)

    def test_binds_and_restores(self) -> None:
        """Test that values are visible inside and reset on exit."""
        with request_context("a1b2c3", Path("/media/in.mkv")):
            assert get_request_context() == ("a1b2c3", "/media/in.mkv")
        assert get_request_context() == (None, None)

    def test_nested(self) -> None:
        with request_context("outer"):
            with request_context("inner", "/media/b.mp4"):
                assert get_request_context() == ("inner", "/media/b.mp4")
            assert get_request_context() == ("outer", None)

    def test_restored_after_exception(self) -> None:
        try:
            with request_context("boom"):
                raise RuntimeError("fail")
        except RuntimeError:
            pass
        assert get_request_context() == (None, None)

    def test_copied_context_reaches_thread(self) -> None:
        """Test that a thread run in a copied context sees the request id."""
        seen = []
        with request_context("threaded", "/media/t.ts"):
            ctx = contextvars.copy_context()
        thread = threading.Thread(
            target=ctx.run, args=(lambda: seen.append(get_request_context()),)
        )
        thread.start()
        thread.join()
        assert seen == [("threaded", "/media/t.ts")]


class TestRequestContextFilter:
    """Tests for RequestContextFilter."""

    def test_without_context(self) -> None:
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert record.request_id is None
        assert record.file_path is None
        assert record.request_tag == ""

    def test_with_context(self) -> None:
        record = _record()
        with request_context("a1b2c3", "/media/in.mkv"):
            RequestContextFilter().filter(record)
        assert record.request_id == "a1b2c3"
        assert record.file_path == "/media/in.mkv"
        assert record.request_tag == "[a1b2c3] "
