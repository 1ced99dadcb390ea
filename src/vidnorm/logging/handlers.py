"""Log formatters for vidnorm.

Both formatters understand the fields the decision engine and runner
attach through ``extra=``: the stream and rule a decision was made for,
the container action and formats, and run timings. JSONFormatter groups
them into objects; TextFormatter appends them to the message.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

DECISION_FIELDS: tuple[str, ...] = (
    "stream_index",
    "rule",
    "container_action",
    "target_format",
    "output_format",
)
"""Record attributes describing a decision, in display order."""

TIMING_FIELDS: tuple[str, ...] = ("elapsed_seconds",)

_REQUEST_FIELDS = ("request_id", "file_path", "request_tag")

# Attributes every record carries, plus the ones named above
_KNOWN_ATTRS = frozenset(
    [
        *logging.LogRecord("", 0, "", 0, "", (), None).__dict__,
        "message",
        "asctime",
        *DECISION_FIELDS,
        *TIMING_FIELDS,
        *_REQUEST_FIELDS,
    ]
)


def _present(record: logging.LogRecord, fields: tuple[str, ...]) -> dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in fields
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Keys:
    - timestamp: ISO-8601 UTC
    - level, logger, message
    - request: ``{"id", "source"}`` while a request context is bound
    - decision: any of DECISION_FIELDS that were passed
    - elapsed_seconds: run time of a finished ffmpeg run
    - extra: anything else passed through ``extra=``
    - exception: formatted traceback
    """

    def format(self, record: logging.LogRecord) -> str:
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
        }
        if record.name and record.name != "root":
            entry["logger"] = record.name
        entry["message"] = record.getMessage()

        request = {
            key: value
            for key, value in (
                ("id", getattr(record, "request_id", None)),
                ("source", getattr(record, "file_path", None)),
            )
            if value
        }
        if request:
            entry["request"] = request

        decision = _present(record, DECISION_FIELDS)
        if decision:
            entry["decision"] = decision
        entry.update(_present(record, TIMING_FIELDS))

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _KNOWN_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with decision fields appended.

    Example::

        2026-10-19T10:00:00+0000 DEBUG [a1b2c3] vidnorm.decision.rules: Stream 3
        matched rule copy (stream_index=3 rule=copy)
    """

    FORMAT = "%(asctime)s %(levelname)s %(request_tag)s%(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(self.FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_tag"):
            record.request_tag = ""
        line = super().format(record)
        decision = _present(record, DECISION_FIELDS)
        if not decision:
            return line
        fields = " ".join(f"{key}={value}" for key, value in decision.items())
        head, sep, tail = line.partition("\n")
        return f"{head} ({fields}){sep}{tail}"
