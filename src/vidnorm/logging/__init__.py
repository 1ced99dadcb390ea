"""Structured logging for vidnorm.

Configurable text or JSON output with optional file rotation, plus
per-request context injection.
"""

from vidnorm.logging.config import configure_logging
from vidnorm.logging.context import (
    RequestContextFilter,
    get_request_context,
    request_context,
)
from vidnorm.logging.handlers import JSONFormatter, TextFormatter

__all__ = [
    "JSONFormatter",
    "RequestContextFilter",
    "TextFormatter",
    "configure_logging",
    "get_request_context",
    "request_context",
]
