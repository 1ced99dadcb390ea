"""Media introspection for vidnorm.

- MediaIntrospector: Protocol defining the introspection interface
- FFprobeIntrospector: Production implementation using ffprobe
- MediaIntrospectionError: Exception for introspection failures
- format_human / format_json: Descriptor formatters for the CLI
"""

from vidnorm.introspector.ffprobe import FFprobeIntrospector
from vidnorm.introspector.formatters import (
    descriptor_to_dict,
    format_human,
    format_json,
    format_stream_line,
)
from vidnorm.introspector.interface import (
    MediaIntrospectionError,
    MediaIntrospector,
)
from vidnorm.introspector.parsers import parse_ffprobe_output

__all__ = [
    "FFprobeIntrospector",
    "MediaIntrospectionError",
    "MediaIntrospector",
    "descriptor_to_dict",
    "format_human",
    "format_json",
    "format_stream_line",
    "parse_ffprobe_output",
]
