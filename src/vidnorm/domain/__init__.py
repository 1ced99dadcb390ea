"""Domain models for vidnorm."""

from vidnorm.domain.models import (
    ContainerFormat,
    FieldOrder,
    MediaDescriptor,
    StreamDescriptor,
    StreamKind,
)

__all__ = [
    "ContainerFormat",
    "FieldOrder",
    "MediaDescriptor",
    "StreamDescriptor",
    "StreamKind",
]
