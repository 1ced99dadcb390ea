"""MediaIntrospector interface for probing media files."""

from pathlib import Path
from typing import Protocol

from vidnorm.domain.models import MediaDescriptor
from vidnorm.exceptions import UnsupportedInputError


class MediaIntrospectionError(UnsupportedInputError):
    """Raised when a file cannot be probed or its probe output is invalid."""

    pass


class MediaIntrospector(Protocol):
    """Protocol for media introspection implementations."""

    def get_descriptor(
        self, path: Path, extension_hint: str | None = None
    ) -> MediaDescriptor:
        """Probe a media file.

        Args:
            path: Path to the media file.
            extension_hint: Extension the caller believes the file has.

        Returns:
            MediaDescriptor describing the container and its streams.

        Raises:
            MediaIntrospectionError: If the file cannot be introspected.
        """
        ...
