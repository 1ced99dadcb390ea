"""Thumbnail stream selection and extraction."""

from vidnorm.thumbnail.command import (
    build_thumbnail_directive,
    has_alpha,
    seek_args,
    thumbnail_filters,
    thumbnail_pixel_format,
)
from vidnorm.thumbnail.selector import (
    MAX_THUMBNAIL_DIMENSION,
    ThumbnailSelection,
    compute_thumbnail_dimensions,
    displayed_dimensions,
    eligible_streams,
    fallback_selections,
    resolve_timestamp,
    select_thumbnail_source,
)

__all__ = [
    "MAX_THUMBNAIL_DIMENSION",
    "ThumbnailSelection",
    "build_thumbnail_directive",
    "compute_thumbnail_dimensions",
    "displayed_dimensions",
    "eligible_streams",
    "fallback_selections",
    "has_alpha",
    "resolve_timestamp",
    "seek_args",
    "select_thumbnail_source",
    "thumbnail_filters",
    "thumbnail_pixel_format",
]
