"""Processing options: value types, presets, merging and YAML profiles."""

from vidnorm.options.merge import OptionsOverride, combine_overrides, merge_options
from vidnorm.options.presets import (
    PRESERVE,
    PRESETS,
    STANDARDIZED_H264_AAC_MP4,
    STANDARDIZED_HEVC_AAC_MP4,
    THUMBNAIL_STANDARD,
    get_preset,
)
from vidnorm.options.profiles import (
    Profile,
    ProfileValidationError,
    load_profile,
    load_profile_from_dict,
)
from vidnorm.options.types import (
    AudioQuality,
    MetadataStrippingMode,
    ProcessingOptions,
    ReencodeMode,
    ResizeMode,
    ResizeOptions,
    SourceLimits,
    ThumbnailProcessingOptions,
    VideoCompressionLevel,
    VideoQuality,
)

__all__ = [
    "AudioQuality",
    "MetadataStrippingMode",
    "OptionsOverride",
    "PRESERVE",
    "PRESETS",
    "ProcessingOptions",
    "Profile",
    "ProfileValidationError",
    "ReencodeMode",
    "ResizeMode",
    "ResizeOptions",
    "STANDARDIZED_H264_AAC_MP4",
    "STANDARDIZED_HEVC_AAC_MP4",
    "SourceLimits",
    "THUMBNAIL_STANDARD",
    "ThumbnailProcessingOptions",
    "VideoCompressionLevel",
    "VideoQuality",
    "combine_overrides",
    "get_preset",
    "load_profile",
    "load_profile_from_dict",
    "merge_options",
]
