"""Processing profile loading and validation.

A profile is a YAML file naming a base preset and overriding some of its
fields. Profiles are validated with Pydantic models and converted into an
OptionsOverride.

Example::

    preset: standardized-h264-aac-mp4
    video_quality: high
    resize:
      max_width: 1920
      max_height: 1080
    metadata_stripping: required
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vidnorm.core.codecs import get_canonical_codec
from vidnorm.core.formats import format_from_extension
from vidnorm.domain.models import ContainerFormat, StreamKind
from vidnorm.exceptions import VidnormError
from vidnorm.options.merge import OptionsOverride
from vidnorm.options.presets import PRESETS
from vidnorm.options.types import (
    DEFAULT_AUDIO_CODECS,
    DEFAULT_VIDEO_CODECS,
    AudioQuality,
    MetadataStrippingMode,
    ReencodeMode,
    ResizeOptions,
    SourceLimits,
    VideoCompressionLevel,
    VideoQuality,
)

QualityName = Literal["lowest", "low", "medium", "high", "highest"]
ReencodeModeName = Literal["never", "if_needed", "always"]
StrippingModeName = Literal["none", "thumbnail_only", "preferred", "required"]


class ProfileValidationError(VidnormError):
    """Error during profile validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


def parse_container_format(name: str) -> ContainerFormat | None:
    """Map a user-facing format name (``mkv``, ``matroska``, ``.mp4``)."""
    normalized = name.strip().casefold()
    try:
        return ContainerFormat(normalized)
    except ValueError:
        return format_from_extension(normalized)


class ResizeModel(BaseModel):
    """Pydantic model for resize bounds."""

    model_config = ConfigDict(extra="forbid")

    max_width: int = Field(gt=0)
    max_height: int = Field(gt=0)


class SourceLimitsModel(BaseModel):
    """Pydantic model for source limits."""

    model_config = ConfigDict(extra="forbid")

    max_width: int | None = Field(default=None, gt=0)
    max_height: int | None = Field(default=None, gt=0)
    max_duration_seconds: float | None = Field(default=None, gt=0)
    max_streams: int | None = Field(default=None, gt=0)


class ProfileModel(BaseModel):
    """Pydantic model for a processing profile file."""

    model_config = ConfigDict(extra="forbid")

    preset: str | None = None
    result_formats: list[str] | None = Field(default=None, min_length=1)
    video_codecs: list[str] | None = Field(default=None, min_length=1)
    audio_codecs: list[str] | None = Field(default=None, min_length=1)
    video_reencode: ReencodeModeName | None = None
    audio_reencode: ReencodeModeName | None = None
    video_quality: QualityName | None = None
    compression_level: QualityName | None = None
    audio_quality: QualityName | None = None
    resize: ResizeModel | None = None
    metadata_stripping: StrippingModeName | None = None
    force_progressive_frames: bool | None = None
    force_progressive_download: bool | None = None
    remove_audio_streams: bool | None = None
    max_channels: int | None = Field(default=None, gt=0)
    remap_hdr_to_sdr: bool | None = None
    preserve_unrecognized_streams: bool | None = None
    validate_all_streams: bool | None = None
    max_frame_rate: int | None = Field(default=None, gt=0)
    max_bits_per_channel: Literal[8, 10, 12] | None = None
    max_chroma_subsampling: Literal[420, 422, 444] | None = None
    audio_sample_rate: int | None = Field(default=None, gt=0)
    force_square_pixels: bool | None = None
    source_limits: SourceLimitsModel | None = None

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str | None) -> str | None:
        """Validate preset name."""
        if v is None:
            return v
        key = v.strip().casefold().replace("_", "-")
        if key not in PRESETS:
            raise ValueError(
                f"Unknown preset '{v}'. Must be one of: {', '.join(sorted(PRESETS))}"
            )
        return key

    @field_validator("result_formats")
    @classmethod
    def validate_formats(cls, v: list[str] | None) -> list[str] | None:
        """Validate container format names."""
        if v is None:
            return v
        for name in v:
            if parse_container_format(name) is None:
                raise ValueError(f"Unknown container format '{name}'")
        return v

    @field_validator("video_codecs")
    @classmethod
    def validate_video_codecs(cls, v: list[str] | None) -> list[str] | None:
        """Validate video codec names and normalize them to canonical form."""
        return _canonical_codecs(v, StreamKind.VIDEO, DEFAULT_VIDEO_CODECS)

    @field_validator("audio_codecs")
    @classmethod
    def validate_audio_codecs(cls, v: list[str] | None) -> list[str] | None:
        """Validate audio codec names and normalize them to canonical form."""
        return _canonical_codecs(v, StreamKind.AUDIO, DEFAULT_AUDIO_CODECS)


def _canonical_codecs(
    codecs: list[str] | None, kind: StreamKind, known: tuple[str, ...]
) -> list[str] | None:
    if codecs is None:
        return None
    result: list[str] = []
    for codec in codecs:
        canonical = get_canonical_codec(codec, kind)
        if canonical not in known:
            raise ValueError(
                f"Invalid {kind.value} codec '{codec}'. "
                f"Must be one of: {', '.join(known)}"
            )
        if canonical not in result:
            result.append(canonical)
    return result


@dataclass(frozen=True)
class Profile:
    """A loaded processing profile."""

    preset: str | None
    override: OptionsOverride
    source_path: Path | None = None


def load_profile(profile_path: Path) -> Profile:
    """Load and validate a profile from a YAML file.

    Args:
        profile_path: Path to the YAML profile file.

    Returns:
        Validated Profile.

    Raises:
        ProfileValidationError: If the profile file is invalid.
        FileNotFoundError: If the profile file does not exist.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile file not found: {profile_path}")

    try:
        with open(profile_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ProfileValidationError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        raise ProfileValidationError("Profile file is empty")

    if not isinstance(data, dict):
        raise ProfileValidationError("Profile file must be a YAML mapping")

    profile = load_profile_from_dict(data)
    return Profile(
        preset=profile.preset, override=profile.override, source_path=profile_path
    )


def load_profile_from_dict(data: dict[str, Any]) -> Profile:
    """Load and validate a profile from a dictionary.

    Raises:
        ProfileValidationError: If the profile data is invalid.
    """
    try:
        model = ProfileModel.model_validate(data)
    except ValidationError as e:
        message, field = _format_validation_error(e)
        raise ProfileValidationError(message, field=field) from e

    return Profile(preset=model.preset, override=_convert_to_override(model))


def _format_validation_error(error: ValidationError) -> tuple[str, str | None]:
    """Format a Pydantic validation error into a user-friendly message."""
    errors = error.errors()
    if errors:
        first_error = errors[0]
        loc = ".".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", str(error))
        if loc:
            return f"Profile validation failed: {loc}: {msg}", loc
        return f"Profile validation failed: {msg}", None
    return f"Profile validation failed: {error}", None


def _convert_to_override(model: ProfileModel) -> OptionsOverride:
    """Convert a validated ProfileModel into an OptionsOverride."""
    result_formats = None
    if model.result_formats is not None:
        result_formats = frozenset(
            parse_container_format(name) for name in model.result_formats
        )

    resize = None
    if model.resize is not None:
        resize = ResizeOptions(
            max_width=model.resize.max_width, max_height=model.resize.max_height
        )

    limits = None
    if model.source_limits is not None:
        limits = SourceLimits(**model.source_limits.model_dump())

    return OptionsOverride(
        result_formats=result_formats,
        result_video_codecs=(
            tuple(model.video_codecs) if model.video_codecs is not None else None
        ),
        result_audio_codecs=(
            tuple(model.audio_codecs) if model.audio_codecs is not None else None
        ),
        video_reencode_mode=(
            ReencodeMode(model.video_reencode) if model.video_reencode else None
        ),
        audio_reencode_mode=(
            ReencodeMode(model.audio_reencode) if model.audio_reencode else None
        ),
        video_quality=(
            VideoQuality[model.video_quality.upper()] if model.video_quality else None
        ),
        video_compression_level=(
            VideoCompressionLevel[model.compression_level.upper()]
            if model.compression_level
            else None
        ),
        audio_quality=(
            AudioQuality[model.audio_quality.upper()] if model.audio_quality else None
        ),
        resize_options=resize,
        metadata_stripping_mode=(
            MetadataStrippingMode(model.metadata_stripping)
            if model.metadata_stripping
            else None
        ),
        force_progressive_frames=model.force_progressive_frames,
        force_progressive_download=model.force_progressive_download,
        remove_audio_streams=model.remove_audio_streams,
        max_channels=model.max_channels,
        remap_hdr_to_sdr=model.remap_hdr_to_sdr,
        try_preserve_unrecognized_streams=model.preserve_unrecognized_streams,
        force_validate_all_streams=model.validate_all_streams,
        max_frame_rate=model.max_frame_rate,
        max_bits_per_channel=model.max_bits_per_channel,
        max_chroma_subsampling=model.max_chroma_subsampling,
        audio_sample_rate=model.audio_sample_rate,
        force_square_pixels=model.force_square_pixels,
        source_limits=limits,
    )
