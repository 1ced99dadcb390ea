"""Resolve ProcessingOptions from CLI preset and profile arguments."""

from __future__ import annotations

import logging
from pathlib import Path

from vidnorm.cli.exit_codes import ExitCode
from vidnorm.cli.output import error_exit
from vidnorm.config.models import VidnormConfig
from vidnorm.options import (
    ProcessingOptions,
    ProfileValidationError,
    get_preset,
    load_profile,
    merge_options,
)

logger = logging.getLogger(__name__)


def resolve_options(
    preset_name: str | None,
    profile_path: Path | None,
    config: VidnormConfig,
) -> ProcessingOptions:
    """Build the options for a request.

    The base preset is, in order of preference: ``--preset``, the profile's
    ``preset`` key, then the configured default. The profile's settings
    are merged over that base.

    Raises:
        ProfileValidationError: If the profile is invalid.
        OutOfRangeParameterError: If the merged options are inconsistent.
    """
    profile = load_profile(profile_path) if profile_path is not None else None

    name = preset_name
    if name is None and profile is not None:
        name = profile.preset
    if name is None:
        name = config.processing.default_preset

    options = get_preset(name)
    if profile is not None:
        options = merge_options(options, profile.override)
    logger.debug("Resolved options from preset %r (profile=%s)", name, profile_path)
    return options


def resolve_options_or_exit(
    preset_name: str | None,
    profile_path: Path | None,
    config: VidnormConfig,
    json_output: bool = False,
) -> ProcessingOptions:
    """resolve_options() that reports errors and exits with a usage code."""
    try:
        return resolve_options(preset_name, profile_path, config)
    except KeyError as e:
        error_exit(str(e.args[0]), ExitCode.USAGE_ERROR, json_output)
    except (FileNotFoundError, ProfileValidationError, ValueError) as e:
        error_exit(str(e), ExitCode.USAGE_ERROR, json_output)
