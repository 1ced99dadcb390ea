"""CLI module for vidnorm."""

import logging
from pathlib import Path

import click

from vidnorm.cli.exit_codes import ExitCode
from vidnorm.cli.output import error_exit
from vidnorm.config import ConfigSource, TomlParseError, get_config
from vidnorm.logging import configure_logging

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="vidnorm")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.vidnorm/config.toml).",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    config_path: Path | None,
) -> None:
    """vidnorm - Normalize media files with the minimum necessary work."""
    ctx.ensure_object(dict)

    cli_source = ConfigSource(
        logging_level=log_level.lower() if log_level else None,
        logging_file=log_file,
        logging_format="json" if log_json else None,
    )
    try:
        config = get_config(
            config_path=config_path,
            cli_source=cli_source,
            strict=config_path is not None,
        )
    except (TomlParseError, ValueError) as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.USAGE_ERROR)

    configure_logging(config.logging)
    logger.debug(
        "vidnorm starting: log_level=%s, timeout=%s",
        config.logging.level,
        config.processing.timeout_seconds,
    )
    ctx.obj["config"] = config


# Defer import to avoid circular dependency
def _register_commands() -> None:
    from vidnorm.cli.inspect import inspect_command
    from vidnorm.cli.plan import plan_command
    from vidnorm.cli.process import process_command
    from vidnorm.cli.thumbnail import thumbnail_command

    main.add_command(inspect_command)
    main.add_command(plan_command)
    main.add_command(process_command)
    main.add_command(thumbnail_command)


_register_commands()
