"""Shared CLI output helpers."""

from __future__ import annotations

import json
import sys
from typing import NoReturn

import click

from vidnorm.cli.exit_codes import ExitCode, exit_code_for


def error_exit(
    message: str,
    code: ExitCode = ExitCode.GENERAL_ERROR,
    json_output: bool = False,
) -> NoReturn:
    """Print an error and exit.

    Args:
        message: Error description.
        code: Process exit code.
        json_output: Emit ``{"error": ..., "exit_code": ...}`` on stdout.
    """
    if json_output:
        click.echo(json.dumps({"error": message, "exit_code": int(code)}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(code)


def fail(error: BaseException, json_output: bool = False) -> NoReturn:
    """Report an exception with the exit code its class maps to."""
    if isinstance(error, KeyboardInterrupt):
        message = "Interrupted"
    else:
        message = str(error) or error.__class__.__name__
    error_exit(message, exit_code_for(error), json_output)
