"""
Unified CLI Error Handling
==========================

Consistent error reporting and exit codes for the command-line tools.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click


class ExitCode(IntEnum):
    """Standard exit codes for CLI tools."""
    SUCCESS = 0
    DRIVER_ERROR = 1     # Transport, timeout or lifecycle error
    INVALID_ARGS = 2     # Invalid arguments, configuration or addresses
    INTERNAL_ERROR = 3   # Unexpected internal error


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report an exception raised by a CLI command and exit.

    Args:
        error: The exception that was raised
        verbose: Print the full traceback for internal errors

    Raises:
        SystemExit: Always
    """
    from hd44780.errors import (
        HD44780Error,
        InvalidAddressError,
        InvalidConfigurationError,
    )

    if isinstance(error, (InvalidConfigurationError, InvalidAddressError)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, HD44780Error):
        click.echo(f"LCD error: {error}", err=True)
        sys.exit(ExitCode.DRIVER_ERROR)

    elif isinstance(error, (click.BadParameter, FileNotFoundError, PermissionError)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
