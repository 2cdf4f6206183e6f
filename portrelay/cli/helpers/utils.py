# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Utility functions for CLI helpers."""

import functools
import sys
from typing import Callable, Optional

from rich.markup import escape
from rich.panel import Panel

from portrelay.errors import PortRelayError
from portrelay.utils.logging import console, get_logger

logger = get_logger(__name__)

EXIT_INTERRUPTED = 130


def show_error_panel(title: str, message: str, hint: Optional[str] = None) -> None:
    """Display a formatted error panel.

    Args:
        title: Panel title (shown in red)
        message: Main error message
        hint: Optional hint text (shown with blue "Hint:" prefix)
    """
    content = escape(message)
    if hint:
        content += f"\n\n[blue]Hint:[/blue] {escape(hint)}"
    console.print(Panel(content, title=f"[red]{title}[/red]", border_style="red"))


def handle_errors(func: Callable) -> Callable:
    """Decorator that wraps CLI commands with standard error handling.

    - PortRelayError: panel titled by the error kind, with hint, exit 1
    - KeyboardInterrupt: exit 130
    - ClickException: left to click
    - Other exceptions: generic error panel, exit 1

    Usage:
        @cli.command()
        @handle_errors
        def my_command():
            ...
    """
    import click

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise  # Let sys.exit() pass through
        except click.ClickException:
            raise
        except PortRelayError as exc:
            logger.logger.error(f"{type(exc).__name__}: {exc}")
            show_error_panel(exc.title, str(exc), exc.hint)
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted[/yellow]")
            sys.exit(EXIT_INTERRUPTED)
        except Exception as exc:
            logger.logger.exception("Unexpected error")
            show_error_panel("Error", str(exc) or type(exc).__name__)
            sys.exit(1)

    return wrapper
