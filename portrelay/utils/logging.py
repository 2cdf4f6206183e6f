# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Unified logging and debug infrastructure for portrelay.

This module provides:
1. Centralized logging configuration
2. Debug mode via PORTRELAY_DEBUG env var or the --debug flag
3. Log levels via PORTRELAY_LOG_LEVEL env var
4. Dual output: Rich console for the operator, rotating file for debugging

Usage:
    from portrelay.utils.logging import get_logger, configure_logging

    # In CLI entry point:
    configure_logging(debug=debug)

    # In any module:
    logger = get_logger(__name__)
    logger.info("Connected to relay")
    logger.error("Tunnel failed", exc=exception)

Environment Variables:
    PORTRELAY_DEBUG=1          Enable debug mode (verbose output)
    PORTRELAY_LOG_LEVEL=DEBUG  Set log level (DEBUG, INFO, WARNING, ERROR)
    PORTRELAY_LOG_FILE=/path   Override log file location
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from portrelay.paths import HostPaths

# Global state
_configured = False
_debug_mode = False
_log_file: Optional[Path] = None

# Shared Rich console instance (stderr keeps stdout clean for `portrelay id`)
console = Console(stderr=True)

# Custom log level for success messages
SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


def _get_log_file() -> Path:
    """Get the log file path."""
    global _log_file
    if _log_file:
        return _log_file

    env_log_file = os.environ.get("PORTRELAY_LOG_FILE")
    if env_log_file:
        _log_file = Path(env_log_file)
    else:
        _log_file = HostPaths.log_dir() / "portrelay.log"

    return _log_file


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return _debug_mode or os.environ.get("PORTRELAY_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(
    debug: bool = False,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Configure the logging system.

    Should be called once at application startup. Later calls are no-ops
    unless ``force`` is set (the CLI forces once it knows about --debug).

    Args:
        debug: Enable debug mode (verbose output, debug to console)
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Override log file path
        force: Reconfigure even if already configured
    """
    global _configured, _debug_mode, _log_file

    if _configured and not force:
        return

    _debug_mode = debug or is_debug_mode()

    if log_file:
        _log_file = log_file

    if log_level:
        level_name = log_level.upper()
    else:
        level_name = os.environ.get(
            "PORTRELAY_LOG_LEVEL", "DEBUG" if _debug_mode else "INFO"
        ).upper()

    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger("portrelay")
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # File handler with rotation (captures everything)
    try:
        path = _get_log_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)
    except (OSError, PermissionError):
        # Can't write log file, continue without it
        pass

    _configured = True

    root_logger.debug(f"Logging configured: level={level_name}, debug={_debug_mode}")
    if _log_file:
        root_logger.debug(f"Log file: {_log_file}")


class PortRelayLogger:
    """Logger that writes to the log file and mirrors to the Rich console."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self.console = console

    def debug(self, message: str, console_output: bool = False) -> None:
        """Log debug message.

        Debug only goes to the log file unless console_output is set or
        debug mode is enabled.
        """
        self.logger.debug(message)
        if console_output or is_debug_mode():
            self.console.print(f"[dim][DEBUG] {escape(message)}[/dim]", highlight=False)

    def info(self, message: str, console_output: bool = True) -> None:
        self.logger.info(message)
        if console_output:
            self.console.print(f"[blue]{escape(message)}[/blue]", highlight=False)

    def success(self, message: str, console_output: bool = True) -> None:
        """Log success message (green output)."""
        self.logger.log(SUCCESS_LEVEL, message)
        if console_output:
            self.console.print(f"[green]✓ {escape(message)}[/green]", highlight=False)

    def warning(self, message: str, console_output: bool = True) -> None:
        """Log warning message (yellow output)."""
        self.logger.warning(message)
        if console_output:
            self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]", highlight=False)

    def error(
        self,
        message: str,
        exc: Optional[Exception] = None,
        console_output: bool = True,
    ) -> None:
        """Log error message (red output).

        Args:
            message: Error message
            exc: Optional exception to include in log
            console_output: Output to console
        """
        if exc:
            self.logger.error(f"{message}: {exc}", exc_info=exc)
            error_msg = f"{message}: {exc}"
        else:
            self.logger.error(message)
            error_msg = message

        if console_output:
            self.console.print(f"[red]✗ {escape(error_msg)}[/red]", highlight=False)


def get_logger(name: str) -> PortRelayLogger:
    """Get or create a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        PortRelayLogger instance
    """
    if not _configured:
        configure_logging()

    if not name.startswith("portrelay"):
        name = f"portrelay.{name}"

    return PortRelayLogger(name)


def log_startup_info() -> None:
    """Log startup diagnostic information (call from main entry points)."""
    logger = get_logger("portrelay.startup")
    logger.debug(f"Python: {sys.version}")
    logger.debug(f"Platform: {sys.platform}")
    logger.debug(f"Debug mode: {is_debug_mode()}")
    logger.debug(f"Log file: {_get_log_file()}")

    for var in ["PORTRELAY_DEBUG", "PORTRELAY_LOG_LEVEL", "PORTRELAY_CONFIG", "PORTRELAY_DEV"]:
        value = os.environ.get(var)
        if value:
            logger.debug(f"ENV {var}={value}")
