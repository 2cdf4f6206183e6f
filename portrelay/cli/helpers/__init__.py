# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Shared helpers for the portrelay CLI.

- options.py: shared options and their resolution against config
- prompts.py: interactive questions
- utils.py: error handling
"""

from portrelay.utils.logging import console

from portrelay.cli.helpers.options import (
    ResolvedClient,
    common_options,
    resolve_client,
    resolve_port_list,
)
from portrelay.cli.helpers.prompts import confirm_connection
from portrelay.cli.helpers.utils import (
    EXIT_INTERRUPTED,
    handle_errors,
    show_error_panel,
)

__all__ = [
    "console",
    # Options
    "ResolvedClient",
    "common_options",
    "resolve_client",
    "resolve_port_list",
    # Prompts
    "confirm_connection",
    # Error handling
    "EXIT_INTERRUPTED",
    "handle_errors",
    "show_error_panel",
]
