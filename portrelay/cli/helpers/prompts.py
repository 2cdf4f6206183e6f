# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Interactive prompts."""

import questionary


def confirm_connection(source_client: str, port: int) -> bool:
    """Ask the operator whether ``source_client`` may connect to ``port``.

    Blocks until answered. Ctrl-C raises KeyboardInterrupt, which ends the
    run (exit 130) after the tunnel and relay connection are cleaned up.
    """
    answer = questionary.confirm(
        f"Client {source_client} wants to connect to port {port}",
        default=True,
    ).unsafe_ask()
    return bool(answer)
