# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Show the effective client configuration."""

from rich.table import Table

from portrelay.cli import cli
from portrelay.cli.helpers import console, handle_errors
from portrelay.client_config import get_config
from portrelay.utils.urls import format_ports, normalize_server_url


@cli.command("config")
@handle_errors
def show_config():
    """Show the configuration portrelay will use."""
    config = get_config()
    model = config.model

    source = str(config.config_path) if config.config_path.exists() else "defaults"
    table = Table(title=f"portrelay configuration ({source})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("server_url", normalize_server_url(model.server_url, dev=model.dev))
    table.add_row("ssh_key", str(config.ssh_key))
    table.add_row("dev", str(model.dev))
    table.add_row("host.auto_accept", str(model.host.auto_accept))
    table.add_row("host.port_whitelist", format_ports(model.host.port_whitelist))
    table.add_row("host.port_blacklist", format_ports(model.host.port_blacklist))
    table.add_row("ssh.binary", model.ssh.binary)
    table.add_row("ssh.strict_host_key_checking", str(model.ssh.strict_host_key_checking))
    table.add_row("timeouts.connect", f"{model.timeouts.connect:g}s")
    negotiation = model.timeouts.negotiation
    table.add_row("timeouts.negotiation", f"{negotiation:g}s" if negotiation else "none")

    console.print(table)
