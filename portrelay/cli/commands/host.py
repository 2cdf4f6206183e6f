# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Host command: expose local ports to receivers through the relay."""

import sys

import click

from portrelay.cli import cli
from portrelay.cli.helpers import (
    common_options,
    confirm_connection,
    handle_errors,
    resolve_client,
    resolve_port_list,
)
from portrelay.protocol import ClientRole
from portrelay.registration import RegistrationPolicy
from portrelay.session import ClientOptions, run_client
from portrelay.utils.logging import get_logger
from portrelay.utils.urls import format_ports

logger = get_logger(__name__)


@cli.command()
@click.option(
    "--auto-accept",
    is_flag=True,
    default=False,
    help="Accept incoming connections without asking",
)
@click.option("--port-blacklist", default=None, help="Comma separated list of ports to refuse")
@click.option("--port-whitelist", default=None, help="Comma separated list of ports to allow")
@common_options
@handle_errors
def host(auto_accept, port_blacklist, port_whitelist, server_url, ssh_key, dev):
    """Wait for receivers and expose local ports to them.

    Share the printed uuid with the receiver. Unless --auto-accept is set,
    every incoming request is confirmed interactively.
    """
    client = resolve_client(server_url, ssh_key, dev)
    host_settings = client.config.model.host

    policy = RegistrationPolicy.for_sender(
        auto_accept=auto_accept or host_settings.auto_accept,
        port_whitelist=resolve_port_list(
            port_whitelist, host_settings.port_whitelist, "--port-whitelist"
        ),
        port_blacklist=resolve_port_list(
            port_blacklist, host_settings.port_blacklist, "--port-blacklist"
        ),
    )
    logger.debug(
        f"Policy: auto_accept={policy.auto_accept}, "
        f"whitelist={format_ports(policy.port_whitelist)}, "
        f"blacklist={format_ports(policy.port_blacklist)}"
    )

    options = ClientOptions(
        server_url=client.server_url,
        server_domain=client.server_domain,
        ssh_key=client.ssh_key,
        role=ClientRole.SENDER,
        policy=policy,
        ssh_binary=client.config.model.ssh.binary,
        strict_host_key_checking=client.config.model.ssh.strict_host_key_checking,
        connect_timeout=client.config.model.timeouts.connect,
    )
    sys.exit(run_client(options, client.identity, confirm=confirm_connection))
