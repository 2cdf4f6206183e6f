# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Connect command: reach a port exposed by a host."""

import sys

import click

from portrelay.cli import cli
from portrelay.cli.helpers import common_options, handle_errors, resolve_client
from portrelay.protocol import ClientRole
from portrelay.registration import RegistrationPolicy
from portrelay.session import ClientOptions, run_client

PORT = click.IntRange(1, 65535)


@cli.command()
@click.argument("target")
@click.argument("port", type=PORT)
@click.argument("local_port", type=PORT)
@common_options
@handle_errors
def connect(target, port, local_port, server_url, ssh_key, dev):
    """Map PORT on host TARGET onto LOCAL_PORT on this machine.

    TARGET is the uuid the host printed at startup.
    """
    client = resolve_client(server_url, ssh_key, dev)
    settings = client.config.model

    options = ClientOptions(
        server_url=client.server_url,
        server_domain=client.server_domain,
        ssh_key=client.ssh_key,
        role=ClientRole.RECEIVER,
        policy=RegistrationPolicy.for_receiver(),
        target=target,
        port=port,
        local_port=local_port,
        ssh_binary=settings.ssh.binary,
        strict_host_key_checking=settings.ssh.strict_host_key_checking,
        connect_timeout=settings.timeouts.connect,
        negotiation_timeout=settings.timeouts.negotiation,
    )
    sys.exit(run_client(options, client.identity))
