# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Show this machine's client id."""

import click

from portrelay.cli import cli
from portrelay.cli.helpers import handle_errors
from portrelay.client_config import get_config
from portrelay.identity import load_or_create_id


@cli.command("id")
@click.option("--dev", is_flag=True, default=False, help="Generate a fresh development id")
@handle_errors
def show_id(dev):
    """Print the uuid receivers use to reach this machine."""
    click.echo(load_or_create_id(fresh=dev or get_config().dev))
