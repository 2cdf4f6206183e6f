# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""portrelay CLI package."""

import click

from portrelay import __version__
from portrelay.utils.logging import configure_logging, log_startup_info


@click.group()
@click.version_option(version=__version__, prog_name="portrelay")
@click.option("--debug", is_flag=True, default=False, help="Verbose output and debug logging")
def cli(debug: bool):
    """portrelay - Forward a port between two machines through a relay server.

    \b
    On the machine exposing a port:
      portrelay host
    On the machine that wants to reach it:
      portrelay connect <HOST-ID> <PORT> <LOCAL-PORT>
    """
    if debug:
        configure_logging(debug=True, force=True)
    log_startup_info()


# Import command modules to register them with the group
from portrelay.cli.commands import config  # noqa: E402,F401
from portrelay.cli.commands import connect  # noqa: E402,F401
from portrelay.cli.commands import host  # noqa: E402,F401
from portrelay.cli.commands import identity  # noqa: E402,F401


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
