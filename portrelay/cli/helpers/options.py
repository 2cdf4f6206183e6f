# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Options shared by the host and connect commands, and their resolution."""

import functools
import os
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional

import click

from portrelay.client_config import ClientConfig, get_config
from portrelay.identity import ClientIdentity, resolve_identity
from portrelay.utils.logging import get_logger
from portrelay.utils.urls import normalize_server_url, parse_port_list, server_domain

logger = get_logger(__name__)


def common_options(func: Callable) -> Callable:
    """Add --server-url, --ssh-key and --dev to a command."""

    @click.option(
        "-s",
        "--server-url",
        default=None,
        help="The url of the relay server to connect to",
    )
    @click.option(
        "--ssh-key",
        default=None,
        help="The path to the ssh private key to use for the connection "
        "(its .pub file must sit next to it)",
    )
    @click.option(
        "--dev",
        is_flag=True,
        default=False,
        help="Development mode: new client id every run, ws:// by default",
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


class ResolvedClient(NamedTuple):
    """Common values every client command needs."""

    config: ClientConfig
    server_url: str
    server_domain: str
    ssh_key: Path
    dev: bool
    identity: ClientIdentity


def resolve_client(
    server_url: Optional[str],
    ssh_key: Optional[str],
    dev: bool,
    config: Optional[ClientConfig] = None,
) -> ResolvedClient:
    """Merge CLI options with config and load the identity.

    Raises:
        click.BadParameter: If the server url or ssh key is unusable.
    """
    config = config or get_config()
    dev = dev or config.dev

    url = normalize_server_url(server_url or config.server_url, dev=dev)
    try:
        domain = server_domain(url)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--server-url") from e

    key_path = Path(os.path.expandvars(ssh_key)).expanduser() if ssh_key else config.ssh_key
    try:
        identity = resolve_identity(key_path, dev=dev)
    except (FileNotFoundError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="--ssh-key") from e

    logger.info(f"uuid : {identity.id}")
    return ResolvedClient(
        config=config,
        server_url=url,
        server_domain=domain,
        ssh_key=key_path,
        dev=dev,
        identity=identity,
    )


def resolve_port_list(value: Optional[str], fallback: List[int], option: str) -> List[int]:
    """Parse a comma separated CLI port list, or use the configured one."""
    if value is None:
        return list(fallback)
    ports, rejected = parse_port_list(value)
    for entry in rejected:
        logger.warning(f"Ignoring invalid port {entry!r} in {option}")
    return ports
