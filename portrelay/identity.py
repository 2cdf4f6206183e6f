# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Client identity: a stable UUID on disk plus the user's ssh public key."""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import asyncssh

from portrelay.paths import HostPaths
from portrelay.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClientIdentity:
    """Identity presented to the relay at registration."""

    id: str
    public_key: str


def public_key_path(private_key: Path) -> Path:
    return private_key.with_name(private_key.name + ".pub")


def _check_private_key(private_key: Path) -> None:
    """Make sure ssh will be able to use ``private_key``.

    A passphrase-protected key is fine: ssh (or its agent) unlocks it.
    """
    try:
        asyncssh.read_private_key(str(private_key))
    except asyncssh.KeyImportError as e:
        if "passphrase" in str(e).lower():
            logger.debug(f"{private_key} is encrypted, leaving it to ssh to unlock")
            return
        raise ValueError(f'The ssh private key "{private_key}" is invalid: {e}') from e
    except OSError as e:
        raise ValueError(f'The ssh private key "{private_key}" cannot be read: {e}') from e


def load_public_key(private_key: Path) -> str:
    """Read and validate the OpenSSH public key next to ``private_key``.

    Returns:
        The key in ``<algorithm> <base64> [comment]`` form.

    Raises:
        FileNotFoundError: If either key file is missing.
        ValueError: If either key cannot be parsed.
    """
    if not private_key.exists():
        raise FileNotFoundError(f'The ssh private key file "{private_key}" does not exist')
    _check_private_key(private_key)

    pub_path = public_key_path(private_key)
    if not pub_path.exists():
        raise FileNotFoundError(f'The ssh public key file "{pub_path}" does not exist')

    try:
        key = asyncssh.read_public_key(str(pub_path))
    except (asyncssh.KeyImportError, OSError) as e:
        raise ValueError(f"The public key is invalid: {e}") from e

    return key.export_public_key("openssh").decode("utf-8").strip()


def load_or_create_id(id_file: Optional[Path] = None, fresh: bool = False) -> str:
    """Return the persisted client id, creating it on first use.

    Args:
        id_file: Where the id lives (default ~/.local/share/portrelay/id)
        fresh: Always generate and store a new id (development mode)
    """
    id_file = id_file or HostPaths.identity_file()

    if id_file.exists() and not fresh:
        client_id = id_file.read_text().strip()
        if client_id:
            return client_id
        logger.warning(f"Identity file {id_file} is empty, generating a new id")

    client_id = str(uuid.uuid4())
    id_file.parent.mkdir(parents=True, exist_ok=True)
    id_file.write_text(client_id)
    logger.debug(f"Generated new client id {client_id} in {id_file}")
    return client_id


def resolve_identity(
    ssh_key: Path,
    dev: bool = False,
    id_file: Optional[Path] = None,
) -> ClientIdentity:
    """Build the identity for this run."""
    return ClientIdentity(
        id=load_or_create_id(id_file, fresh=dev),
        public_key=load_public_key(ssh_key),
    )
