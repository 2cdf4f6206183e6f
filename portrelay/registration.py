# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Registration handshake.

Always the first exchange on a fresh channel: send ``register`` and read
exactly one reply, which must be a ``response``. There are no retries.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from portrelay.errors import ProtocolError, RegistrationError
from portrelay.identity import ClientIdentity
from portrelay.protocol import ClientRole, Register, Response
from portrelay.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistrationPolicy:
    """Host-side policy the relay enforces for incoming connections."""

    auto_accept: bool = False
    port_whitelist: FrozenSet[int] = field(default_factory=frozenset)
    port_blacklist: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def for_sender(
        cls,
        auto_accept: bool = False,
        port_whitelist: Iterable[int] = (),
        port_blacklist: Iterable[int] = (),
    ) -> "RegistrationPolicy":
        return cls(
            auto_accept=auto_accept,
            port_whitelist=frozenset(port_whitelist),
            port_blacklist=frozenset(port_blacklist),
        )

    @classmethod
    def for_receiver(cls) -> "RegistrationPolicy":
        """Receivers register with an empty policy (ignored by the relay)."""
        return cls()


def register(channel, identity: ClientIdentity, role: ClientRole, policy: RegistrationPolicy) -> None:
    """Register this client with the relay.

    Raises:
        RegistrationError: If the relay answers with success=false.
        ProtocolError: If the reply is not a ``response`` message.
        TransportError: If the channel breaks.
    """
    channel.send(
        Register(
            uuid=identity.id,
            ssh_key=identity.public_key,
            client_type=role,
            auto_accept=policy.auto_accept,
            port_whitelist=policy.port_whitelist,
            port_blacklist=policy.port_blacklist,
        )
    )

    reply = channel.receive()
    if not isinstance(reply, Response):
        raise ProtocolError(
            f"Expected a response to register, got {reply.type}",
            hint="The relay and client versions may not match",
        )

    if not reply.success:
        raise RegistrationError(
            f"Failed to register with server as {role}: {reply.error or 'no reason given'}",
            hint="Check that your ssh key is accepted by the relay",
        )

    logger.debug(f"Registered as {role} with id {identity.id}")
