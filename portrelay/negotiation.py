# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Per-role negotiation state machines.

After registration the relay drives everything; the client only reacts.

Sender:
    REGISTERED -> AWAITING_EVENT
    AWAITING_EVENT|TUNNEL_ACTIVE --connect_confirm--> CONFIRMING (unless
        auto-accept) -> accept/deny sent -> back to the state it came from
    AWAITING_EVENT --tunnel_connect--> TUNNEL_ACTIVE
    TUNNEL_ACTIVE --tunnel_close--> CLOSED (exit 0)

Receiver:
    REGISTERED --connect_to_host sent--> REQUEST_SENT
    REQUEST_SENT --response(success=false)--> DENIED (DenialError)
    REQUEST_SENT --tunnel_connect--> TUNNEL_ACTIVE
    TUNNEL_ACTIVE --tunnel_close--> CLOSED (exit 0)

Each negotiator handles a message type through an ``_on_<type>`` method or
lists it in ``IGNORED``. Every protocol variant must be in exactly one of
the two; this is checked when the class is defined, so adding a variant to
the protocol fails loudly until each negotiator routes it.
"""

from enum import Enum
from typing import Callable, ClassVar, FrozenSet, Optional

from portrelay.errors import DenialError, ProtocolError, SpawnError
from portrelay.protocol import (
    MESSAGE_TYPES,
    ClientRole,
    ConnectAccept,
    ConnectConfirm,
    ConnectDeny,
    ConnectToHost,
    Response,
    TunnelClose,
    TunnelConnect,
)
from portrelay.registration import RegistrationPolicy
from portrelay.tunnel import TunnelGrant, TunnelManager
from portrelay.utils.logging import get_logger

logger = get_logger(__name__)

EXIT_OK = 0

# (source client id, port) -> accept?
ConfirmCallback = Callable[[str, int], bool]


class NegotiationState(str, Enum):
    REGISTERED = "registered"
    AWAITING_EVENT = "awaiting_event"
    CONFIRMING = "confirming"
    REQUEST_SENT = "request_sent"
    DENIED = "denied"
    TUNNEL_ACTIVE = "tunnel_active"
    CLOSED = "closed"


class Negotiator:
    """Common routing and tunnel handling for both roles."""

    role: ClassVar[ClientRole]
    IGNORED: ClassVar[FrozenSet[str]] = frozenset()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        handled = {t for t in MESSAGE_TYPES if callable(getattr(cls, f"_on_{t}", None))}
        both = handled & cls.IGNORED
        if both:
            raise TypeError(f"{cls.__name__} both handles and ignores: {sorted(both)}")
        unrouted = set(MESSAGE_TYPES) - handled - cls.IGNORED
        if unrouted:
            raise TypeError(f"{cls.__name__} does not route message types: {sorted(unrouted)}")
        unknown = cls.IGNORED - set(MESSAGE_TYPES)
        if unknown:
            raise TypeError(f"{cls.__name__} ignores unknown message types: {sorted(unknown)}")

    def __init__(self, tunnel: TunnelManager):
        self.tunnel = tunnel
        self.state = NegotiationState.REGISTERED

    def start(self, channel) -> None:
        raise NotImplementedError

    def handle(self, message, channel) -> Optional[int]:
        """Process one relay message.

        Returns:
            An exit status if the session is over, None to keep reading.
        """
        if message.type in self.IGNORED:
            logger.debug(f"Ignoring {message.type} in state {self.state.value}")
            return None
        return getattr(self, f"_on_{message.type}")(message, channel)

    def _on_tunnel_connect(self, message: TunnelConnect, channel) -> Optional[int]:
        if message.client_type != self.role:
            raise ProtocolError(
                f"Relay sent a {message.client_type} tunnel to a {self.role} client",
                hint="This is a bug in the relay server",
            )
        if self.state not in self._tunnel_ready_states():
            raise ProtocolError(
                f"Unexpected tunnel_connect in state {self.state.value}",
                hint="The relay opened a second tunnel without closing the first",
            )

        grant = TunnelGrant.from_message(message)
        try:
            self.tunnel.start(grant)
        except SpawnError as e:
            logger.error("Could not start tunnel", exc=e)
            return None

        self.state = NegotiationState.TUNNEL_ACTIVE
        return None

    def _on_tunnel_close(self, message: TunnelClose, channel) -> Optional[int]:
        was_active = self.state == NegotiationState.TUNNEL_ACTIVE or self.tunnel.is_active
        self.tunnel.stop()
        if was_active:
            self.state = NegotiationState.CLOSED
            logger.info("Tunnel closed by relay")
            return EXIT_OK
        logger.debug(f"tunnel_close without an active tunnel in state {self.state.value}")
        return None

    def _tunnel_ready_states(self) -> FrozenSet[NegotiationState]:
        raise NotImplementedError


class SenderNegotiator(Negotiator):
    """Host side: answers connection requests and exposes a local port."""

    role = ClientRole.SENDER
    IGNORED = frozenset({"register", "connect_to_host", "connect_accept", "connect_deny"})

    def __init__(self, policy: RegistrationPolicy, tunnel: TunnelManager, confirm: ConfirmCallback):
        """
        Args:
            policy: The policy this client registered with
            tunnel: Tunnel manager owning the ssh process
            confirm: Asks the operator whether to accept a connection. Blocks;
                no relay messages are read until it returns.
        """
        super().__init__(tunnel)
        self.policy = policy
        self.confirm = confirm

    def start(self, channel) -> None:
        self.state = NegotiationState.AWAITING_EVENT
        logger.info("Waiting for connections")

    def _on_connect_confirm(self, message: ConnectConfirm, channel) -> Optional[int]:
        source, port = message.source_client, message.port

        if self.policy.auto_accept:
            logger.info(f"Auto-accepting client {source} on port {port}")
            channel.send(ConnectAccept())
            return None

        # A request can arrive while a tunnel is up; come back to that state
        previous = self.state
        self.state = NegotiationState.CONFIRMING
        try:
            accepted = self.confirm(source, port)
        finally:
            self.state = previous

        if accepted:
            logger.info(f"Accepted client {source} on port {port}")
            channel.send(ConnectAccept())
        else:
            logger.info(f"Denied client {source} on port {port}")
            channel.send(ConnectDeny())
        return None

    def _on_response(self, message: Response, channel) -> Optional[int]:
        if not message.success:
            logger.warning(f"Relay reported an error: {message.error or 'no details'}")
        return None

    def _tunnel_ready_states(self) -> FrozenSet[NegotiationState]:
        return frozenset({NegotiationState.AWAITING_EVENT})


class ReceiverNegotiator(Negotiator):
    """Connector side: asks for a host's port and maps it locally."""

    role = ClientRole.RECEIVER
    IGNORED = frozenset(
        {"register", "connect_to_host", "connect_confirm", "connect_accept", "connect_deny"}
    )

    def __init__(self, target: str, port: int, tunnel: TunnelManager):
        super().__init__(tunnel)
        self.target = target
        self.port = port

    def start(self, channel) -> None:
        channel.send(ConnectToHost(target=self.target, port=self.port))
        self.state = NegotiationState.REQUEST_SENT
        logger.info(f"Requested port {self.port} on host {self.target}")

    def _on_response(self, message: Response, channel) -> Optional[int]:
        if message.success:
            return None
        if self.state == NegotiationState.REQUEST_SENT:
            self.state = NegotiationState.DENIED
            raise DenialError(self.target, message.error or "connection refused")
        logger.warning(f"Relay reported an error: {message.error or 'no details'}")
        return None

    def _tunnel_ready_states(self) -> FrozenSet[NegotiationState]:
        return frozenset({NegotiationState.REQUEST_SENT})
