# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Client session loop.

One thread reads one relay message at a time and hands it to the
negotiator; each message (including any operator prompt it triggers) is
fully processed before the next read. Whatever way the loop ends, the
tunnel is stopped and the channel closed before ``run`` returns or raises.
"""

import signal
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from portrelay import transport
from portrelay.errors import DenialError
from portrelay.identity import ClientIdentity
from portrelay.negotiation import (
    ConfirmCallback,
    NegotiationState,
    Negotiator,
    ReceiverNegotiator,
    SenderNegotiator,
)
from portrelay.protocol import ClientRole
from portrelay.registration import RegistrationPolicy, register
from portrelay.tunnel import TunnelManager
from portrelay.utils.logging import get_logger

logger = get_logger(__name__)


def _raise_system_exit(signum, frame):
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """Turn SIGTERM/SIGHUP into SystemExit so cleanup in ``finally`` runs."""
    if threading.current_thread() is not threading.main_thread():
        return
    for sig in (signal.SIGTERM, getattr(signal, "SIGHUP", None)):
        if sig is not None:
            signal.signal(sig, _raise_system_exit)


class ClientSession:
    """Drives one registered channel until the negotiation ends."""

    def __init__(
        self,
        channel,
        negotiator: Negotiator,
        tunnel: TunnelManager,
        negotiation_timeout: Optional[float] = None,
    ):
        self.channel = channel
        self.negotiator = negotiator
        self.tunnel = tunnel
        self.negotiation_timeout = negotiation_timeout

    def _receive_timeout(self) -> Optional[float]:
        if self.negotiator.state == NegotiationState.REQUEST_SENT:
            return self.negotiation_timeout
        return None

    def _receive(self):
        timeout = self._receive_timeout()
        try:
            return self.channel.receive(timeout=timeout)
        except TimeoutError:
            target = getattr(self.negotiator, "target", self.channel.address)
            raise DenialError(
                target,
                f"timed out after {timeout:g}s waiting for the relay to answer",
                hint="The host may be offline or still deciding; try again later",
            ) from None

    def run(self) -> int:
        """Run the negotiation to completion and return the exit status."""
        try:
            self.negotiator.start(self.channel)
            while True:
                message = self._receive()
                status = self.negotiator.handle(message, self.channel)
                if status is not None:
                    return status
        finally:
            self.tunnel.stop()
            self.channel.close()


@dataclass
class ClientOptions:
    """Everything run_client needs, resolved from CLI, env and config."""

    server_url: str
    server_domain: str
    ssh_key: Path
    role: ClientRole
    policy: RegistrationPolicy
    target: Optional[str] = None
    port: Optional[int] = None
    local_port: Optional[int] = None
    ssh_binary: str = "ssh"
    strict_host_key_checking: bool = False
    connect_timeout: float = transport.DEFAULT_OPEN_TIMEOUT
    negotiation_timeout: Optional[float] = None


def run_client(
    options: ClientOptions,
    identity: ClientIdentity,
    confirm: Optional[ConfirmCallback] = None,
) -> int:
    """Connect, register and run a session for one role.

    Raises:
        PortRelayError subclasses for every fatal failure.
    """
    tunnel = TunnelManager(
        ssh_key=options.ssh_key,
        server_domain=options.server_domain,
        local_port=options.local_port,
        ssh_binary=options.ssh_binary,
        strict_host_key_checking=options.strict_host_key_checking,
    )

    if options.role == ClientRole.SENDER:
        if confirm is None:
            raise ValueError("A sender needs a confirm callback")
        negotiator: Negotiator = SenderNegotiator(options.policy, tunnel, confirm)
    else:
        negotiator = ReceiverNegotiator(options.target, options.port, tunnel)

    install_signal_handlers()

    channel = transport.connect(options.server_url, open_timeout=options.connect_timeout)
    try:
        register(channel, identity, options.role, options.policy)
        logger.success(f"Registered with {options.server_url} as {options.role}")

        session = ClientSession(channel, negotiator, tunnel, options.negotiation_timeout)
        return session.run()
    finally:
        channel.close()
