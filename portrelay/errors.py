# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Error taxonomy for the portrelay client.

Every failure the client can hit maps onto one of these classes. The CLI's
``handle_errors`` decorator renders them as panels titled by ``title`` and
exits with status 1. ``SpawnError`` is the only one the negotiation layer
recovers from.
"""

from typing import Optional


class PortRelayError(Exception):
    """Base class for all portrelay errors."""

    title = "Error"

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class ConnectError(PortRelayError):
    """Raised when the relay connection cannot be established."""

    title = "Connection Failed"


class TransportError(PortRelayError):
    """Raised when an established relay connection breaks."""

    title = "Connection Lost"


class ProtocolError(PortRelayError):
    """Raised on malformed, unknown or out-of-place relay messages."""

    title = "Protocol Error"


class RegistrationError(PortRelayError):
    """Raised when the relay rejects the registration."""

    title = "Registration Failed"


class DenialError(PortRelayError):
    """Raised when a connection request is denied or never answered."""

    title = "Connection Denied"

    def __init__(self, target: str, reason: str, hint: Optional[str] = None):
        super().__init__(f"{target}: {reason}", hint=hint)
        self.target = target
        self.reason = reason


class TunnelError(PortRelayError):
    """Raised when the tunnel manager is asked to do something illegal."""

    title = "Tunnel Error"


class SpawnError(TunnelError):
    """Raised when the ssh forwarding process cannot be launched."""

    title = "Tunnel Failed"
