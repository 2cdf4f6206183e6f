# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Blocking message channel to the relay.

A RelayChannel wraps one websocket connection (``ws://`` or ``wss://``).
Each text frame carries exactly one protocol message; frames arrive in send
order, which the registration and negotiation layers rely on.
"""

from typing import Optional

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import ClientConnection
from websockets.sync.client import connect as ws_connect

from portrelay import protocol
from portrelay.errors import ConnectError, TransportError
from portrelay.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_OPEN_TIMEOUT = 10.0  # seconds
DEFAULT_CLOSE_TIMEOUT = 2.0  # seconds


class RelayChannel:
    """Ordered, reliable, bidirectional message channel to one relay.

    Not thread-safe: the session loop is the only reader and writer.
    """

    def __init__(self, connection: ClientConnection, address: str):
        self._connection = connection
        self.address = address
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message) -> None:
        """Send one protocol message.

        Raises:
            TransportError: If the connection is closed or the write fails.
        """
        if self._closed:
            raise TransportError(f"Cannot send {message.type}: channel to {self.address} is closed")

        data = protocol.encode(message)
        logger.debug(f"-> {data}")
        try:
            self._connection.send(data)
        except ConnectionClosed as e:
            self._closed = True
            raise TransportError(f"Relay {self.address} closed the connection ({e})") from e
        except OSError as e:
            self._closed = True
            raise TransportError(f"Failed to send {message.type} to {self.address}: {e}") from e

    def receive(self, timeout: Optional[float] = None):
        """Block until one complete message arrives and return it decoded.

        Args:
            timeout: Seconds to wait; None waits forever.

        Raises:
            TransportError: On connection loss.
            ProtocolError: On a malformed or unrecognized payload.
            TimeoutError: If ``timeout`` elapses first.
        """
        if self._closed:
            raise TransportError(f"Cannot receive: channel to {self.address} is closed")

        try:
            data = self._connection.recv(timeout=timeout)
        except ConnectionClosed as e:
            self._closed = True
            raise TransportError(f"Relay {self.address} closed the connection ({e})") from e
        except TimeoutError:
            # TimeoutError subclasses OSError; the connection is still usable
            raise
        except OSError as e:
            self._closed = True
            raise TransportError(f"Failed to read from {self.address}: {e}") from e

        logger.debug(f"<- {data!r}" if isinstance(data, bytes) else f"<- {data}")
        return protocol.decode(data)

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._connection.close()
        except OSError as e:
            logger.debug(f"Error while closing channel to {self.address}: {e}")

    def __enter__(self) -> "RelayChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def connect(address: str, open_timeout: float = DEFAULT_OPEN_TIMEOUT) -> RelayChannel:
    """Open a channel to the relay at ``address`` (a ws:// or wss:// URL).

    Raises:
        ConnectError: If the URL is invalid or the connection, TLS or
            websocket handshake fails.
    """
    logger.debug(f"Connecting to relay {address}")
    try:
        connection = ws_connect(
            address,
            open_timeout=open_timeout,
            close_timeout=DEFAULT_CLOSE_TIMEOUT,
        )
    except InvalidURI as e:
        raise ConnectError(
            f"Invalid relay address {address!r}",
            hint="Use a ws:// or wss:// URL, or a bare host:port",
        ) from e
    except InvalidHandshake as e:
        raise ConnectError(
            f"Relay at {address} refused the websocket handshake: {e}",
            hint="Check that the address points at a portrelay relay",
        ) from e
    except TimeoutError as e:
        raise ConnectError(f"Timed out connecting to relay at {address}") from e
    except OSError as e:
        raise ConnectError(
            f"Failed to connect to relay at {address}: {e}",
            hint="Check the server URL and that the relay is running",
        ) from e

    logger.debug(f"Connected to relay {address}")
    return RelayChannel(connection, address)
