# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pytest fixtures for portrelay tests.

Tests run without a real relay or ssh: a scripted in-memory channel stands
in for the relay connection, a small shell script stands in for ssh, and a
websockets server on an ephemeral port plays the relay where the real
transport is exercised.
"""

import os
import tempfile
import threading
from pathlib import Path

# Keep log output out of the user's state directory
os.environ.setdefault(
    "PORTRELAY_LOG_FILE", str(Path(tempfile.gettempdir()) / "portrelay-tests.log")
)

import asyncssh  # noqa: E402
import pytest  # noqa: E402
from websockets.sync.server import serve  # noqa: E402

from portrelay import client_config  # noqa: E402
from portrelay.errors import TransportError  # noqa: E402


class FakeChannel:
    """In-memory stand-in for RelayChannel.

    ``incoming`` is consumed in order by receive(); exception instances in it
    are raised instead of returned. Running out of messages behaves like the
    relay hanging up.
    """

    def __init__(self, incoming=(), address="ws://relay.test:7856"):
        self.incoming = list(incoming)
        self.address = address
        self.sent = []
        self.receive_timeouts = []
        self.closed = False

    def send(self, message):
        if self.closed:
            raise TransportError("channel closed")
        self.sent.append(message)

    def receive(self, timeout=None):
        self.receive_timeouts.append(timeout)
        if not self.incoming:
            raise TransportError(f"Relay {self.address} closed the connection")
        item = self.incoming.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.closed = True

    @property
    def sent_types(self):
        return [m.type for m in self.sent]


@pytest.fixture
def channel_factory():
    """Build FakeChannels preloaded with relay messages."""
    return FakeChannel


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME and XDG dirs at a temp dir and drop cached config."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("XDG_CONFIG_HOME", "XDG_DATA_HOME", "XDG_STATE_HOME"):
        monkeypatch.delenv(var, raising=False)
    for var in ("PORTRELAY_CONFIG", "PORTRELAY_SERVER_URL", "PORTRELAY_SSH_KEY", "PORTRELAY_DEV"):
        monkeypatch.delenv(var, raising=False)
    client_config.reset_config()
    yield home
    client_config.reset_config()


@pytest.fixture
def ssh_keypair(tmp_path):
    """Write an ed25519 keypair and return the private key path."""
    key = asyncssh.generate_private_key("ssh-ed25519", comment="tester@portrelay")
    private = tmp_path / "id_ed25519"
    key.write_private_key(str(private))
    key.write_public_key(str(private) + ".pub")
    return private


@pytest.fixture
def fake_ssh(tmp_path):
    """Create an executable that stands in for ssh.

    The script records its arguments to ``<script>.args`` and then runs
    ``body`` (by default it sleeps until killed).
    """

    def make(body="exec sleep 60", name="fake-ssh"):
        script = tmp_path / name
        args_file = tmp_path / f"{name}.args"
        script.write_text(
            f'#!/bin/sh\necho "$@" > "{args_file}.tmp"\nmv "{args_file}.tmp" "{args_file}"\n{body}\n'
        )
        script.chmod(0o755)
        return script, args_file

    return make


@pytest.fixture
def relay_server():
    """Start websocket relays driven by a handler function.

    Usage:
        url = relay_server(handler)   # handler(ws) runs per connection
    """
    servers = []

    def start(handler):
        server = serve(handler, "127.0.0.1", 0)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append((server, thread))
        port = server.socket.getsockname()[1]
        return f"ws://127.0.0.1:{port}"

    yield start

    for server, thread in servers:
        server.shutdown()
        thread.join(timeout=5)
