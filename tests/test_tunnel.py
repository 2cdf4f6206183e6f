# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tests for portrelay/tunnel.py using a shell script in place of ssh"""

import time
from pathlib import Path

import pytest

from portrelay.errors import SpawnError, TunnelError
from portrelay.protocol import ClientRole, TunnelConnect
from portrelay.tunnel import TunnelGrant, TunnelManager

SENDER_GRANT = TunnelGrant(
    role=ClientRole.SENDER,
    ssh_user="forward_user",
    sshd_port=2222,
    local_port=7857,
    forwarded_port=8080,
)

RECEIVER_GRANT = TunnelGrant(
    role=ClientRole.RECEIVER,
    ssh_user="forward_user",
    sshd_port=2222,
    local_port=9000,
    forwarded_port=22,
)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


@pytest.fixture
def manager_factory(tmp_path):
    managers = []

    def make(**kwargs):
        kwargs.setdefault("ssh_key", tmp_path / "id_ed25519")
        kwargs.setdefault("server_domain", "relay.example.com")
        manager = TunnelManager(**kwargs)
        managers.append(manager)
        return manager

    yield make

    for manager in managers:
        manager.stop()


class TestTunnelGrant:
    def test_from_message(self):
        message = TunnelConnect(
            client_type=ClientRole.SENDER,
            user="forward_user",
            sshd_port=2222,
            local_port=7857,
            forwarded_port=8080,
        )
        assert TunnelGrant.from_message(message) == SENDER_GRANT


class TestBuildCommand:
    def test_sender_remote_forward(self, manager_factory):
        manager = manager_factory(ssh_key=Path("/keys/id"))
        assert manager.build_command(SENDER_GRANT) == [
            "ssh",
            "-o",
            "StrictHostKeyChecking=no",
            "-N",
            "-p",
            "2222",
            "-i",
            "/keys/id",
            "-R",
            "7857:localhost:8080",
            "forward_user@relay.example.com",
        ]

    def test_receiver_local_forward(self, manager_factory):
        manager = manager_factory(ssh_key=Path("/keys/id"), local_port=5432)
        command = manager.build_command(RECEIVER_GRANT)
        assert command[-3:] == ["-L", "5432:localhost:9000", "forward_user@relay.example.com"]

    def test_receiver_without_local_port(self, manager_factory):
        manager = manager_factory()
        with pytest.raises(TunnelError):
            manager.build_command(RECEIVER_GRANT)

    def test_strict_host_key_checking(self, manager_factory):
        manager = manager_factory(strict_host_key_checking=True)
        assert "StrictHostKeyChecking=yes" in manager.build_command(SENDER_GRANT)

    def test_custom_binary(self, manager_factory):
        manager = manager_factory(ssh_binary="/opt/ssh/bin/ssh")
        assert manager.build_command(SENDER_GRANT)[0] == "/opt/ssh/bin/ssh"


class TestLifecycle:
    def test_start_and_stop(self, manager_factory, fake_ssh):
        script, args_file = fake_ssh()
        manager = manager_factory(ssh_binary=str(script))

        manager.start(SENDER_GRANT)

        assert manager.is_active
        assert manager.pid is not None
        assert wait_until(args_file.exists)
        assert "-R 7857:localhost:8080 forward_user@relay.example.com" in args_file.read_text()

        manager.stop()

        assert not manager.is_active
        assert manager.pid is None

    def test_stop_is_idempotent(self, manager_factory, fake_ssh):
        script, _ = fake_ssh()
        manager = manager_factory(ssh_binary=str(script))

        manager.stop()
        manager.start(SENDER_GRANT)
        manager.stop()
        manager.stop()

        assert not manager.is_active

    def test_second_start_rejected(self, manager_factory, fake_ssh):
        script, _ = fake_ssh()
        manager = manager_factory(ssh_binary=str(script))
        manager.start(SENDER_GRANT)
        pid = manager.pid

        with pytest.raises(TunnelError):
            manager.start(SENDER_GRANT)

        assert manager.pid == pid

    def test_restart_after_stop(self, manager_factory, fake_ssh):
        script, _ = fake_ssh()
        manager = manager_factory(ssh_binary=str(script))
        manager.start(SENDER_GRANT)
        manager.stop()

        manager.start(SENDER_GRANT)

        assert manager.is_active

    def test_missing_binary(self, manager_factory, tmp_path):
        manager = manager_factory(ssh_binary=str(tmp_path / "no-such-ssh"))

        with pytest.raises(SpawnError):
            manager.start(SENDER_GRANT)

        assert not manager.is_active

    def test_spawn_error_is_a_tunnel_error(self):
        assert issubclass(SpawnError, TunnelError)

    def test_self_exit_clears_handle(self, manager_factory, fake_ssh):
        script, _ = fake_ssh(body="exit 255")
        manager = manager_factory(ssh_binary=str(script))

        manager.start(SENDER_GRANT)

        assert wait_until(lambda: not manager.is_active)
        manager.stop()
