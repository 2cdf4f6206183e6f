# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tests for portrelay/registration.py"""

import pytest

from portrelay.errors import ProtocolError, RegistrationError
from portrelay.identity import ClientIdentity
from portrelay.protocol import ClientRole, ConnectConfirm, Register, Response
from portrelay.registration import RegistrationPolicy, register

IDENTITY = ClientIdentity(id="11111111-2222-4333-8444-555555555555", public_key="ssh-ed25519 AAAA")


class TestRegistrationPolicy:
    def test_receiver_policy_is_empty(self):
        policy = RegistrationPolicy.for_receiver()
        assert policy.auto_accept is False
        assert policy.port_whitelist == frozenset()
        assert policy.port_blacklist == frozenset()

    def test_sender_policy_dedupes_ports(self):
        policy = RegistrationPolicy.for_sender(port_whitelist=[443, 80, 443])
        assert policy.port_whitelist == frozenset({80, 443})


class TestRegister:
    def test_success(self, channel_factory):
        channel = channel_factory([Response(success=True)])
        policy = RegistrationPolicy.for_sender(auto_accept=True, port_whitelist=[80, 443])

        register(channel, IDENTITY, ClientRole.SENDER, policy)

        assert channel.sent == [
            Register(
                uuid=IDENTITY.id,
                ssh_key=IDENTITY.public_key,
                client_type=ClientRole.SENDER,
                auto_accept=True,
                port_whitelist=frozenset({80, 443}),
                port_blacklist=frozenset(),
            )
        ]

    def test_rejected(self, channel_factory):
        channel = channel_factory([Response(success=False, error="unknown key")])

        with pytest.raises(RegistrationError) as excinfo:
            register(channel, IDENTITY, ClientRole.RECEIVER, RegistrationPolicy.for_receiver())

        assert "unknown key" in str(excinfo.value)

    def test_rejected_without_reason(self, channel_factory):
        channel = channel_factory([Response(success=False)])

        with pytest.raises(RegistrationError) as excinfo:
            register(channel, IDENTITY, ClientRole.SENDER, RegistrationPolicy())

        assert "no reason given" in str(excinfo.value)

    def test_non_response_is_protocol_error(self, channel_factory):
        channel = channel_factory([ConnectConfirm(source_client="R1", port=22)])

        with pytest.raises(ProtocolError):
            register(channel, IDENTITY, ClientRole.SENDER, RegistrationPolicy())

    def test_reads_exactly_one_reply(self, channel_factory):
        follow_up = ConnectConfirm(source_client="R1", port=22)
        channel = channel_factory([Response(success=True), follow_up])

        register(channel, IDENTITY, ClientRole.SENDER, RegistrationPolicy())

        assert channel.incoming == [follow_up]
