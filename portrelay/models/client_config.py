# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Pydantic models for client configuration (~/.config/portrelay/config.yml)."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from portrelay.utils.urls import DEFAULT_SERVER_URL


class HostSettings(BaseModel):
    """Defaults for `portrelay host`."""

    auto_accept: bool = False
    port_whitelist: List[int] = Field(default_factory=list)
    port_blacklist: List[int] = Field(default_factory=list)

    @field_validator("port_whitelist", "port_blacklist")
    @classmethod
    def validate_ports(cls, ports: List[int]) -> List[int]:
        for port in ports:
            if not 1 <= port <= 65535:
                raise ValueError(f"Port out of range: {port}")
        return ports


class SSHSettings(BaseModel):
    """How the ssh forwarding process is started.

    strict_host_key_checking: Verify the relay sshd's host key. Off by
        default since the relay starts an ephemeral sshd per tunnel.
    """

    binary: str = "ssh"
    strict_host_key_checking: bool = False


class TimeoutSettings(BaseModel):
    """Timeouts in seconds. negotiation=None waits for the relay forever."""

    connect: float = Field(default=10.0, gt=0)
    negotiation: Optional[float] = Field(default=None, gt=0)


class ClientConfigModel(BaseModel):
    """Root configuration model."""

    server_url: str = DEFAULT_SERVER_URL
    ssh_key: str = "~/.ssh/id_rsa"
    dev: bool = False
    host: HostSettings = Field(default_factory=HostSettings)
    ssh: SSHSettings = Field(default_factory=SSHSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
