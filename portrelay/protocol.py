# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Relay signaling protocol.

Every message is one JSON object per websocket text frame, tagged with a
``type`` discriminator:

    register         client -> relay   identity, key, role and host policy
    connect_to_host  receiver -> relay target identity and port
    connect_confirm  relay -> sender   someone wants to connect
    connect_accept   sender -> relay   (no fields)
    connect_deny     sender -> relay   (no fields)
    tunnel_connect   relay -> both     ssh user and ports for the forward
    tunnel_close     relay -> both     (no fields)
    response         relay -> client   success flag and optional error

Decoding an unknown ``type`` or a malformed payload raises ProtocolError.
Unknown extra fields are ignored.
"""

from enum import Enum
from typing import Annotated, Dict, FrozenSet, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_serializer

from portrelay.errors import ProtocolError

# uint16 on the wire; user-entered ports are range checked by the CLI and config
Port = Annotated[int, Field(ge=0, le=65535)]


class ClientRole(str, Enum):
    """Which side of the forward a client is on."""

    SENDER = "sender"  # exposes a local port
    RECEIVER = "receiver"  # reaches a port exposed by a sender

    def __str__(self) -> str:
        return self.value


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Register(_Message):
    type: Literal["register"] = "register"
    uuid: str
    ssh_key: str
    client_type: ClientRole
    auto_accept: bool = False
    port_whitelist: FrozenSet[Port] = frozenset()
    port_blacklist: FrozenSet[Port] = frozenset()

    @field_serializer("port_whitelist", "port_blacklist")
    def _serialize_ports(self, ports: FrozenSet[int]) -> list:
        return sorted(ports)


class ConnectToHost(_Message):
    type: Literal["connect_to_host"] = "connect_to_host"
    target: str
    port: Port


class ConnectConfirm(_Message):
    type: Literal["connect_confirm"] = "connect_confirm"
    source_client: str
    port: Port


class ConnectAccept(_Message):
    type: Literal["connect_accept"] = "connect_accept"


class ConnectDeny(_Message):
    type: Literal["connect_deny"] = "connect_deny"


class TunnelConnect(_Message):
    type: Literal["tunnel_connect"] = "tunnel_connect"
    client_type: ClientRole
    user: str  # ssh user on the relay's sshd
    sshd_port: Port
    local_port: Port  # port on the relay shared by both clients
    forwarded_port: Port  # sender's local port (ignored by receivers)


class TunnelClose(_Message):
    type: Literal["tunnel_close"] = "tunnel_close"


class Response(_Message):
    type: Literal["response"] = "response"
    success: bool
    error: Optional[str] = None


Message = Annotated[
    Union[
        Register,
        ConnectToHost,
        ConnectConfirm,
        ConnectAccept,
        ConnectDeny,
        TunnelConnect,
        TunnelClose,
        Response,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter = TypeAdapter(Message)

# Discriminator value -> model class, for every variant of Message
MESSAGE_TYPES: Dict[str, Type[_Message]] = {
    cls.model_fields["type"].default: cls
    for cls in (
        Register,
        ConnectToHost,
        ConnectConfirm,
        ConnectAccept,
        ConnectDeny,
        TunnelConnect,
        TunnelClose,
        Response,
    )
}


def encode(message: _Message) -> str:
    """Serialize a message to its JSON wire form."""
    if type(message) not in MESSAGE_TYPES.values():
        raise TypeError(f"Not a protocol message: {message!r}")
    return message.model_dump_json()


def decode(data: Union[str, bytes]) -> _Message:
    """Parse one JSON wire message.

    Raises:
        ProtocolError: If the payload is not valid JSON, has no known
            ``type`` or fails field validation.
    """
    try:
        return _adapter.validate_json(data)
    except ValidationError as e:
        text = data.decode("utf-8", "replace") if isinstance(data, bytes) else data
        preview = text if len(text) <= 200 else text[:200] + "..."
        raise ProtocolError(
            f"Malformed relay message: {_describe(e)}",
            hint=f"Payload: {preview!r}. The relay and client versions may not match.",
        ) from e


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"{location}: {first['msg']}"
    return first["msg"]
