# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Server URL and port list helpers."""

from typing import Iterable, List, Optional, Tuple
from urllib.parse import urlsplit

DEFAULT_SERVER_URL = "localhost:7856"


def normalize_server_url(url: str, dev: bool = False) -> str:
    """Turn a user-supplied server address into a websocket URL.

    http:// becomes ws://, https:// becomes wss://. A bare host gets ws://
    in development mode and wss:// otherwise.
    """
    url = url.strip()
    if url.startswith("http://"):
        url = "ws://" + url[len("http://") :]
    elif url.startswith("https://"):
        url = "wss://" + url[len("https://") :]

    if not (url.startswith("ws://") or url.startswith("wss://")):
        url = ("ws://" if dev else "wss://") + url
    return url


def server_domain(url: str) -> str:
    """Host part of a server URL, used as the ssh target host.

    Raises:
        ValueError: If the URL has no host.
    """
    host = urlsplit(url).hostname
    if not host:
        raise ValueError(f"Invalid server url {url!r}: no host")
    return host


def parse_port_list(value: Optional[str]) -> Tuple[List[int], List[str]]:
    """Parse a comma separated port list.

    Returns:
        (valid ports in input order, rejected entries)
    """
    if not value:
        return [], []

    ports: List[int] = []
    rejected: List[str] = []
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            port = int(entry)
        except ValueError:
            rejected.append(entry)
            continue
        if 1 <= port <= 65535:
            ports.append(port)
        else:
            rejected.append(entry)
    return ports, rejected


def format_ports(ports: Iterable[int]) -> str:
    ports = sorted(ports)
    return ", ".join(str(p) for p in ports) if ports else "none"
