# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Lifecycle of the local ssh forwarding process.

The TunnelManager is the only owner of the ssh child process. Starting,
stopping and the watcher thread that notices a self-exited child all go
through one lock, so every exit path of the client can call ``stop()``
safely and at most one tunnel is alive at a time.

Sender (exposes a port) runs a remote forward:

    ssh -N -p <sshd_port> -i <key> -R <local_port>:localhost:<forwarded_port> <user>@<relay>

Receiver runs a local forward onto its configured port:

    ssh -N -p <sshd_port> -i <key> -L <configured_port>:localhost:<local_port> <user>@<relay>
"""

import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from portrelay.errors import SpawnError, TunnelError
from portrelay.paths import BinPaths
from portrelay.protocol import ClientRole, TunnelConnect
from portrelay.utils.logging import get_logger

logger = get_logger(__name__)

STOP_WAIT_TIMEOUT = 5.0  # seconds to reap a killed ssh process


@dataclass(frozen=True)
class TunnelGrant:
    """Everything needed to start one tunnel, as issued by the relay."""

    role: ClientRole
    ssh_user: str
    sshd_port: int
    local_port: int
    forwarded_port: int

    @classmethod
    def from_message(cls, message: TunnelConnect) -> "TunnelGrant":
        return cls(
            role=message.client_type,
            ssh_user=message.user,
            sshd_port=message.sshd_port,
            local_port=message.local_port,
            forwarded_port=message.forwarded_port,
        )


class TunnelManager:
    """Owns zero or one running ssh forward."""

    def __init__(
        self,
        ssh_key: Path,
        server_domain: str,
        local_port: Optional[int] = None,
        ssh_binary: str = BinPaths.SSH,
        strict_host_key_checking: bool = False,
    ):
        """
        Args:
            ssh_key: Private key passed to ssh with -i
            server_domain: Relay host the ssh connection goes to
            local_port: Port a receiver binds locally (unused by senders)
            ssh_binary: ssh executable to run
            strict_host_key_checking: Verify the relay's sshd host key. Off by
                default because the relay spawns a fresh sshd per tunnel.
        """
        self.ssh_key = ssh_key
        self.server_domain = server_domain
        self.local_port = local_port
        self.ssh_binary = ssh_binary
        self.strict_host_key_checking = strict_host_key_checking

        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._process is not None

    @property
    def pid(self) -> Optional[int]:
        with self._lock:
            return self._process.pid if self._process else None

    def build_command(self, grant: TunnelGrant) -> List[str]:
        """Build the ssh argv for a grant."""
        if grant.role == ClientRole.SENDER:
            forward = ["-R", f"{grant.local_port}:localhost:{grant.forwarded_port}"]
        else:
            if self.local_port is None:
                raise TunnelError("A receiver tunnel needs a local port to bind")
            forward = ["-L", f"{self.local_port}:localhost:{grant.local_port}"]

        host_key_checking = "yes" if self.strict_host_key_checking else "no"
        return [
            self.ssh_binary,
            "-o",
            f"StrictHostKeyChecking={host_key_checking}",
            "-N",
            "-p",
            str(grant.sshd_port),
            "-i",
            str(self.ssh_key),
            *forward,
            f"{grant.ssh_user}@{self.server_domain}",
        ]

    def start(self, grant: TunnelGrant) -> None:
        """Spawn the ssh process for ``grant``.

        Raises:
            TunnelError: If a tunnel is already running.
            SpawnError: If ssh cannot be launched.
        """
        command = self.build_command(grant)

        with self._lock:
            if self._process is not None:
                raise TunnelError(
                    f"A tunnel is already running (pid {self._process.pid})",
                    hint="The relay sent tunnel_connect twice without tunnel_close",
                )

            logger.debug(f"Starting tunnel: {' '.join(command)}")
            try:
                process = subprocess.Popen(command, stdin=subprocess.DEVNULL)
            except OSError as e:
                raise SpawnError(
                    f"Failed to start {self.ssh_binary}: {e}",
                    hint="Make sure an OpenSSH client is installed and on PATH",
                ) from e
            self._process = process

        watcher = threading.Thread(
            target=self._watch,
            args=(process,),
            name=f"tunnel-watch-{process.pid}",
            daemon=True,
        )
        watcher.start()

        if grant.role == ClientRole.SENDER:
            logger.success(
                f"Tunnel open: relay port {grant.local_port} -> localhost:{grant.forwarded_port}"
            )
        else:
            logger.success(f"Tunnel open: localhost:{self.local_port} -> remote host")

    def _watch(self, process: subprocess.Popen) -> None:
        returncode = process.wait()
        with self._lock:
            if self._process is not process:
                # Stopped on purpose
                return
            self._process = None
        logger.warning(f"Tunnel process {process.pid} exited with status {returncode}")

    def stop(self) -> None:
        """Kill the running ssh process, if any. Idempotent."""
        with self._lock:
            process, self._process = self._process, None

        if process is None:
            return

        logger.info("Closing tunnel")
        try:
            process.kill()
        except OSError:
            # Already gone
            pass
        try:
            process.wait(timeout=STOP_WAIT_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(f"Tunnel process {process.pid} did not exit after kill")
