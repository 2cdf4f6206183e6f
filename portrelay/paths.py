# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized path definitions for portrelay.

Usage:
    from portrelay.paths import HostPaths

    config_file = HostPaths.config_file()
    id_file = HostPaths.identity_file()
"""

import os
from pathlib import Path


class HostPaths:
    """Paths on the machine where the portrelay client runs."""

    # XDG config directory for portrelay
    @staticmethod
    def config_dir() -> Path:
        """~/.config/portrelay/ (or $XDG_CONFIG_HOME/portrelay/)"""
        xdg = os.getenv("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
        return base / "portrelay"

    @staticmethod
    def config_file() -> Path:
        """~/.config/portrelay/config.yml, overridable with PORTRELAY_CONFIG."""
        env_path = os.getenv("PORTRELAY_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return HostPaths.config_dir() / "config.yml"

    # XDG data directory
    @staticmethod
    def data_dir() -> Path:
        """~/.local/share/portrelay/"""
        xdg = os.getenv("XDG_DATA_HOME")
        base = Path(xdg) if xdg else Path.home() / ".local" / "share"
        return base / "portrelay"

    @staticmethod
    def identity_file() -> Path:
        """~/.local/share/portrelay/id - the stable client identifier."""
        return HostPaths.data_dir() / "id"

    # XDG state directory
    @staticmethod
    def state_dir() -> Path:
        """~/.local/state/portrelay/"""
        xdg = os.getenv("XDG_STATE_HOME")
        base = Path(xdg) if xdg else Path.home() / ".local" / "state"
        return base / "portrelay"

    @staticmethod
    def log_dir() -> Path:
        """~/.local/state/portrelay/logs/"""
        return HostPaths.state_dir() / "logs"

    @staticmethod
    def default_ssh_key() -> Path:
        """~/.ssh/id_rsa"""
        return Path.home() / ".ssh" / "id_rsa"


class BinPaths:
    """External binaries portrelay shells out to."""

    SSH = "ssh"
