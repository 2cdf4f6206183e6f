# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Centralized client configuration for portrelay.

Precedence: CLI options > environment > config file > model defaults.

Environment:
    PORTRELAY_CONFIG      Alternate config file path
    PORTRELAY_SERVER_URL  Relay address
    PORTRELAY_SSH_KEY     Private key path
    PORTRELAY_DEV         Development mode (fresh id per run, ws:// default)
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from portrelay.models.client_config import ClientConfigModel
from portrelay.paths import HostPaths

logger = logging.getLogger(__name__)

_TRUTHY = ("1", "true", "yes", "on")


class ClientConfig:
    """Loads ~/.config/portrelay/config.yml and applies env overrides."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or HostPaths.config_file()
        self.model = self._load()
        self._apply_env()

    def _load(self) -> ClientConfigModel:
        """Load configuration from file, falling back to defaults."""
        if not self.config_path.exists():
            return ClientConfigModel()

        try:
            with open(self.config_path) as f:
                raw_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {self.config_path}: {e}")
            return ClientConfigModel()

        if not isinstance(raw_config, dict):
            logger.warning(f"Ignoring {self.config_path}: expected a mapping at top level")
            return ClientConfigModel()

        try:
            return ClientConfigModel.model_validate(raw_config)
        except ValidationError as e:
            logger.warning(f"Config validation errors in {self.config_path}: {e}")
            return ClientConfigModel()

    def _apply_env(self) -> None:
        server_url = os.environ.get("PORTRELAY_SERVER_URL")
        if server_url:
            self.model.server_url = server_url

        ssh_key = os.environ.get("PORTRELAY_SSH_KEY")
        if ssh_key:
            self.model.ssh_key = ssh_key

        dev = os.environ.get("PORTRELAY_DEV")
        if dev is not None and dev != "":
            self.model.dev = dev.lower() in _TRUTHY

    @property
    def server_url(self) -> str:
        return self.model.server_url

    @property
    def ssh_key(self) -> Path:
        """Private key path with ~ and $HOME expanded."""
        return Path(os.path.expandvars(self.model.ssh_key)).expanduser()

    @property
    def dev(self) -> bool:
        return self.model.dev

    def get(self, *keys, default=None) -> Any:
        """Get nested config value.

        Example: config.get("timeouts", "negotiation")
        """
        value: Any = self.model
        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        if hasattr(value, "model_dump"):
            return value.model_dump()
        return value


# Singleton instance
_config: Optional[ClientConfig] = None


def get_config() -> ClientConfig:
    """Get the global client configuration."""
    global _config
    if _config is None:
        _config = ClientConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (tests, or after changing env)."""
    global _config
    _config = None
