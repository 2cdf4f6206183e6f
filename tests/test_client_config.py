# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Tests for portrelay/client_config.py"""

from pathlib import Path

import pytest
import yaml

from portrelay.client_config import ClientConfig, get_config, reset_config
from portrelay.models.client_config import ClientConfigModel, HostSettings
from portrelay.paths import HostPaths


def write_config(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data) if not isinstance(data, str) else data)
    return path


class TestDefaults:
    def test_no_file(self, isolated_home):
        config = ClientConfig()
        assert config.server_url == "localhost:7856"
        assert config.ssh_key == isolated_home / ".ssh" / "id_rsa"
        assert config.dev is False
        assert config.get("timeouts", "connect") == 10.0
        assert config.get("timeouts", "negotiation") is None
        assert config.get("ssh", "strict_host_key_checking") is False

    def test_default_path_is_xdg(self, isolated_home):
        assert ClientConfig().config_path == isolated_home / ".config" / "portrelay" / "config.yml"


class TestFile:
    def test_values_loaded(self, isolated_home):
        write_config(
            HostPaths.config_file(),
            {
                "server_url": "https://relay.example.com",
                "ssh_key": "~/.ssh/id_ed25519",
                "host": {"auto_accept": True, "port_whitelist": [80, 443]},
                "timeouts": {"negotiation": 30},
            },
        )

        config = ClientConfig()

        assert config.server_url == "https://relay.example.com"
        assert config.ssh_key == isolated_home / ".ssh" / "id_ed25519"
        assert config.get("host", "auto_accept") is True
        assert config.get("host", "port_whitelist") == [80, 443]
        assert config.get("timeouts", "negotiation") == 30

    def test_explicit_path(self, tmp_path, isolated_home):
        path = write_config(tmp_path / "other.yml", {"dev": True})
        assert ClientConfig(path).dev is True

    def test_env_path(self, tmp_path, isolated_home, monkeypatch):
        path = write_config(tmp_path / "env.yml", {"server_url": "relay.env"})
        monkeypatch.setenv("PORTRELAY_CONFIG", str(path))
        assert ClientConfig().server_url == "relay.env"

    def test_get_section_returns_dict(self, isolated_home):
        assert ClientConfig().get("host") == HostSettings().model_dump()

    def test_get_missing_key(self, isolated_home):
        assert ClientConfig().get("nope", "deeper", default=42) == 42

    @pytest.mark.parametrize(
        "content",
        [
            "server_url: [unclosed",
            "- just\n- a list\n",
            "host:\n  port_whitelist: [0]\n",
            "timeouts:\n  connect: -1\n",
        ],
        ids=["bad-yaml", "not-a-mapping", "bad-port", "bad-timeout"],
    )
    def test_invalid_file_falls_back_to_defaults(self, isolated_home, content):
        write_config(HostPaths.config_file(), content)

        config = ClientConfig()

        assert config.model == ClientConfigModel()

    def test_empty_file(self, isolated_home):
        write_config(HostPaths.config_file(), "")
        assert ClientConfig().model == ClientConfigModel()


class TestEnvironment:
    def test_env_overrides_file(self, isolated_home, monkeypatch):
        write_config(HostPaths.config_file(), {"server_url": "relay.file", "dev": True})
        monkeypatch.setenv("PORTRELAY_SERVER_URL", "relay.env")
        monkeypatch.setenv("PORTRELAY_SSH_KEY", "$HOME/keys/id")
        monkeypatch.setenv("PORTRELAY_DEV", "no")

        config = ClientConfig()

        assert config.server_url == "relay.env"
        assert config.ssh_key == isolated_home / "keys" / "id"
        assert config.dev is False

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_dev_truthy(self, isolated_home, monkeypatch, value):
        monkeypatch.setenv("PORTRELAY_DEV", value)
        assert ClientConfig().dev is True

    def test_empty_env_ignored(self, isolated_home, monkeypatch):
        write_config(HostPaths.config_file(), {"dev": True})
        monkeypatch.setenv("PORTRELAY_DEV", "")
        assert ClientConfig().dev is True


class TestSingleton:
    def test_cached_until_reset(self, isolated_home, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("PORTRELAY_SERVER_URL", "relay.later")
        assert get_config().server_url == "localhost:7856"

        reset_config()
        assert get_config().server_url == "relay.later"
