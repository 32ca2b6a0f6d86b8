"""
Tests for settings persistence and port validation.
"""

import json

import pytest

from vault_mcp.base import ConfigurationError
from vault_mcp.config import (
    DEFAULT_PORT,
    DEFAULT_TOOL_TOGGLES,
    ServerConfiguration,
    SettingsStore,
    validate_port,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("VAULT_MCP_HOST", "VAULT_MCP_PORT", "VAULT_MCP_CONFIG"):
        monkeypatch.delenv(name, raising=False)


class TestValidatePort:

    @pytest.mark.parametrize("value,expected", [(1, 1), (65535, 65535), ("27124", 27124), (" 80 ", 80)])
    def test_valid(self, value, expected):
        assert validate_port(value) == expected

    @pytest.mark.parametrize("value", [0, 65536, -1, "abc", "", "12.5", 12.0, None, True])
    def test_invalid(self, value):
        with pytest.raises(ConfigurationError):
            validate_port(value)


class TestServerConfiguration:

    def test_defaults(self):
        config = ServerConfiguration()
        assert config.port == DEFAULT_PORT
        assert config.start_on_startup is False
        assert config.endpoint == "http://localhost:27123/mcp"
        assert config.is_tool_enabled("execute_command") is False
        assert config.is_tool_enabled("not_a_known_tool") is True

    def test_from_dict_merges_defaults(self):
        config = ServerConfiguration.from_dict({"port": 27200, "tools": {"read_file": False}})
        assert config.port == 27200
        assert config.is_tool_enabled("read_file") is False
        assert config.is_tool_enabled("list_files") is True
        assert set(config.tools) == set(DEFAULT_TOOL_TOGGLES)

    def test_from_dict_rejects_bad_port(self):
        with pytest.raises(ConfigurationError):
            ServerConfiguration.from_dict({"port": 99999})

    def test_to_dict_shape(self):
        data = ServerConfiguration(port=28000, start_on_startup=True).to_dict()
        assert data["port"] == 28000
        assert data["startOnStartup"] is True
        assert data["tools"] == DEFAULT_TOOL_TOGGLES


class TestSettingsStore:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert SettingsStore(tmp_path / "settings.json").load() == ServerConfiguration()

    def test_round_trip_edits(self, tmp_path):
        store = SettingsStore(tmp_path / "nested" / "settings.json")

        store.set_port("28080")
        store.set_start_on_startup(True)
        store.set_tool_enabled("delete_folder", False)

        saved = json.loads((tmp_path / "nested" / "settings.json").read_text(encoding="utf-8"))
        assert saved["port"] == 28080
        assert saved["startOnStartup"] is True
        assert saved["tools"]["delete_folder"] is False

        config = store.load()
        assert config.port == 28080
        assert not config.is_tool_enabled("delete_folder")

    def test_invalid_port_never_saved(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(path)

        with pytest.raises(ConfigurationError):
            store.set_port("70000")

        assert not path.exists()

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            SettingsStore(path).load()

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VAULT_MCP_PORT", "28111")
        monkeypatch.setenv("VAULT_MCP_HOST", "0.0.0.0")
        store = SettingsStore(tmp_path / "settings.json")

        config = store.load()
        assert config.port == 28111
        assert config.host == "0.0.0.0"

        # edits persist file values, not the overrides
        store.set_start_on_startup(True)
        saved = json.loads(store.path.read_text(encoding="utf-8"))
        assert saved["port"] == DEFAULT_PORT

    def test_host_argument_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VAULT_MCP_HOST", "0.0.0.0")
        assert SettingsStore(tmp_path / "s.json", host="::1").load().host == "::1"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VAULT_MCP_CONFIG", str(tmp_path / "env.json"))
        assert SettingsStore().path == tmp_path / "env.json"
