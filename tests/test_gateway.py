"""
Tests for the gateway commands and settings panel actions.
"""

import pytest

from vault_mcp.base import ConfigurationError
from vault_mcp.config import SettingsStore
from vault_mcp.gateway import Gateway
from vault_mcp.messages import identity_lookup


@pytest.fixture
def settings(tmp_path, monkeypatch):
    for name in ("VAULT_MCP_HOST", "VAULT_MCP_PORT"):
        monkeypatch.delenv(name, raising=False)
    store = SettingsStore(tmp_path / "settings.json")
    store.set_port(28500)
    return store


@pytest.fixture
def gateway(vault, settings, notifier, factory):
    return Gateway(
        vault,
        settings,
        notifier=notifier,
        lookup=identity_lookup,
        transport_factory=factory,
        restart_delay=0,
    )


class TestCommands:

    @pytest.mark.asyncio
    async def test_startup_respects_autostart(self, gateway, settings):
        await gateway.startup()
        assert not gateway.lifecycle.is_running

        settings.set_start_on_startup(True)
        await gateway.startup()
        assert gateway.lifecycle.is_running

    @pytest.mark.asyncio
    async def test_start_failure_is_reported_not_raised(self, gateway, factory, notifier):
        factory.busy_ports.add(28500)

        assert await gateway.start_server() is False
        assert notifier.messages == ["server.startError (port=28500)"]

    @pytest.mark.asyncio
    async def test_status(self, gateway):
        assert gateway.status() == "serverStatus.stopped"
        await gateway.start_server()
        assert gateway.status() == "serverStatus.running (port=28500)"
        await gateway.stop_server()
        assert gateway.status() == "serverStatus.stopped"

    @pytest.mark.asyncio
    async def test_restart_notices(self, gateway, notifier, factory, settings):
        await gateway.start_server()
        await gateway.restart_server()
        assert notifier.messages[-1] == "settings.notices.restartSuccess"

        settings.set_port(28501)
        factory.busy_ports.add(28501)
        with pytest.raises(OSError):
            await gateway.restart_server()
        assert notifier.messages[-1].startswith("settings.notices.restartError")


class TestChangePort:

    @pytest.mark.asyncio
    async def test_invalid_port(self, gateway, notifier, settings):
        assert await gateway.change_port("99999") is False
        assert notifier.messages == ["settings.notices.invalidPort"]
        assert settings.load().port == 28500

    @pytest.mark.asyncio
    async def test_unchanged_port(self, gateway, notifier):
        assert await gateway.change_port(28500) is False
        assert notifier.messages == ["settings.notices.portUnchanged"]

    @pytest.mark.asyncio
    async def test_change_restarts_on_new_port(self, gateway, notifier, settings):
        await gateway.start_server()

        assert await gateway.change_port("28502") is True

        assert gateway.lifecycle.port == 28502
        assert settings.load().port == 28502
        assert notifier.messages[-1] == "settings.notices.portChanged (port=28502)"

    @pytest.mark.asyncio
    async def test_conflict_keeps_saved_port(self, gateway, notifier, settings, factory):
        await gateway.start_server()
        factory.busy_ports.add(28503)

        assert await gateway.change_port(28503) is False

        assert settings.load().port == 28503
        assert not gateway.lifecycle.is_running
        assert notifier.messages[-1].startswith("settings.notices.portSavedRestartFailed")


class TestToggles:

    @pytest.mark.asyncio
    async def test_toggle_applies_on_restart(self, gateway):
        await gateway.start_server()
        gateway.set_tool_enabled("delete_file", False)
        assert "delete_file" in gateway.lifecycle.snapshot

        await gateway.restart_server()
        assert "delete_file" not in gateway.lifecycle.snapshot

    def test_unknown_tool_toggle(self, gateway):
        with pytest.raises(ConfigurationError):
            gateway.set_tool_enabled("format_disk", False)
