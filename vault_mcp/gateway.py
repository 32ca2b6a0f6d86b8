"""
Gateway: the user-facing surface around the lifecycle manager.

Mirrors what a host UI exposes: "start server" / "stop server" commands,
a status line, and the settings panel actions (port change with restart,
autostart flag, per-tool toggles, restart button).
"""

import logging
from typing import Optional

from .base import ConfigurationError
from .capabilities import CapabilityProvider
from .config import SettingsStore, validate_port
from .dispatcher import Dispatcher
from .lifecycle import RESTART_SETTLE_SECONDS, LifecycleManager, TransportFactory
from .messages import Lookup, MessageCatalog
from .notifications import LoggingNotifier, NotificationSink
from .registry import get_all_tools
from .transport import http_transport_factory

logger = logging.getLogger(__name__)


class Gateway:

    def __init__(
        self,
        provider: CapabilityProvider,
        settings: SettingsStore,
        notifier: Optional[NotificationSink] = None,
        lookup: Optional[Lookup] = None,
        transport_factory: TransportFactory = http_transport_factory,
        restart_delay: float = RESTART_SETTLE_SECONDS,
    ):
        self.provider = provider
        self.settings = settings
        self.notifier = notifier or LoggingNotifier()
        self.lookup = lookup or MessageCatalog()
        self.dispatcher = Dispatcher(provider, notifier=self.notifier, lookup=self.lookup)
        self.lifecycle = LifecycleManager(
            config_source=settings.load,
            catalog=get_all_tools,
            dispatcher=self.dispatcher,
            transport_factory=transport_factory,
            notifier=self.notifier,
            lookup=self.lookup,
            restart_delay=restart_delay,
        )

    async def startup(self) -> None:
        """Honour the autostart flag."""
        if self.settings.load().start_on_startup:
            await self.start_server()

    async def start_server(self) -> bool:
        """'Start server' command. Failures are reported, not raised."""
        try:
            await self.lifecycle.start()
        except Exception as e:
            logger.error(f"Failed to start MCP Server: {e}")
        return self.lifecycle.is_running

    async def stop_server(self) -> None:
        """'Stop server' command."""
        await self.lifecycle.stop()

    async def restart_server(self) -> None:
        """Settings panel restart; raises so the panel can show the failure."""
        try:
            await self.lifecycle.restart()
        except Exception as e:
            self.notifier.notify(self.lookup("settings.notices.restartError", {"error": str(e)}))
            raise
        self.notifier.notify(self.lookup("settings.notices.restartSuccess"))

    def status(self) -> str:
        if self.lifecycle.is_running:
            return self.lookup("serverStatus.running", {"port": str(self.lifecycle.port)})
        return self.lookup("serverStatus.stopped")

    async def change_port(self, value) -> bool:
        """
        Save a new port and restart on it.
        Returns True when the server ends up running on the new port.
        """
        try:
            port = validate_port(value)
        except ConfigurationError:
            self.notifier.notify(self.lookup("settings.notices.invalidPort"))
            return False

        if port == self.settings.load().port:
            self.notifier.notify(self.lookup("settings.notices.portUnchanged"))
            return False

        self.settings.set_port(port)
        try:
            await self.lifecycle.restart()
        except Exception as e:
            self.notifier.notify(
                self.lookup("settings.notices.portSavedRestartFailed", {"error": str(e)})
            )
            return False

        self.notifier.notify(self.lookup("settings.notices.portChanged", {"port": str(port)}))
        return True

    def set_start_on_startup(self, enabled: bool) -> None:
        self.settings.set_start_on_startup(enabled)

    def set_tool_enabled(self, name: str, enabled: bool) -> None:
        """Persist a tool toggle. Applies from the next (re)start."""
        if name not in get_all_tools():
            raise ConfigurationError(f"Unknown tool: {name}")
        self.settings.set_tool_enabled(name, enabled)
