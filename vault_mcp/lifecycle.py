"""
Transport Lifecycle Manager

Owns the Stopped -> Starting -> Running -> Stopping -> Stopped state
machine of the network listener. Starting and Stopping are transient: every
public operation returns with the state at Running or Stopped.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from .base import ConfigurationError, ToolDefinition
from .config import ServerConfiguration, validate_port
from .dispatcher import Dispatcher
from .messages import Lookup
from .notifications import NotificationSink
from .registry import ActiveToolSnapshot, build_snapshot
from .transport import CLIENT_DISCONNECTED, TransportError

logger = logging.getLogger(__name__)

RESTART_SETTLE_SECONDS = 0.5


class LifecycleState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class Transport(Protocol):
    port: int

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


# factory(config, snapshot, dispatcher, on_error, on_exit) -> Transport
TransportFactory = Callable[..., Transport]


class LifecycleManager:
    """
    Starts, stops and restarts the transport.

    `config_source` is called for a fresh ServerConfiguration at every
    start, so port and tool toggle edits apply on the next start only.
    `catalog` returns every known ToolDefinition.
    """

    def __init__(
        self,
        config_source: Callable[[], ServerConfiguration],
        catalog: Callable[[], Dict[str, ToolDefinition]],
        dispatcher: Dispatcher,
        transport_factory: TransportFactory,
        notifier: NotificationSink,
        lookup: Lookup,
        restart_delay: float = RESTART_SETTLE_SECONDS,
    ):
        self.config_source = config_source
        self.catalog = catalog
        self.dispatcher = dispatcher
        self.transport_factory = transport_factory
        self.notifier = notifier
        self.lookup = lookup
        self.restart_delay = restart_delay

        self._state = LifecycleState.STOPPED
        self._transport: Optional[Transport] = None
        self._snapshot: Optional[ActiveToolSnapshot] = None
        self._config: Optional[ServerConfiguration] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == LifecycleState.RUNNING

    @property
    def snapshot(self) -> Optional[ActiveToolSnapshot]:
        return self._snapshot

    @property
    def config(self) -> Optional[ServerConfiguration]:
        """Settings the current run was started with."""
        return self._config

    @property
    def port(self) -> Optional[int]:
        return self._transport.port if self._transport is not None else None

    def _set_state(self, state: LifecycleState) -> None:
        logger.debug(f"Lifecycle: {self._state.value} -> {state.value}")
        self._state = state

    def _notify(self, key: str, **params: Any) -> None:
        self.notifier.notify(self.lookup(key, {k: str(v) for k, v in params.items()}))

    async def start(self) -> None:
        """
        Bind the transport on the configured port.
        Bind failures and invalid configuration leave the manager Stopped
        and are raised to the caller after being reported.
        """
        async with self._lock:
            await self._start()

    async def stop(self) -> None:
        async with self._lock:
            await self._stop()

    async def restart(self) -> None:
        """Stop, wait for the OS to release the port, start with fresh settings."""
        async with self._lock:
            if self._state == LifecycleState.RUNNING:
                await self._stop()
                await asyncio.sleep(self.restart_delay)
            await self._start()

    async def _start(self) -> None:
        if self._state in (LifecycleState.RUNNING, LifecycleState.STARTING):
            self._notify("notices.serverAlreadyRunning")
            return

        self._set_state(LifecycleState.STARTING)
        port: Any = None
        try:
            config = self.config_source()
            port = config.port
            validate_port(config.port)
            snapshot = build_snapshot(self.catalog().values(), config)

            def on_exit() -> None:
                self._on_transport_exit(transport)

            transport = self.transport_factory(
                config, snapshot, self.dispatcher, self._on_transport_error, on_exit
            )
            await transport.start()
        except ConfigurationError as e:
            self._set_state(LifecycleState.STOPPED)
            logger.error(f"Invalid MCP server configuration: {e}")
            self._notify("notices.serverStartFailed", error=e)
            raise
        except OSError as e:
            self._set_state(LifecycleState.STOPPED)
            logger.error(f"Error starting MCP server on port {port}: {e}")
            self._notify("server.startError", port=port)
            raise
        except Exception as e:
            self._set_state(LifecycleState.STOPPED)
            logger.exception("Failed to start MCP Server")
            self._notify("notices.serverStartFailed", error=e)
            raise
        except BaseException:
            self._set_state(LifecycleState.STOPPED)
            raise

        self._config = config
        self._snapshot = snapshot
        self._transport = transport
        self._set_state(LifecycleState.RUNNING)
        logger.info(f"MCP server running on port {transport.port} with {len(snapshot)} tools")
        self._notify("notices.serverStarted", port=transport.port)

    async def _stop(self) -> None:
        if self._state in (LifecycleState.STOPPED, LifecycleState.STOPPING):
            self._notify("notices.serverAlreadyStopped")
            return

        self._set_state(LifecycleState.STOPPING)
        transport = self._transport
        try:
            if transport is not None:
                await transport.stop()
        except Exception as e:
            logger.error(f"Error stopping MCP server: {e}")
            self._notify("server.stopError")
        finally:
            self._transport = None
            self._snapshot = None
            self._config = None
            self._set_state(LifecycleState.STOPPED)

        self._notify("notices.serverStopped")

    def _on_transport_error(self, error: TransportError) -> None:
        logger.error(f"MCP Server error: {error.code} {error.message}")
        if error.code != CLIENT_DISCONNECTED:
            self._notify("server.genericError", error=error.message)

    def _on_transport_exit(self, transport: Transport) -> None:
        """The listener of the current run went away without stop()."""
        if transport is not self._transport or self._state != LifecycleState.RUNNING:
            return
        logger.warning(f"MCP server on port {transport.port} exited; marking it stopped")
        self._transport = None
        self._snapshot = None
        self._config = None
        self._set_state(LifecycleState.STOPPED)
        self._notify("notices.serverStopped")
