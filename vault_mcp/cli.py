#!/usr/bin/env python3
"""
vault-mcp command line.

    vault-mcp serve --vault ~/Notes [--start]
    vault-mcp tools
    vault-mcp config --port 27124 --disable rename_file

While `serve` runs, signals act as the host commands:
SIGUSR1 start server, SIGUSR2 stop server, SIGHUP restart (re-reads
settings), SIGINT/SIGTERM stop and exit.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Awaitable, Set

from .base import CapabilityError, ConfigurationError
from .config import SettingsStore
from .gateway import Gateway
from .registry import get_all_tools
from .vault import LocalVault

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def _restart_quietly(gateway: Gateway) -> None:
    try:
        await gateway.restart_server()
    except Exception as e:
        logger.error(f"Restart failed: {e}")


def _spawn(background: Set[asyncio.Task], coro: Awaitable) -> asyncio.Task:
    """Run a signal-triggered command, holding the task until it finishes."""
    task = asyncio.ensure_future(coro)
    background.add(task)
    task.add_done_callback(background.discard)
    return task


async def _serve(args: argparse.Namespace) -> int:
    vault = LocalVault(args.vault)
    gateway = Gateway(vault, SettingsStore(args.config, host=args.host))

    loop = asyncio.get_running_loop()
    done = asyncio.Event()
    background: Set[asyncio.Task] = set()
    loop.add_signal_handler(signal.SIGINT, done.set)
    loop.add_signal_handler(signal.SIGTERM, done.set)
    if hasattr(signal, "SIGHUP"):
        loop.add_signal_handler(signal.SIGHUP, lambda: _spawn(background, _restart_quietly(gateway)))
        loop.add_signal_handler(signal.SIGUSR1, lambda: _spawn(background, gateway.start_server()))
        loop.add_signal_handler(signal.SIGUSR2, lambda: _spawn(background, gateway.stop_server()))

    logger.info(f"Serving vault '{vault.vault_name}' from {vault.root}")
    if args.start:
        await gateway.start_server()
    else:
        await gateway.startup()
    logger.info(gateway.status())

    await done.wait()
    if gateway.lifecycle.is_running:
        await gateway.stop_server()
    return 0


def _cmd_tools(args: argparse.Namespace) -> int:
    config = SettingsStore(args.config).load()
    for name, definition in sorted(get_all_tools().items()):
        flag = "on " if config.is_tool_enabled(name) else "off"
        print(f"[{flag}] {name:<18} {definition.description}")
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    store = SettingsStore(args.config)
    known = get_all_tools()

    if args.port is not None:
        store.set_port(args.port)
    if args.autostart is not None:
        store.set_start_on_startup(args.autostart)
    for name in args.enable or []:
        if name not in known:
            raise ConfigurationError(f"Unknown tool: {name}")
        store.set_tool_enabled(name, True)
    for name in args.disable or []:
        if name not in known:
            raise ConfigurationError(f"Unknown tool: {name}")
        store.set_tool_enabled(name, False)

    config = store.load()
    print(f"settings:  {store.path}")
    print(f"endpoint:  {config.endpoint}")
    print(f"autostart: {config.start_on_startup}")
    disabled = sorted(name for name in known if not config.is_tool_enabled(name))
    print(f"disabled:  {', '.join(disabled) if disabled else '-'}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vault-mcp", description="Local MCP tool server for a notes vault")
    parser.add_argument("--config", type=Path, default=None, help="Settings file (default: $VAULT_MCP_CONFIG)")
    parser.add_argument("--log-level", default=os.getenv("VAULT_MCP_LOG_LEVEL", "INFO"))
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the gateway")
    serve.add_argument("--vault", default=os.getenv("VAULT_PATH", "."), help="Vault folder (default: $VAULT_PATH)")
    serve.add_argument("--host", default=None, help="Bind address (default 127.0.0.1)")
    serve.add_argument("--start", action="store_true", help="Start the server even if autostart is off")

    sub.add_parser("tools", help="List tools and whether they are enabled")

    config = sub.add_parser("config", help="Show or change settings")
    config.add_argument("--port", default=None)
    config.add_argument("--autostart", dest="autostart", action="store_true", default=None)
    config.add_argument("--no-autostart", dest="autostart", action="store_false")
    config.add_argument("--enable", action="append", metavar="TOOL")
    config.add_argument("--disable", action="append", metavar="TOOL")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)

    try:
        if args.command == "serve":
            return asyncio.run(_serve(args))
        if args.command == "tools":
            return _cmd_tools(args)
        return _cmd_config(args)
    except (ConfigurationError, CapabilityError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
