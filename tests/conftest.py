"""Shared fixtures: a small on-disk vault and recording collaborators."""

from pathlib import Path
from typing import Dict

import pytest

from vault_mcp.config import ServerConfiguration
from vault_mcp.dispatcher import Dispatcher
from vault_mcp.messages import identity_lookup
from vault_mcp.notifications import RecordingNotifier
from vault_mcp.registry import build_snapshot, get_all_tools
from vault_mcp.vault import LocalVault

WELCOME = """---
title: Welcome
tags: [start, guide]
---
# Welcome

This vault is a #demo of the gateway. See [[Plan]] and [[Missing Note]].

## Todo

- read [[Projects/Plan#Goals|the plan]]
- look at ![[diagram.png]]
1. ship it #release/v2
"""

PLAN = """# Plan

## Goals

Back to [[Welcome|home]].
line five
line six
"""

NOTES = """Notes about the [plan](Projects/Plan.md) and [[Plan]] again.

```
[[Not A Link]]
#not-a-tag
```
"""


@pytest.fixture
def welcome_text() -> str:
    return WELCOME


@pytest.fixture
def vault_dir(tmp_path) -> Path:
    root = tmp_path / "MyVault"
    (root / "Projects").mkdir(parents=True)
    (root / ".obsidian").mkdir()
    (root / ".obsidian" / "app.json").write_text("{}", encoding="utf-8")
    (root / "Welcome.md").write_text(WELCOME, encoding="utf-8")
    (root / "Projects" / "Plan.md").write_text(PLAN, encoding="utf-8")
    (root / "Projects" / "Notes.md").write_text(NOTES, encoding="utf-8")
    (root / "diagram.png").write_bytes(b"\x89PNG\r\n")
    return root


@pytest.fixture
def vault(vault_dir) -> LocalVault:
    return LocalVault(vault_dir)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def catalog() -> Dict:
    return get_all_tools()


@pytest.fixture
def all_enabled_snapshot(catalog):
    config = ServerConfiguration(tools={name: True for name in catalog})
    return build_snapshot(catalog.values(), config)


@pytest.fixture
def dispatcher(vault, notifier) -> Dispatcher:
    return Dispatcher(vault, notifier=notifier, lookup=identity_lookup)


class FakeTransport:
    """In-memory transport; refuses ports listed in `busy_ports`."""

    def __init__(self, config, snapshot, on_error, busy_ports, on_exit=None):
        self.port = config.port
        self.snapshot = snapshot
        self.on_error = on_error
        self.on_exit = on_exit
        self.busy_ports = busy_ports
        self.started = False
        self.stopped = False

    async def start(self):
        if self.port in self.busy_ports:
            raise OSError(98, "Address already in use")
        self.started = True

    async def stop(self):
        self.stopped = True


class FakeFactory:

    def __init__(self):
        self.busy_ports = set()
        self.created = []

    def __call__(self, config, snapshot, dispatcher, on_error, on_exit=None):
        transport = FakeTransport(config, snapshot, on_error, self.busy_ports, on_exit)
        self.created.append(transport)
        return transport


@pytest.fixture
def factory() -> FakeFactory:
    return FakeFactory()
