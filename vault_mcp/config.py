"""
Server configuration and the settings boundary.

Settings persist as JSON in the shape
    {"port": 27123, "startOnStartup": false, "tools": {"read_file": true, ...}}
and can be overridden from the environment (.env supported).
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .base import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PORT = 27123
DEFAULT_HOST = "127.0.0.1"
MCP_PATH = "/mcp"

DEFAULT_TOOL_TOGGLES: Dict[str, bool] = {
    # File operations
    "list_files": True,
    "read_file": True,
    "create_file": True,
    "edit_file": True,
    "delete_file": True,
    "create_folder": True,
    "delete_folder": True,
    # Editor / workspace
    "get_active_file": True,
    "open_file": True,
    "get_selection": True,
    "insert_text": True,
    "get_vault_info": True,
    "search_vault": True,
    # Metadata
    "get_file_metadata": True,
    "get_links": True,
    "get_open_files": True,
    # Commands
    "list_commands": True,
    "execute_command": False,  # off by default, commands can be destructive
    # File manager
    "rename_file": True,
}


def validate_port(value: Any) -> int:
    """Parse and range-check a port. Raises ConfigurationError if invalid."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid port: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ConfigurationError(f"Invalid port: {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise ConfigurationError(f"Invalid port: {value!r}")
    if not (1 <= value <= 65535):
        raise ConfigurationError(f"Invalid port: {value} (must be between 1 and 65535)")
    return value


@dataclass(frozen=True)
class ServerConfiguration:
    """Snapshot of the user's server settings."""
    port: int = DEFAULT_PORT
    start_on_startup: bool = False
    tools: Dict[str, bool] = field(default_factory=lambda: dict(DEFAULT_TOOL_TOGGLES))
    host: str = DEFAULT_HOST

    def is_tool_enabled(self, name: str) -> bool:
        """Unspecified tools default to enabled."""
        return bool(self.tools.get(name, True))

    @property
    def endpoint(self) -> str:
        return f"http://localhost:{self.port}{MCP_PATH}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "port": self.port,
            "startOnStartup": self.start_on_startup,
            "tools": dict(self.tools),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ServerConfiguration":
        """Merge persisted settings onto the defaults."""
        data = data or {}
        tools = dict(DEFAULT_TOOL_TOGGLES)
        raw_tools = data.get("tools") or {}
        if not isinstance(raw_tools, dict):
            raise ConfigurationError("Invalid settings: 'tools' must be an object")
        tools.update({str(k): bool(v) for k, v in raw_tools.items()})

        return cls(
            port=validate_port(data.get("port", DEFAULT_PORT)),
            start_on_startup=bool(data.get("startOnStartup", False)),
            tools=tools,
            host=data.get("host") or DEFAULT_HOST,
        )


def default_settings_path() -> Path:
    return Path(os.getenv("VAULT_MCP_CONFIG", Path.home() / ".vault-mcp" / "settings.json"))


class SettingsStore:
    """
    JSON-file backed settings with environment overrides.

    Environment:
        VAULT_MCP_HOST  bind address override
        VAULT_MCP_PORT  port override (validated like the settings panel)
    """

    def __init__(self, path: Optional[Path] = None, host: Optional[str] = None):
        self.path = Path(path) if path else default_settings_path()
        self.host = host

    def load(self) -> ServerConfiguration:
        config = self._load_persisted()

        env_host = self.host or os.getenv("VAULT_MCP_HOST")
        env_port = os.getenv("VAULT_MCP_PORT")
        if env_host:
            config = replace(config, host=env_host)
        if env_port:
            config = replace(config, port=validate_port(env_port))

        return config

    def save(self, config: ServerConfiguration) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(config.to_dict(), ensure_ascii=False, indent=2) + "\n",
            encoding="utf-8",
        )
        logger.debug(f"Settings saved to {self.path}")

    def set_port(self, value: Any) -> ServerConfiguration:
        """Validate and persist a new port. Invalid values never get saved."""
        port = validate_port(value)
        config = replace(self._load_persisted(), port=port)
        self.save(config)
        return config

    def set_start_on_startup(self, enabled: bool) -> ServerConfiguration:
        config = replace(self._load_persisted(), start_on_startup=bool(enabled))
        self.save(config)
        return config

    def set_tool_enabled(self, name: str, enabled: bool) -> ServerConfiguration:
        current = self._load_persisted()
        tools = dict(current.tools)
        tools[name] = bool(enabled)
        config = replace(current, tools=tools)
        self.save(config)
        return config

    def _load_persisted(self) -> ServerConfiguration:
        # Edits apply to the file contents, not to environment overrides.
        if not self.path.exists():
            return ServerConfiguration()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Malformed settings file {self.path}: {e}")
        return ServerConfiguration.from_dict(data)
