"""
Vault MCP Gateway

Serves a configurable set of vault tools over a streamable HTTP transport.
Tools are auto-discovered via registry.py; all host access goes through a
CapabilityProvider.
"""

__version__ = "2.0.0"

from .base import MCPTool, ToolDefinition, ToolParameter
from .config import ServerConfiguration, SettingsStore
from .dispatcher import CallEnvelope, Dispatcher
from .lifecycle import LifecycleManager, LifecycleState
from .registry import ActiveToolSnapshot, build_snapshot, get_all_tools, get_tool

__all__ = [
    "ActiveToolSnapshot",
    "CallEnvelope",
    "Dispatcher",
    "LifecycleManager",
    "LifecycleState",
    "MCPTool",
    "ServerConfiguration",
    "SettingsStore",
    "ToolDefinition",
    "ToolParameter",
    "build_snapshot",
    "get_all_tools",
    "get_tool",
]
