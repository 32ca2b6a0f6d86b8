"""
MCP Tool Registry

Single Source of Truth (SSOT) for the tool catalogue.
Discovers every tool under vault_mcp/tools/ and filters the catalogue down
to the active snapshot a server run is allowed to serve.
"""

import importlib
import inspect
import logging
import pkgutil
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from .base import DuplicateToolError, MCPTool, ToolDefinition
from .config import ServerConfiguration

logger = logging.getLogger(__name__)

# Global catalogue
_tool_registry: Dict[str, ToolDefinition] = {}
_initialized: bool = False


def _register(registry: Dict[str, ToolDefinition], definition: ToolDefinition, origin: str) -> None:
    if definition.name in registry:
        raise DuplicateToolError(
            f"Duplicate tool name: {definition.name} ({origin})",
            tool_name=definition.name,
        )
    registry[definition.name] = definition


def _discover_tools() -> None:
    """
    Discover and register all tools from vault_mcp/tools/.
    This is the ONLY place where the catalogue is collected.
    """
    global _tool_registry, _initialized

    if _initialized:
        return

    tools_package = f"{__package__}.tools"
    tools_path = Path(__file__).parent / "tools"
    registry: Dict[str, ToolDefinition] = {}

    for _, module_name, _ in pkgutil.iter_modules([str(tools_path)]):
        if module_name.startswith("_"):
            continue

        full_module_name = f"{tools_package}.{module_name}"
        module = importlib.import_module(full_module_name)
        logger.debug(f"Loaded tool module: {full_module_name}")

        for name, obj in inspect.getmembers(module, inspect.isclass):
            if (
                issubclass(obj, MCPTool)
                and obj is not MCPTool
                and obj.__module__ == module.__name__
                and not inspect.isabstract(obj)
            ):
                definition = obj().to_definition()
                _register(registry, definition, module_name)
                logger.debug(f"Registered tool: {definition.name} ({module_name})")

    _tool_registry = registry
    _initialized = True
    logger.info(f"Tool discovery complete. Total tools: {len(_tool_registry)}")


def get_all_tools() -> Dict[str, ToolDefinition]:
    """
    Get the full catalogue, enabled or not.
    This is the public API for accessing tool definitions.
    """
    _discover_tools()
    return _tool_registry.copy()


def get_tool(name: str) -> Optional[ToolDefinition]:
    """Get a catalogue entry by name, or None."""
    _discover_tools()
    return _tool_registry.get(name)


def list_tool_names() -> List[str]:
    _discover_tools()
    return list(_tool_registry.keys())


def reset_registry() -> None:
    """Reset the registry (mainly for testing)."""
    global _tool_registry, _initialized
    _tool_registry = {}
    _initialized = False


class ActiveToolSnapshot(Mapping):
    """
    Immutable view of the tools enabled for one server run.

    Built once per start; configuration edits made while the server runs
    are not visible here until the next start.
    """

    def __init__(self, definitions: Iterable[ToolDefinition]):
        tools = {definition.name: definition for definition in definitions}
        self._tools = MappingProxyType(tools)

    def __getitem__(self, name: str) -> ToolDefinition:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"ActiveToolSnapshot({list(self._tools)})"

    def names(self) -> List[str]:
        return list(self._tools)

    def to_mcp_tools(self) -> List[Dict]:
        """Tool list in the shape returned by the MCP `tools/list` method."""
        return [
            {
                "name": definition.name,
                "description": definition.description,
                "inputSchema": definition.input_schema(),
            }
            for definition in self._tools.values()
        ]

    def to_openai_schema(self) -> List[Dict]:
        """Tool list in OpenAI function calling format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": definition.name,
                    "description": definition.description,
                    "parameters": definition.input_schema(),
                },
            }
            for definition in self._tools.values()
        ]


def build_snapshot(
    all_definitions: Iterable[ToolDefinition],
    config: ServerConfiguration,
) -> ActiveToolSnapshot:
    """
    Filter the catalogue to the tools whose toggle is on.

    Pure and deterministic. Tools missing from `config.tools` count as
    enabled. Duplicate names are a programming error and raise
    DuplicateToolError here, never at call time.
    """
    seen: Dict[str, ToolDefinition] = {}
    for definition in all_definitions:
        _register(seen, definition, "snapshot")

    return ActiveToolSnapshot(
        definition for name, definition in seen.items() if config.is_tool_enabled(name)
    )
