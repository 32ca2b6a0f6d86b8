"""
Unit tests for tool discovery and active snapshot building.
"""

import pytest

from vault_mcp.base import DuplicateToolError, ToolDefinition, ToolParameter
from vault_mcp.config import DEFAULT_TOOL_TOGGLES, ServerConfiguration
from vault_mcp.registry import (
    ActiveToolSnapshot,
    build_snapshot,
    get_all_tools,
    get_tool,
    list_tool_names,
    reset_registry,
)


async def _noop(provider, **kwargs):
    return {}


def _definition(name: str) -> ToolDefinition:
    return ToolDefinition(name=name, description=f"{name} tool", handler=_noop)


class TestDiscovery:
    """Catalogue discovery from vault_mcp/tools/."""

    def test_discovers_every_known_tool(self, catalog):
        assert set(catalog) == set(DEFAULT_TOOL_TOGGLES)

    def test_definitions_are_immutable(self, catalog):
        definition = catalog["read_file"]
        with pytest.raises(AttributeError):
            definition.name = "other"

    def test_get_tool(self):
        assert get_tool("open_file").name == "open_file"
        assert get_tool("does_not_exist") is None

    def test_reset_registry_rediscovers(self):
        before = list_tool_names()
        reset_registry()
        assert sorted(list_tool_names()) == sorted(before)

    def test_get_all_tools_returns_copy(self):
        tools = get_all_tools()
        tools.pop("read_file")
        assert "read_file" in get_all_tools()


class TestBuildSnapshot:
    """Filtering the catalogue with tool toggles."""

    def test_disabled_tools_are_excluded(self):
        definitions = [_definition("a"), _definition("b"), _definition("c")]
        config = ServerConfiguration(tools={"a": True, "b": False})

        snapshot = build_snapshot(definitions, config)

        assert "a" in snapshot
        assert "b" not in snapshot
        # absent toggles default to enabled
        assert "c" in snapshot

    def test_every_toggle_combination(self):
        definitions = [_definition(n) for n in ("x", "y", "z")]
        for mask in range(8):
            toggles = {n: bool(mask & (1 << i)) for i, n in enumerate(("x", "y", "z"))}
            snapshot = build_snapshot(definitions, ServerConfiguration(tools=toggles))
            assert set(snapshot) == {n for n, on in toggles.items() if on}

    def test_duplicate_names_rejected_at_build_time(self):
        definitions = [_definition("dup"), _definition("dup")]
        with pytest.raises(DuplicateToolError):
            build_snapshot(definitions, ServerConfiguration())

    def test_deterministic(self, catalog):
        config = ServerConfiguration(tools={"rename_file": False})
        first = build_snapshot(catalog.values(), config)
        second = build_snapshot(catalog.values(), config)
        assert first.names() == second.names()

    def test_default_config_disables_execute_command(self, catalog):
        snapshot = build_snapshot(catalog.values(), ServerConfiguration())
        assert "execute_command" not in snapshot
        assert "rename_file" in snapshot

    def test_snapshot_is_read_only(self):
        snapshot = build_snapshot([_definition("a")], ServerConfiguration())
        with pytest.raises(TypeError):
            snapshot["b"] = _definition("b")
        with pytest.raises(TypeError):
            snapshot._tools["b"] = _definition("b")

    def test_snapshot_unaffected_by_later_config_edits(self):
        toggles = {"a": True}
        config = ServerConfiguration(tools=toggles)
        snapshot = build_snapshot([_definition("a")], config)

        toggles["a"] = False

        assert "a" in snapshot


class TestSchemas:
    """Advertised tool schemas."""

    def test_mcp_tool_listing(self):
        definition = ToolDefinition(
            name="get_links",
            description="links",
            parameters=(
                ToolParameter("relative_path", "string", "Path"),
                ToolParameter("direction", "string", "Dir", required=False, default="both",
                              enum=("incoming", "outgoing", "both")),
            ),
            handler=_noop,
        )
        snapshot = ActiveToolSnapshot([definition])

        [listed] = snapshot.to_mcp_tools()

        assert listed["name"] == "get_links"
        schema = listed["inputSchema"]
        assert schema["required"] == ["relative_path"]
        assert schema["properties"]["direction"]["enum"] == ["incoming", "outgoing", "both"]
        assert schema["properties"]["direction"]["default"] == "both"

    def test_no_required_key_when_nothing_required(self, catalog):
        schema = catalog["get_vault_info"].input_schema()
        assert schema == {"type": "object", "properties": {}}

    def test_openai_schema(self, all_enabled_snapshot):
        schemas = all_enabled_snapshot.to_openai_schema()
        assert len(schemas) == len(all_enabled_snapshot)
        assert all(s["type"] == "function" for s in schemas)

    def test_unknown_parameter_type_rejected(self):
        with pytest.raises(ValueError):
            ToolParameter("x", "float", "not a schema type")
