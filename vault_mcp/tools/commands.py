"""
Command Tools

List and run commands registered with the host.
"""

from typing import Any, Dict, List, Optional

from ..base import CommandNotFound, ExecutionError, MCPTool, ToolParameter


class ListCommandsTool(MCPTool):

    @property
    def name(self) -> str:
        return "list_commands"

    @property
    def description(self) -> str:
        return "Lists all available Obsidian commands. Use with execute_command to automate Obsidian actions."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="filter",
                type="string",
                description="Optional filter string to search command names/IDs.",
                required=False,
            )
        ]

    @property
    def category(self) -> str:
        return "commands"

    async def execute(self, provider, filter: Optional[str] = None) -> Dict[str, Any]:
        all_commands = await provider.list_commands()
        commands = [{"id": c["id"], "name": c["name"]} for c in all_commands]

        if filter:
            needle = filter.lower()
            commands = [
                c for c in commands
                if needle in c["id"].lower() or needle in c["name"].lower()
            ]

        return {
            "commands": commands,
            "count": len(commands),
            "totalAvailable": len(all_commands),
        }


class ExecuteCommandTool(MCPTool):

    @property
    def name(self) -> str:
        return "execute_command"

    @property
    def description(self) -> str:
        return (
            "POTENTIALLY DANGEROUS: Executes an Obsidian command by ID. Some commands may modify files, "
            "delete content, or change settings. Use list_commands first to find command IDs. "
            "Always verify the command is safe before executing."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="command_id",
                type="string",
                description="The command ID to execute (e.g., 'editor:toggle-bold', 'app:reload').",
            )
        ]

    @property
    def category(self) -> str:
        return "commands"

    async def execute(self, provider, command_id: str) -> Dict[str, Any]:
        try:
            command = await provider.execute_command(command_id)
        except CommandNotFound as e:
            raise ExecutionError(
                str(e),
                tool_name=self.name,
                details={"hint": "Use list_commands to find available command IDs."},
            )

        return {"success": True, "commandId": command["id"], "commandName": command["name"]}
