"""
Editor and Workspace Tools

Query and drive the host's editor: the active note, the selection,
open tabs.
"""

from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from ..base import ExecutionError, MCPTool, NoActiveEditor, ToolParameter


def _describe(path: str) -> Dict[str, Any]:
    p = PurePosixPath(path)
    return {
        "path": path,
        "name": p.name,
        "basename": p.stem,
        "extension": p.suffix.lstrip("."),
    }


class GetActiveFileTool(MCPTool):

    @property
    def name(self) -> str:
        return "get_active_file"

    @property
    def description(self) -> str:
        return "Gets the currently active file in Obsidian. Set include_content=true to also get file content."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="include_content",
                type="boolean",
                description="Include file content in response.",
                required=False,
                default=False,
            )
        ]

    @property
    def category(self) -> str:
        return "editor"

    async def execute(self, provider, include_content: bool = False) -> Dict[str, Any]:
        path = await provider.get_active_file()
        if path is None:
            raise ExecutionError("No active file", tool_name=self.name, details={"active": False})

        result = {"active": True, **_describe(path)}
        if include_content:
            result["content"] = await provider.read_file(path)
        return result


class OpenFileTool(MCPTool):

    @property
    def name(self) -> str:
        return "open_file"

    @property
    def description(self) -> str:
        return "Opens a file in Obsidian editor. Optionally navigate to a specific line."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="relative_path",
                type="string",
                description="Relative path to the file to open.",
                required=True,
            ),
            ToolParameter(
                name="line",
                type="integer",
                description="Line number to navigate to (1-based).",
                required=False,
            ),
            ToolParameter(
                name="new_leaf",
                type="boolean",
                description="Whether to open in a new tab.",
                required=False,
            ),
        ]

    @property
    def category(self) -> str:
        return "editor"

    async def execute(
        self,
        provider,
        relative_path: str,
        line: Optional[int] = None,
        new_leaf: bool = False,
    ) -> Dict[str, Any]:
        if await provider.path_kind(relative_path) != "file":
            raise ExecutionError(f"File not found: {relative_path}", tool_name=self.name)

        await provider.open_file(relative_path, line=line, new_view=bool(new_leaf))
        return {"success": True, "path": relative_path, "line": line}


class GetSelectionTool(MCPTool):

    @property
    def name(self) -> str:
        return "get_selection"

    @property
    def description(self) -> str:
        return "Gets the currently selected text in the active editor."

    @property
    def category(self) -> str:
        return "editor"

    async def execute(self, provider) -> Dict[str, Any]:
        try:
            selection = await provider.get_selection()
        except NoActiveEditor as e:
            raise ExecutionError(str(e), tool_name=self.name, details={"hasSelection": False})

        if not selection["selection"]:
            return {"hasSelection": False, "selection": ""}

        return {
            "hasSelection": True,
            "selection": selection["selection"],
            "from": selection["from"],
            "to": selection["to"],
        }


class InsertTextTool(MCPTool):

    @property
    def name(self) -> str:
        return "insert_text"

    @property
    def description(self) -> str:
        return "Inserts text at the current cursor position or replaces the current selection."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [ToolParameter(name="text", type="string", description="Text to insert.")]

    @property
    def category(self) -> str:
        return "editor"

    async def execute(self, provider, text: str) -> Dict[str, Any]:
        await provider.insert_text(text)
        return {"success": True, "insertedLength": len(text)}


class GetOpenFilesTool(MCPTool):

    @property
    def name(self) -> str:
        return "get_open_files"

    @property
    def description(self) -> str:
        return (
            "Gets all currently open files in Obsidian tabs. "
            "Useful for understanding user's current working context."
        )

    @property
    def category(self) -> str:
        return "workspace"

    async def execute(self, provider) -> Dict[str, Any]:
        open_files = await provider.get_open_files()
        return {"openFiles": open_files, "count": len(open_files)}
