"""
File Manager Tools

Rename notes while keeping every link to them intact.
"""

from typing import Any, Dict, List

from ..base import ExecutionError, MCPTool, ToolParameter


class RenameFileTool(MCPTool):

    @property
    def name(self) -> str:
        return "rename_file"

    @property
    def description(self) -> str:
        return (
            "MODIFIES MULTIPLE FILES: Renames a file and automatically updates ALL links pointing to it "
            "across the vault. Safer than manual rename. The new path should include the file extension."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="old_path",
                type="string",
                description="Current relative path of the file.",
            ),
            ToolParameter(
                name="new_path",
                type="string",
                description="New relative path for the file (including extension).",
            ),
        ]

    @property
    def category(self) -> str:
        return "file_manager"

    async def execute(self, provider, old_path: str, new_path: str) -> Dict[str, Any]:
        old = provider.normalize_path(old_path)
        new = provider.normalize_path(new_path)

        if await provider.path_kind(old) != "file":
            raise ExecutionError(f"File not found: {old_path}", tool_name=self.name)

        updated = await provider.rename_file(old, new)
        return {
            "success": True,
            "oldPath": old,
            "newPath": new,
            "linksUpdated": updated,
            "message": f"File renamed. {updated} file(s) with links to this file were automatically updated.",
        }
