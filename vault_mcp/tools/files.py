"""
File Operation Tools

Read, write, list and delete notes and folders inside the vault.
"""

from typing import Any, Dict, List

from ..base import ExecutionError, MCPTool, ToolParameter, ToolResult

RELATIVE_PATH_FILE = ToolParameter(
    name="relative_path",
    type="string",
    description="Relative path to the file.",
    required=True,
)

RELATIVE_PATH_FOLDER = ToolParameter(
    name="relative_path",
    type="string",
    description="Relative path to the folder.",
    required=True,
)


class ListFilesTool(MCPTool):
    """List the direct children of a vault folder."""

    @property
    def name(self) -> str:
        return "list_files"

    @property
    def description(self) -> str:
        return (
            "Lists files and sub-folders within a specified directory of your Obsidian Vault. "
            "Use '.' for the vault root."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="relative_path",
                type="string",
                description="Relative path to the root of the Obsidian vault.",
                required=False,
                default=".",
            )
        ]

    @property
    def category(self) -> str:
        return "files"

    async def execute(self, provider, relative_path: str = ".") -> Dict[str, Any]:
        listing = await provider.list_folder(relative_path)
        return {
            "path": provider.normalize_path(relative_path) or ".",
            "folders": listing["folders"],
            "files": listing["files"],
            "count": len(listing["folders"]) + len(listing["files"]),
        }


class ReadFileTool(MCPTool):

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return "Reads the full content of a specific note or file within your Obsidian Vault."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            RELATIVE_PATH_FILE,
            ToolParameter(
                name="line_number",
                type="boolean",
                description="Whether to include line numbers in the output.",
                required=False,
            ),
        ]

    @property
    def category(self) -> str:
        return "files"

    async def execute(self, provider, relative_path: str, line_number: bool = False) -> Dict[str, Any]:
        content = await provider.read_file(relative_path)
        lines = content.split("\n")
        if line_number:
            width = len(str(len(lines)))
            content = "\n".join(f"{i:>{width}}: {line}" for i, line in enumerate(lines, start=1))

        return {
            "path": provider.normalize_path(relative_path),
            "content": content,
            "lines": len(lines),
        }


class CreateFileTool(MCPTool):

    @property
    def name(self) -> str:
        return "create_file"

    @property
    def description(self) -> str:
        return "Creates a new file with the specified content at the given path within your Obsidian Vault."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            RELATIVE_PATH_FILE,
            ToolParameter(
                name="content",
                type="string",
                description="Content to write to the file.",
                required=True,
            ),
        ]

    @property
    def category(self) -> str:
        return "files"

    async def execute(self, provider, relative_path: str, content: str) -> Dict[str, Any]:
        if await provider.path_kind(relative_path) is not None:
            raise ExecutionError(f"File already exists: {relative_path}", tool_name=self.name)

        await provider.write_file(relative_path, content)
        return {
            "success": True,
            "path": provider.normalize_path(relative_path),
            "size": len(content),
        }


class EditFileTool(MCPTool):
    """Replace a 1-based inclusive line range. end_line = start_line - 1 inserts."""

    @property
    def name(self) -> str:
        return "edit_file"

    @property
    def description(self) -> str:
        return "Edits a specific range of lines within a file in your Obsidian Vault."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            RELATIVE_PATH_FILE,
            ToolParameter(
                name="start_line",
                type="integer",
                description="First line to replace (1-based).",
                required=True,
            ),
            ToolParameter(
                name="end_line",
                type="integer",
                description="Last line to replace (1-based, inclusive). Use start_line - 1 to insert without replacing.",
                required=True,
            ),
            ToolParameter(
                name="new_content",
                type="string",
                description="Replacement text for the line range. May span several lines.",
                required=True,
            ),
        ]

    @property
    def category(self) -> str:
        return "files"

    async def execute(
        self,
        provider,
        relative_path: str,
        start_line: int,
        end_line: int,
        new_content: str,
    ) -> Dict[str, Any]:
        outcome = await provider.edit_lines(relative_path, start_line, end_line, new_content)
        return {
            "success": True,
            "path": provider.normalize_path(relative_path),
            **outcome,
        }


class DeleteFileTool(MCPTool):

    @property
    def name(self) -> str:
        return "delete_file"

    @property
    def description(self) -> str:
        return "Deletes a file within your Obsidian Vault. Use with caution."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [RELATIVE_PATH_FILE]

    @property
    def category(self) -> str:
        return "files"

    async def execute(self, provider, relative_path: str) -> Dict[str, Any]:
        await provider.delete_file(relative_path)
        return {"success": True, "path": provider.normalize_path(relative_path)}


class CreateFolderTool(MCPTool):

    @property
    def name(self) -> str:
        return "create_folder"

    @property
    def description(self) -> str:
        return "Creates a folder within your Obsidian Vault."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [RELATIVE_PATH_FOLDER]

    @property
    def category(self) -> str:
        return "files"

    async def execute(self, provider, relative_path: str) -> ToolResult:
        await provider.create_folder(relative_path)
        return ToolResult(
            payload={"success": "Folder created successfully."},
            notice_key="server.folderCreated",
            notice_params={"path": relative_path},
        )


class DeleteFolderTool(MCPTool):

    @property
    def name(self) -> str:
        return "delete_folder"

    @property
    def description(self) -> str:
        return "Deletes a folder within your Obsidian Vault. Use with extreme caution."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            RELATIVE_PATH_FOLDER,
            ToolParameter(
                name="force",
                type="boolean",
                description="Whether to force delete even if not empty.",
                required=False,
                default=False,
            ),
        ]

    @property
    def category(self) -> str:
        return "files"

    async def execute(self, provider, relative_path: str, force: bool = False) -> Dict[str, Any]:
        await provider.delete_folder(relative_path, force=force)
        return {"success": True, "path": provider.normalize_path(relative_path), "force": force}
