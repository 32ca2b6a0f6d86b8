"""
Vault Tools

Vault-wide information and file-name search.
"""

from pathlib import PurePosixPath
from typing import Any, Dict, List

from ..base import MCPTool, ToolParameter


class GetVaultInfoTool(MCPTool):

    @property
    def name(self) -> str:
        return "get_vault_info"

    @property
    def description(self) -> str:
        return "Gets information about the current Obsidian vault."

    @property
    def category(self) -> str:
        return "vault"

    async def execute(self, provider) -> Dict[str, Any]:
        markdown = await provider.markdown_files()
        everything = await provider.all_paths()
        return {
            "name": provider.vault_name,
            "totalMarkdownFiles": len(markdown),
            "totalFiles": len(everything),
            "configDir": provider.config_dir,
        }


class SearchVaultTool(MCPTool):
    """Case-insensitive substring match on note paths."""

    @property
    def name(self) -> str:
        return "search_vault"

    @property
    def description(self) -> str:
        return "Searches for files in the vault by name pattern (simple string matching, not regex)."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="query",
                type="string",
                description="Search query to match against file names.",
            ),
            ToolParameter(
                name="include_content",
                type="boolean",
                description="Whether to include file content in results (slower).",
                required=False,
            ),
            ToolParameter(
                name="limit",
                type="integer",
                description="Maximum number of results to return.",
                required=False,
                default=20,
            ),
        ]

    @property
    def category(self) -> str:
        return "vault"

    async def execute(
        self,
        provider,
        query: str,
        include_content: bool = False,
        limit: int = 20,
    ) -> Dict[str, Any]:
        needle = query.lower()
        limit = limit if limit and limit > 0 else 20
        matches = [p for p in await provider.markdown_files() if needle in p.lower()][:limit]

        results = []
        for path in matches:
            p = PurePosixPath(path)
            entry = {"path": path, "name": p.name, "basename": p.stem}
            if include_content:
                entry["content"] = await provider.read_file(path)
            results.append(entry)

        return {"query": query, "count": len(results), "results": results}
