"""
Metadata Tools

Structural metadata and link graph of notes, from the host's metadata cache.
"""

from typing import Any, Dict, List

from ..base import ExecutionError, MCPTool, ToolParameter


class GetFileMetadataTool(MCPTool):

    @property
    def name(self) -> str:
        return "get_file_metadata"

    @property
    def description(self) -> str:
        return (
            "Gets metadata for a file including frontmatter, tags, headings, and links. "
            "Uses Obsidian's MetadataCache for accurate, real-time data."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="relative_path",
                type="string",
                description="Relative path to the markdown file.",
            )
        ]

    @property
    def category(self) -> str:
        return "metadata"

    async def execute(self, provider, relative_path: str) -> Dict[str, Any]:
        path = provider.normalize_path(relative_path)
        if await provider.path_kind(path) != "file":
            raise ExecutionError(f"File not found: {relative_path}", tool_name=self.name)

        cache = await provider.get_file_cache(path)
        if cache is None:
            raise ExecutionError("No cached metadata available for this file", tool_name=self.name)

        return {
            "path": path,
            "frontmatter": cache.get("frontmatter"),
            "tags": [t["tag"] for t in cache.get("tags", [])],
            "headings": cache.get("headings", []),
            "links": cache.get("links", []),
            "embeds": cache.get("embeds", []),
            "listItems": cache.get("listItems", 0),
            "sections": cache.get("sections", 0),
        }


class GetLinksTool(MCPTool):

    @property
    def name(self) -> str:
        return "get_links"

    @property
    def description(self) -> str:
        return (
            "Gets links for a file. direction='incoming' for backlinks, "
            "'outgoing' for forward links, 'both' for all."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(name="relative_path", type="string", description="Path to the file."),
            ToolParameter(
                name="direction",
                type="string",
                description="Link direction to retrieve.",
                required=False,
                default="both",
                enum=("incoming", "outgoing", "both"),
            ),
        ]

    @property
    def category(self) -> str:
        return "metadata"

    async def execute(self, provider, relative_path: str, direction: str = "both") -> Dict[str, Any]:
        path = provider.normalize_path(relative_path)
        if await provider.path_kind(path) != "file":
            raise ExecutionError(f"File not found: {relative_path}", tool_name=self.name)

        result: Dict[str, Any] = {"path": path}
        resolved = await provider.resolved_links()

        if direction in ("incoming", "both"):
            result["incoming"] = [
                {"path": source, "count": links[path]}
                for source, links in resolved.items()
                if path in links
            ]

        if direction in ("outgoing", "both"):
            unresolved = await provider.unresolved_links()
            result["outgoing"] = {
                "resolved": [
                    {"target": target, "count": count}
                    for target, count in resolved.get(path, {}).items()
                ],
                "unresolved": [
                    {"target": target, "count": count}
                    for target, count in unresolved.get(path, {}).items()
                ],
            }

        return result
