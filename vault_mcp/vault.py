"""
LocalVault: a CapabilityProvider backed by a directory of markdown notes.

Documents live on disk under `root`. Editor state (open views, the active
view, cursor and selection) is kept in memory, the way a desktop host
keeps it for its own window.
"""

import asyncio
import logging
import posixpath
import shutil
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import quote

from .base import CapabilityError, CommandNotFound, FileNotFoundInVault, NoActiveEditor
from .capabilities import CapabilityProvider
from .markdown import find_links, link_target, parse_metadata

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSION = ".md"

Position = Dict[str, int]
CommandCallback = Callable[[], Union[None, Awaitable[None]]]


@dataclass
class EditorView:
    """One open tab."""
    id: int
    path: str
    cursor: Tuple[int, int] = (0, 0)
    anchor: Optional[Tuple[int, int]] = None

    @property
    def is_markdown(self) -> bool:
        return self.path.endswith(MARKDOWN_EXTENSION)

    def selection_range(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        anchor = self.anchor if self.anchor is not None else self.cursor
        return (min(anchor, self.cursor), max(anchor, self.cursor))


@dataclass
class Command:
    id: str
    name: str
    callback: CommandCallback


def _offset(text: str, pos: Tuple[int, int]) -> int:
    """Character offset of a (line, ch) position, clamped to the text."""
    lines = text.split("\n")
    line = max(0, min(pos[0], len(lines) - 1))
    ch = max(0, min(pos[1], len(lines[line])))
    return sum(len(l) + 1 for l in lines[:line]) + ch


def _position(text: str, offset: int) -> Tuple[int, int]:
    before = text[:offset].split("\n")
    return (len(before) - 1, len(before[-1]))


class LocalVault(CapabilityProvider):
    """Filesystem vault with an in-memory editor workspace."""

    def __init__(self, root: Union[str, Path], config_dir: str = ".obsidian"):
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise CapabilityError(f"Vault folder does not exist: {self.root}")
        self._config_dir = config_dir
        self._views: List[EditorView] = []
        self._active_view: Optional[EditorView] = None
        self._next_view_id = 1
        self._commands: Dict[str, Command] = {}
        self._register_builtin_commands()

    # ---- vault ----

    @property
    def vault_name(self) -> str:
        return self.root.name

    @property
    def config_dir(self) -> str:
        return self._config_dir

    def normalize_path(self, path: str) -> str:
        text = (path or "").strip().replace("\\", "/")
        normalized = posixpath.normpath("/" + text).lstrip("/")
        return "" if normalized in (".", "") else normalized

    def _resolve(self, path: str) -> Path:
        rel = self.normalize_path(path)
        target = (self.root / rel).resolve() if rel else self.root
        if target != self.root and self.root not in target.parents:
            raise CapabilityError(f"Path is outside the vault: {path}")
        return target

    def _relative(self, target: Path) -> str:
        return target.relative_to(self.root).as_posix()

    def _is_hidden(self, rel: str) -> bool:
        return any(part.startswith(".") for part in PurePosixPath(rel).parts)

    def _require_file(self, path: str) -> Path:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundInVault(path)
        return target

    # ---- documents ----

    async def path_kind(self, path: str) -> Optional[str]:
        target = self._resolve(path)
        if target.is_file():
            return "file"
        if target.is_dir():
            return "folder"
        return None

    async def read_file(self, path: str) -> str:
        return self._require_file(path).read_text(encoding="utf-8")

    async def write_file(self, path: str, content: str) -> None:
        target = self._resolve(path)
        if target == self.root or target.is_dir():
            raise CapabilityError(f"Not a file path: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    async def list_folder(self, path: str) -> Dict[str, List[str]]:
        target = self._resolve(path)
        if not target.is_dir():
            raise CapabilityError(f"Folder not found: {path}")

        files: List[str] = []
        folders: List[str] = []
        for child in sorted(target.iterdir(), key=lambda p: p.name.lower()):
            rel = self._relative(child)
            if self._is_hidden(rel):
                continue
            (folders if child.is_dir() else files).append(rel)
        return {"files": files, "folders": folders}

    async def delete_file(self, path: str) -> None:
        target = self._require_file(path)
        target.unlink()
        rel = self._relative(target)
        self._close_views_for(lambda p: p == rel)

    async def create_folder(self, path: str) -> None:
        target = self._resolve(path)
        if target.is_file():
            raise CapabilityError(f"A file already exists at: {path}")
        target.mkdir(parents=True, exist_ok=True)

    async def delete_folder(self, path: str, force: bool = False) -> None:
        target = self._resolve(path)
        if target == self.root:
            raise CapabilityError("Refusing to delete the vault root")
        if not target.is_dir():
            raise CapabilityError(f"Folder not found: {path}")

        if any(target.iterdir()):
            if not force:
                raise CapabilityError(f"Folder is not empty: {path}. Use force=true to delete it anyway.")
            shutil.rmtree(target)
        else:
            target.rmdir()

        prefix = self._relative(target) + "/"
        self._close_views_for(lambda p: p.startswith(prefix))

    async def edit_lines(self, path: str, start_line: int, end_line: int, new_content: str) -> Dict[str, Any]:
        target = self._require_file(path)
        lines = target.read_text(encoding="utf-8").split("\n")
        total = len(lines)

        if start_line < 1 or start_line > total + 1:
            raise CapabilityError(f"start_line {start_line} is out of range (file has {total} lines)")
        if end_line < start_line - 1 or end_line > total:
            raise CapabilityError(f"end_line {end_line} is out of range (file has {total} lines)")

        replacement = new_content.split("\n") if new_content != "" else []
        updated = lines[: start_line - 1] + replacement + lines[end_line:]
        target.write_text("\n".join(updated), encoding="utf-8")

        return {
            "linesReplaced": end_line - start_line + 1,
            "linesInserted": len(replacement),
            "totalLines": len(updated),
        }

    async def markdown_files(self) -> List[str]:
        return sorted(
            rel for rel in (self._relative(p) for p in self.root.rglob(f"*{MARKDOWN_EXTENSION}") if p.is_file())
            if not self._is_hidden(rel)
        )

    async def all_paths(self) -> List[str]:
        return sorted(
            rel for rel in (self._relative(p) for p in self.root.rglob("*"))
            if not self._is_hidden(rel)
        )

    # ---- editor / workspace ----

    def _close_views_for(self, predicate: Callable[[str], bool]) -> None:
        self._views = [v for v in self._views if not predicate(v.path)]
        if self._active_view is not None and self._active_view not in self._views:
            self._active_view = self._views[-1] if self._views else None

    def _editor(self) -> EditorView:
        view = self._active_view
        if view is None or not view.is_markdown:
            raise NoActiveEditor()
        return view

    async def get_active_file(self) -> Optional[str]:
        return self._active_view.path if self._active_view else None

    async def open_file(self, path: str, line: Optional[int] = None, new_view: bool = False) -> None:
        target = self._require_file(path)
        rel = self._relative(target)

        if new_view or self._active_view is None:
            view = EditorView(id=self._next_view_id, path=rel)
            self._next_view_id += 1
            self._views.append(view)
        else:
            view = self._active_view
            view.path = rel
            view.cursor, view.anchor = (0, 0), None
        self._active_view = view

        if line is not None:
            view.cursor, view.anchor = (max(line - 1, 0), 0), None

    async def get_open_files(self) -> List[Dict[str, Any]]:
        return [
            {
                "path": view.path,
                "name": PurePosixPath(view.path).name,
                "isActive": view is self._active_view,
            }
            for view in self._views
            if view.is_markdown
        ]

    def set_selection(self, anchor: Tuple[int, int], head: Tuple[int, int]) -> None:
        """Select text in the active editor (host-side; not exposed as a tool)."""
        view = self._editor()
        view.anchor, view.cursor = tuple(anchor), tuple(head)

    async def get_selection(self) -> Dict[str, Any]:
        view = self._editor()
        text = await self.read_file(view.path)
        start, end = view.selection_range()
        selection = text[_offset(text, start):_offset(text, end)]
        return {
            "selection": selection,
            "from": {"line": start[0], "ch": start[1]},
            "to": {"line": end[0], "ch": end[1]},
        }

    async def insert_text(self, text: str) -> None:
        view = self._editor()
        content = await self.read_file(view.path)
        start, end = view.selection_range()
        begin, finish = _offset(content, start), _offset(content, end)

        updated = content[:begin] + text + content[finish:]
        await self.write_file(view.path, updated)
        view.cursor, view.anchor = _position(updated, begin + len(text)), None

    # ---- metadata ----

    async def get_file_cache(self, path: str) -> Optional[Dict[str, Any]]:
        target = self._require_file(path)
        if target.suffix != MARKDOWN_EXTENSION:
            return None
        return parse_metadata(target.read_text(encoding="utf-8"))

    def _resolve_link(self, link: str, source: str, files: List[str]) -> Optional[str]:
        """Map link text to a vault path the way the editor resolves it."""
        target = link_target(link)
        if not target:
            return source

        candidates = [target]
        if not PurePosixPath(target).suffix:
            candidates.append(target + MARKDOWN_EXTENSION)

        existing = set(files)
        source_dir = posixpath.dirname(source)
        for candidate in candidates:
            for base in (source_dir, ""):
                rel = self.normalize_path(posixpath.join(base, candidate))
                if rel in existing:
                    return rel

        # shortest-path match on file name
        names = [PurePosixPath(c).name.lower() for c in candidates]
        matches = [f for f in files if PurePosixPath(f).name.lower() in names]
        if matches:
            return min(matches, key=lambda f: (f.count("/"), f))
        return None

    async def _link_index(self) -> Tuple[Dict[str, Dict[str, int]], Dict[str, Dict[str, int]]]:
        md_files = await self.markdown_files()
        files = [p for p in await self.all_paths() if (self.root / p).is_file()]
        resolved: Dict[str, Dict[str, int]] = {}
        unresolved: Dict[str, Dict[str, int]] = {}

        for source in md_files:
            text = (self.root / source).read_text(encoding="utf-8")
            resolved_links: Dict[str, int] = {}
            unresolved_links: Dict[str, int] = {}
            for item in find_links(text):
                target = self._resolve_link(item["link"], source, files)
                if target is None:
                    key = link_target(item["link"])
                    unresolved_links[key] = unresolved_links.get(key, 0) + 1
                else:
                    resolved_links[target] = resolved_links.get(target, 0) + 1
            resolved[source] = resolved_links
            unresolved[source] = unresolved_links

        return resolved, unresolved

    async def resolved_links(self) -> Dict[str, Dict[str, int]]:
        resolved, _ = await self._link_index()
        return resolved

    async def unresolved_links(self) -> Dict[str, Dict[str, int]]:
        _, unresolved = await self._link_index()
        return unresolved

    # ---- commands ----

    def register_command(self, command_id: str, name: str, callback: CommandCallback) -> None:
        self._commands[command_id] = Command(id=command_id, name=name, callback=callback)

    def _register_builtin_commands(self) -> None:
        self.register_command("editor:toggle-bold", "Toggle bold", self._cmd_toggle_bold)
        self.register_command("editor:select-all", "Select all", self._cmd_select_all)
        self.register_command("workspace:close", "Close current tab", self._cmd_close)
        self.register_command("workspace:close-others", "Close all other tabs", self._cmd_close_others)
        self.register_command("file-explorer:new-file", "Create new note", self._cmd_new_file)

    async def list_commands(self) -> List[Dict[str, str]]:
        return [{"id": c.id, "name": c.name} for c in self._commands.values()]

    async def execute_command(self, command_id: str) -> Dict[str, str]:
        command = self._commands.get(command_id)
        if command is None:
            raise CommandNotFound(command_id)

        outcome = command.callback()
        if asyncio.iscoroutine(outcome):
            await outcome
        logger.debug(f"Executed command {command_id}")
        return {"id": command.id, "name": command.name}

    async def _cmd_toggle_bold(self) -> None:
        selection = (await self.get_selection())["selection"]
        if selection.startswith("**") and selection.endswith("**") and len(selection) >= 4:
            await self.insert_text(selection[2:-2])
        else:
            await self.insert_text(f"**{selection}**")

    async def _cmd_select_all(self) -> None:
        view = self._editor()
        text = await self.read_file(view.path)
        view.anchor, view.cursor = (0, 0), _position(text, len(text))

    def _cmd_close(self) -> None:
        active = self._active_view
        if active is None:
            return
        self._views.remove(active)
        self._active_view = self._views[-1] if self._views else None

    def _cmd_close_others(self) -> None:
        self._views = [self._active_view] if self._active_view else []

    async def _cmd_new_file(self) -> None:
        name = "Untitled.md"
        counter = 1
        while (self.root / name).exists():
            name = f"Untitled {counter}.md"
            counter += 1
        await self.write_file(name, "")
        await self.open_file(name, new_view=True)

    # ---- file manager ----

    def _link_text_for(self, new_path: str, files: List[str]) -> str:
        """Shortest link text that still resolves to `new_path`."""
        stem_path = new_path[: -len(MARKDOWN_EXTENSION)] if new_path.endswith(MARKDOWN_EXTENSION) else new_path
        name = PurePosixPath(new_path).name.lower()
        if sum(1 for f in files if PurePosixPath(f).name.lower() == name) == 1:
            return PurePosixPath(stem_path).name
        return stem_path

    async def rename_file(self, old_path: str, new_path: str) -> int:
        source = self._require_file(old_path)
        destination = self._resolve(new_path)
        if destination.exists():
            raise CapabilityError(f"Destination already exists: {new_path}")

        old_rel = self._relative(source)
        new_rel = self._relative(destination)
        files = [p for p in await self.all_paths() if (self.root / p).is_file()]

        # occurrences that resolve to the old path, gathered before the move
        referencing: Dict[str, List[Dict[str, Any]]] = {}
        for md in await self.markdown_files():
            text = (self.root / md).read_text(encoding="utf-8")
            hits = [
                item for item in find_links(text)
                if self._resolve_link(item["link"], md, files) == old_rel and link_target(item["link"])
            ]
            if hits:
                referencing[md] = hits

        destination.parent.mkdir(parents=True, exist_ok=True)
        source.rename(destination)
        for view in self._views:
            if view.path == old_rel:
                view.path = new_rel

        files = [new_rel if f == old_rel else f for f in files]
        link_text = self._link_text_for(new_rel, files)

        for md, hits in referencing.items():
            current = new_rel if md == old_rel else md
            path = self.root / current
            lines = path.read_text(encoding="utf-8").split("\n")
            for item in sorted(hits, key=lambda h: (h["line"], h["start"]), reverse=True):
                line = lines[item["line"]]
                lines[item["line"]] = line[: item["start"]] + self._rewrite(item, link_text, new_rel) + line[item["end"]:]
            path.write_text("\n".join(lines), encoding="utf-8")

        logger.info(f"Renamed {old_rel} -> {new_rel}, updated links in {len(referencing)} file(s)")
        return len(referencing)

    def _rewrite(self, item: Dict[str, Any], link_text: str, new_rel: str) -> str:
        subpath = ""
        if "#" in item["link"]:
            subpath = "#" + item["link"].split("#", 1)[1]
        bang = "!" if item["embed"] else ""

        if item["kind"] == "wiki":
            alias = ""
            if item["displayText"] != item["link"]:
                alias = "|" + item["displayText"]
            return f"{bang}[[{link_text}{subpath}{alias}]]"

        return f"{bang}[{item['displayText']}]({quote(new_rel)}{subpath})"
