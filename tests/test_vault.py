"""
Tests for the filesystem vault provider and markdown metadata parsing.
"""

import pytest

from vault_mcp.base import CapabilityError, CommandNotFound, FileNotFoundInVault, NoActiveEditor
from vault_mcp.markdown import find_links, parse_metadata, split_frontmatter
from vault_mcp.vault import LocalVault

class TestMarkdown:

    def test_frontmatter(self, welcome_text):
        data, body_start = split_frontmatter(welcome_text)
        assert data == {"title": "Welcome", "tags": ["start", "guide"]}
        assert body_start == 4

    def test_no_frontmatter(self):
        assert split_frontmatter("# Title\n") == (None, 0)

    def test_unterminated_frontmatter_is_body(self):
        assert split_frontmatter("---\ntitle: x\n") == (None, 0)

    def test_metadata(self, welcome_text):
        cache = parse_metadata(welcome_text)

        assert cache["headings"] == [
            {"heading": "Welcome", "level": 1, "line": 4},
            {"heading": "Todo", "level": 2, "line": 8},
        ]
        assert [t["tag"] for t in cache["tags"]] == ["#demo", "#release/v2"]
        assert [l["link"] for l in cache["links"]] == ["Plan", "Missing Note", "Projects/Plan#Goals"]
        assert cache["links"][2]["displayText"] == "the plan"
        assert cache["embeds"] == [{"link": "diagram.png", "displayText": "diagram.png", "line": 11}]
        assert cache["listItems"] == 3

    def test_code_fences_are_ignored(self):
        text = "```\n[[Hidden]]\n#hidden\n```\n[[Shown]]\n"
        cache = parse_metadata(text)
        assert [l["link"] for l in cache["links"]] == ["Shown"]
        assert cache["tags"] == []

    def test_external_urls_are_not_links(self):
        text = "[site](https://example.com) [anchor](#top) [note](Other%20Note.md)"
        assert [l["link"] for l in find_links(text)] == ["Other Note.md"]


class TestDocuments:

    def test_missing_root(self, tmp_path):
        with pytest.raises(CapabilityError):
            LocalVault(tmp_path / "nope")

    @pytest.mark.asyncio
    async def test_list_root_hides_config_dir(self, vault):
        listing = await vault.list_folder(".")
        assert listing == {"folders": ["Projects"], "files": ["diagram.png", "Welcome.md"]}

    @pytest.mark.asyncio
    async def test_paths_cannot_escape_vault(self, vault):
        # leading ".." collapses at the vault root
        assert vault.normalize_path("../../etc/passwd") == "etc/passwd"
        with pytest.raises(FileNotFoundInVault):
            await vault.read_file("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_write_creates_parents(self, vault, vault_dir):
        await vault.write_file("New/Deep/note.md", "hi")
        assert (vault_dir / "New" / "Deep" / "note.md").read_text(encoding="utf-8") == "hi"

    @pytest.mark.asyncio
    async def test_edit_lines_replace(self, vault):
        outcome = await vault.edit_lines("Projects/Plan.md", 6, 7, "line 5")

        assert outcome == {"linesReplaced": 2, "linesInserted": 1, "totalLines": 7}
        text = await vault.read_file("Projects/Plan.md")
        assert text.split("\n")[5] == "line 5"

    @pytest.mark.asyncio
    async def test_edit_lines_pure_insert(self, vault):
        outcome = await vault.edit_lines("Projects/Plan.md", 1, 0, "Intro")

        assert outcome["linesReplaced"] == 0
        assert (await vault.read_file("Projects/Plan.md")).startswith("Intro\n# Plan")

    @pytest.mark.asyncio
    async def test_edit_lines_out_of_range(self, vault):
        with pytest.raises(CapabilityError):
            await vault.edit_lines("Projects/Plan.md", 20, 21, "x")

    @pytest.mark.asyncio
    async def test_delete_folder_requires_force(self, vault, vault_dir):
        with pytest.raises(CapabilityError):
            await vault.delete_folder("Projects")

        await vault.delete_folder("Projects", force=True)
        assert not (vault_dir / "Projects").exists()

    @pytest.mark.asyncio
    async def test_delete_root_refused(self, vault):
        with pytest.raises(CapabilityError):
            await vault.delete_folder(".", force=True)


class TestEditor:

    @pytest.mark.asyncio
    async def test_no_editor_initially(self, vault):
        assert await vault.get_active_file() is None
        with pytest.raises(NoActiveEditor):
            await vault.get_selection()

    @pytest.mark.asyncio
    async def test_open_reuses_active_view(self, vault):
        await vault.open_file("Welcome.md")
        await vault.open_file("Projects/Plan.md")
        open_files = await vault.get_open_files()
        assert open_files == [{"path": "Projects/Plan.md", "name": "Plan.md", "isActive": True}]

        await vault.open_file("Welcome.md", new_view=True)
        assert len(await vault.get_open_files()) == 2
        assert await vault.get_active_file() == "Welcome.md"

    @pytest.mark.asyncio
    async def test_selection_and_insert(self, vault):
        await vault.open_file("Projects/Plan.md", line=6)
        vault.set_selection((5, 0), (5, 9))

        selection = await vault.get_selection()
        assert selection == {
            "selection": "line five",
            "from": {"line": 5, "ch": 0},
            "to": {"line": 5, "ch": 9},
        }

        await vault.insert_text("LINE")
        assert (await vault.read_file("Projects/Plan.md")).split("\n")[5] == "LINE"
        assert (await vault.get_selection())["selection"] == ""

    @pytest.mark.asyncio
    async def test_delete_closes_views(self, vault):
        await vault.open_file("Welcome.md")
        await vault.delete_file("Welcome.md")
        assert await vault.get_active_file() is None


class TestLinks:

    @pytest.mark.asyncio
    async def test_resolved_and_unresolved(self, vault):
        resolved = await vault.resolved_links()
        unresolved = await vault.unresolved_links()

        assert resolved["Welcome.md"] == {"Projects/Plan.md": 2, "diagram.png": 1}
        assert resolved["Projects/Notes.md"] == {"Projects/Plan.md": 2}
        assert resolved["Projects/Plan.md"] == {"Welcome.md": 1}
        assert unresolved["Welcome.md"] == {"Missing Note": 1}

    @pytest.mark.asyncio
    async def test_rename_rewrites_links(self, vault, vault_dir):
        updated = await vault.rename_file("Projects/Plan.md", "Archive/Roadmap.md")

        assert updated == 2
        assert (vault_dir / "Archive" / "Roadmap.md").exists()
        welcome = (vault_dir / "Welcome.md").read_text(encoding="utf-8")
        assert "See [[Roadmap]] and [[Missing Note]]." in welcome
        assert "[[Roadmap#Goals|the plan]]" in welcome
        notes = (vault_dir / "Projects" / "Notes.md").read_text(encoding="utf-8")
        assert notes.startswith("Notes about the [plan](Archive/Roadmap.md) and [[Roadmap]] again.")
        # fenced text is left alone
        assert "[[Not A Link]]" in notes

    @pytest.mark.asyncio
    async def test_rename_onto_existing_file(self, vault):
        with pytest.raises(CapabilityError):
            await vault.rename_file("Projects/Plan.md", "Welcome.md")

    @pytest.mark.asyncio
    async def test_rename_updates_open_view(self, vault):
        await vault.open_file("Projects/Plan.md")
        await vault.rename_file("Projects/Plan.md", "Plan.md")
        assert await vault.get_active_file() == "Plan.md"


class TestCommands:

    @pytest.mark.asyncio
    async def test_unknown_command(self, vault):
        with pytest.raises(CommandNotFound):
            await vault.execute_command("app:reload")

    @pytest.mark.asyncio
    async def test_toggle_bold(self, vault):
        await vault.open_file("Projects/Plan.md")
        vault.set_selection((5, 0), (5, 4))

        await vault.execute_command("editor:toggle-bold")

        assert (await vault.read_file("Projects/Plan.md")).split("\n")[5] == "**line** five"

    @pytest.mark.asyncio
    async def test_registered_command_runs(self, vault):
        calls = []
        vault.register_command("test:ping", "Ping", lambda: calls.append("ping"))

        result = await vault.execute_command("test:ping")

        assert result == {"id": "test:ping", "name": "Ping"}
        assert calls == ["ping"]
