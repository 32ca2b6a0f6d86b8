"""
Capability Provider interface.

Tool handlers only ever touch the host application through this
interface. Operations that do I/O are coroutines; a host may suspend in
any of them. The provider owns its own concurrency discipline.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class CapabilityProvider(ABC):
    """Documents, editor state, metadata and commands of a host vault."""

    # ---- vault ----

    @property
    @abstractmethod
    def vault_name(self) -> str:
        pass

    @property
    @abstractmethod
    def config_dir(self) -> str:
        pass

    @abstractmethod
    def normalize_path(self, path: str) -> str:
        """Canonical vault-relative form of `path` ("" is the vault root)."""
        pass

    # ---- documents ----

    @abstractmethod
    async def path_kind(self, path: str) -> Optional[str]:
        """Return "file", "folder" or None when nothing exists at `path`."""
        pass

    @abstractmethod
    async def read_file(self, path: str) -> str:
        pass

    @abstractmethod
    async def write_file(self, path: str, content: str) -> None:
        """Create or overwrite a file, creating parent folders as needed."""
        pass

    @abstractmethod
    async def list_folder(self, path: str) -> Dict[str, List[str]]:
        """{"files": [...], "folders": [...]} directly under `path`."""
        pass

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        pass

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        pass

    @abstractmethod
    async def delete_folder(self, path: str, force: bool = False) -> None:
        pass

    @abstractmethod
    async def edit_lines(self, path: str, start_line: int, end_line: int, new_content: str) -> Dict[str, Any]:
        """Replace lines start_line..end_line (1-based, inclusive)."""
        pass

    @abstractmethod
    async def markdown_files(self) -> List[str]:
        pass

    @abstractmethod
    async def all_paths(self) -> List[str]:
        """Every file and folder in the vault."""
        pass

    # ---- editor / workspace ----

    @abstractmethod
    async def get_active_file(self) -> Optional[str]:
        pass

    @abstractmethod
    async def get_selection(self) -> Dict[str, Any]:
        """{"selection", "from", "to"}; raises NoActiveEditor."""
        pass

    @abstractmethod
    async def insert_text(self, text: str) -> None:
        """Replace the selection (or insert at the cursor); raises NoActiveEditor."""
        pass

    @abstractmethod
    async def open_file(self, path: str, line: Optional[int] = None, new_view: bool = False) -> None:
        pass

    @abstractmethod
    async def get_open_files(self) -> List[Dict[str, Any]]:
        pass

    # ---- metadata ----

    @abstractmethod
    async def get_file_cache(self, path: str) -> Optional[Dict[str, Any]]:
        """Structural metadata of a markdown document, or None."""
        pass

    @abstractmethod
    async def resolved_links(self) -> Dict[str, Dict[str, int]]:
        """{source path: {target path: link count}}"""
        pass

    @abstractmethod
    async def unresolved_links(self) -> Dict[str, Dict[str, int]]:
        """{source path: {link text: link count}}"""
        pass

    # ---- commands ----

    @abstractmethod
    async def list_commands(self) -> List[Dict[str, str]]:
        pass

    @abstractmethod
    async def execute_command(self, command_id: str) -> Dict[str, str]:
        """Run a command; raises CommandNotFound."""
        pass

    # ---- file manager ----

    @abstractmethod
    async def rename_file(self, old_path: str, new_path: str) -> int:
        """Move a document, rewrite references to it, return how many files were updated."""
        pass
