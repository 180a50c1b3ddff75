"""Pytest configuration and fixtures."""

import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from batchfeed.lib.config_loader import SelectorConfig  # noqa: E402
from batchfeed.lib.storage.base import FileInfo, StorageBackend  # noqa: E402


class FakeStorage(StorageBackend):
    """In-memory storage backend driven by a directory tree.

    ``tree`` maps a directory path to its direct children. Paths listed in
    ``failing`` raise OSError when globbed or listed.
    """

    def __init__(
        self,
        tree: Dict[str, List[FileInfo]],
        base_path: str = "/landing",
        failing: Iterable[str] = (),
    ) -> None:
        super().__init__(base_path)
        self.tree = tree
        self.failing = set(failing)
        self.calls: List[tuple] = []

    @property
    def scheme(self) -> str:
        return "fake"

    def exists(self, path: str) -> bool:
        return self.get_full_path(path) in self.tree

    def _check(self, path: str) -> str:
        full = self.get_full_path(path)
        if full in self.failing:
            raise OSError(f"simulated failure listing {full}")
        return full

    def glob_entries(self, path: str = "", pattern: str = "*") -> List[FileInfo]:
        self.calls.append(("glob_entries", path, pattern))
        full = self._check(path)
        return sorted(self.tree.get(full, []), key=lambda e: e.path)

    def list_files(
        self,
        path: str = "",
        pattern: Optional[str] = None,
        recursive: bool = False,
    ) -> List[FileInfo]:
        self.calls.append(("list_files", path, recursive))
        full = self._check(path)
        files: List[FileInfo] = []
        for entry in self.tree.get(full, []):
            if entry.is_dir:
                if recursive:
                    files.extend(self.list_files(entry.path, pattern, recursive))
            else:
                files.append(entry)
        return sorted(files, key=lambda f: f.path)


def fake_dir(path: str) -> FileInfo:
    return FileInfo(path=path, is_dir=True)


def fake_file(path: str, size: int = 10, modified: Optional[datetime] = None) -> FileInfo:
    return FileInfo(path=path, size=size, modified=modified)


def write_file(path: Path, content: str = "payload") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def scandir_denying(name: str):
    """os.scandir replacement that raises PermissionError for directories called ``name``."""
    real_scandir = os.scandir

    def scandir(path="."):
        if Path(path).name == name:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    return scandir


@pytest.fixture
def batch_root(tmp_path: Path) -> Path:
    """Landing directory with batches 1, 2 and 5 (3 and 4 rolled back).

    Also holds a temporary directory, a marker file and a hidden directory
    that selectors must skip.
    """
    root = tmp_path / "landing"
    write_file(root / "1" / "part-0000.csv")
    write_file(root / "2" / "part-0000.csv")
    write_file(root / "2" / "nested" / "part-0001.csv")
    write_file(root / "5" / "part-0000.csv")
    write_file(root / ".tmp3" / "part-0000.csv")
    write_file(root / "_SUCCESS", "")
    return root


@pytest.fixture
def batch_config(batch_root: Path) -> SelectorConfig:
    return SelectorConfig(
        root_input_path=str(batch_root),
        ignore_prefixes=[".tmp", "_"],
    )


@pytest.fixture
def sample_yaml(tmp_path: Path, batch_root: Path) -> Path:
    """Selector YAML pointing at the batch_root fixture."""
    config_path = tmp_path / "events.yaml"
    config_path.write_text(
        "selector:\n"
        "  type: batch_id\n"
        "  root_input_path: ./landing\n"
        "  ignore_prefixes: ['.tmp', '_']\n"
        "  system: retail\n"
        "  entity: events\n"
    )
    return config_path
