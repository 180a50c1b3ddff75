"""Local filesystem storage backend."""

from __future__ import annotations

import fnmatch
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from batchfeed.lib.storage.base import FileInfo, StorageBackend

logger = logging.getLogger(__name__)

__all__ = ["LocalStorage"]


class LocalStorage(StorageBackend):
    """Local filesystem storage backend.

    Example:
        >>> storage = LocalStorage("./data/input/")
        >>> [e.name for e in storage.glob_entries() if e.is_dir]
        ['1', '2', '5']
        >>> files = storage.list_files("5", recursive=True)
    """

    @property
    def scheme(self) -> str:
        return "local"

    def _resolve_path(self, path: str) -> Path:
        """Resolve a path to an absolute Path object."""
        if path.startswith("file://"):
            path = path[len("file://"):]
        full_path = self.get_full_path(path)
        if full_path.startswith("file://"):
            full_path = full_path[len("file://"):]
        return Path(full_path).resolve()

    @staticmethod
    def _entry_info(entry: os.DirEntry) -> FileInfo:
        stat = entry.stat()
        is_dir = entry.is_dir()
        return FileInfo(
            path=entry.path,
            size=0 if is_dir else stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime),
            is_dir=is_dir,
        )

    def _scan(self, directory: Path) -> List[os.DirEntry]:
        # os.scandir raises on unreadable directories, where Path.glob and
        # Path.rglob skip them
        with os.scandir(directory) as it:
            return list(it)

    def _walk_files(self, directory: Path, recursive: bool) -> Iterator[os.DirEntry]:
        for entry in self._scan(directory):
            if entry.is_dir():
                if recursive:
                    yield from self._walk_files(Path(entry.path), recursive)
            elif entry.is_file():
                yield entry

    def exists(self, path: str) -> bool:
        """Check if a path exists."""
        return self._resolve_path(path).exists()

    def glob_entries(self, path: str = "", pattern: str = "*") -> List[FileInfo]:
        """List entries directly under a path matching a glob."""
        resolved = self._resolve_path(path)

        if not resolved.exists():
            logger.debug("Glob root %s does not exist", resolved)
            return []

        entries = [
            self._entry_info(entry)
            for entry in self._scan(resolved)
            if fnmatch.fnmatch(entry.name, pattern)
        ]
        return sorted(entries, key=lambda e: e.path)

    def list_files(
        self,
        path: str = "",
        pattern: Optional[str] = None,
        recursive: bool = False,
    ) -> List[FileInfo]:
        """List files at a path.

        Any directory that cannot be read raises OSError rather than being
        left out of the listing.
        """
        resolved = self._resolve_path(path)

        if not resolved.exists():
            return []

        files = [
            self._entry_info(entry)
            for entry in self._walk_files(resolved, recursive)
            if not pattern or fnmatch.fnmatch(entry.name, pattern)
        ]
        return sorted(files, key=lambda f: f.path)
