"""Abstract base class for storage backends.

Defines the listing interface that path selectors consume. Backends never
swallow I/O failures: an ``OSError`` raised by the underlying filesystem
propagates to the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

__all__ = ["StorageBackend", "FileInfo"]


@dataclass
class FileInfo:
    """Information about a file or directory in storage."""

    path: str
    size: int = 0
    modified: Optional[datetime] = None
    is_dir: bool = False

    @property
    def name(self) -> str:
        """Last component of the path."""
        return self.path.rstrip("/").split("/")[-1]

    @property
    def modified_ms(self) -> Optional[int]:
        """Modification time as epoch milliseconds."""
        if self.modified is None:
            return None
        return int(self.modified.timestamp() * 1000)


class StorageBackend(ABC):
    """Abstract base class for storage backends.

    Provides a unified listing interface over different storage systems
    (local filesystem, S3, GCS, ADLS, ...).

    Subclasses must implement all abstract methods.
    """

    def __init__(self, base_path: str, **options: Any) -> None:
        """Initialize the storage backend.

        Args:
            base_path: Base path for this storage backend
            **options: Backend-specific options
        """
        self.base_path = base_path
        self.options = options

    @property
    @abstractmethod
    def scheme(self) -> str:
        """Return the URI scheme for this backend (e.g., 'local', 's3')."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if a path exists.

        Args:
            path: Path to check (relative to base_path or absolute)

        Returns:
            True if path exists, False otherwise
        """
        pass

    @abstractmethod
    def glob_entries(self, path: str = "", pattern: str = "*") -> List[FileInfo]:
        """List the entries directly under a path that match a glob.

        Single level only: both files and directories are returned, with
        ``is_dir`` set accordingly.

        Args:
            path: Directory to glob (relative to base_path or absolute)
            pattern: Glob pattern applied to entry names

        Returns:
            List of FileInfo objects with absolute paths, sorted by path
        """
        pass

    @abstractmethod
    def list_files(
        self,
        path: str = "",
        pattern: Optional[str] = None,
        recursive: bool = False,
    ) -> List[FileInfo]:
        """List files at a path.

        Args:
            path: Path to list (relative to base_path or absolute)
            pattern: Optional glob pattern to filter file names
            recursive: If True, list files recursively

        Returns:
            List of FileInfo objects with absolute paths, sorted by path
        """
        pass

    def get_full_path(self, path: str) -> str:
        """Get the full path including base_path.

        Args:
            path: Relative path

        Returns:
            Full path with base_path prefix
        """
        if not path or path == self.base_path:
            return self.base_path

        if "://" in path or path.startswith("/"):
            return path

        base = self.base_path.rstrip("/")
        return f"{base}/{path.lstrip('/')}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_path={self.base_path!r})"
