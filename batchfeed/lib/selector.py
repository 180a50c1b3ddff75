"""Path selectors: decide which newly-arrived files to ingest next.

A path selector turns (previous checkpoint, storage snapshot) into the
files to ingest plus the checkpoint to persist once they are consumed.
Selectors hold no state between calls; every call re-lists storage.

Two strategies are provided:

- ``BatchCheckpointSelector`` ("batch_id"): the root holds numbered batch
  directories (``1/``, ``2/``, ``5/`` ...). The checkpoint is the last
  consumed batch id. Gaps left by rolled-back batches are skipped.
- ``ModificationTimeSelector`` ("modification_time"): files anywhere under
  the root are ordered by modification time. The checkpoint is an epoch
  millisecond timestamp and ``source_limit`` bounds the bytes per call.

Usage:
    from batchfeed.lib.selector import get_path_selector
    from batchfeed.lib.config_loader import SelectorConfig

    selector = get_path_selector(SelectorConfig(root_input_path="/landing/events"))
    file_paths, checkpoint = selector.select_next_batch("2")
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type

from batchfeed.lib.config_loader import DEFAULT_SOURCE_LIMIT, SelectorConfig
from batchfeed.lib.errors import BatchIdParseError, ConfigurationError, StorageIOError
from batchfeed.lib.logging import get_selector_logger
from batchfeed.lib.storage import FileInfo, StorageBackend, get_storage

logger = logging.getLogger(__name__)

__all__ = [
    "NO_CHECKPOINT_SENTINEL",
    "BatchSelection",
    "PathSelector",
    "BatchCheckpointSelector",
    "ModificationTimeSelector",
    "register_selector",
    "list_selectors",
    "get_path_selector",
]

# Minimum signed 64-bit value, returned when nothing was found and no
# checkpoint existed yet
MIN_CHECKPOINT = -(2**63)
NO_CHECKPOINT_SENTINEL = str(MIN_CHECKPOINT)

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def _parse_int(value: str, *, kind: str) -> int:
    """Parse a base-10 integer, raising BatchIdParseError otherwise."""
    text = str(value)
    if not _INTEGER_PATTERN.fullmatch(text):
        raise BatchIdParseError(f"Invalid {kind}: {text!r} is not an integer", value=text)
    return int(text)


@dataclass
class BatchSelection:
    """Files selected for ingestion and the checkpoint that covers them.

    Unpacks as the ``(file_paths, checkpoint)`` pair:

        file_paths, checkpoint = selector.select_next_batch(previous)

    ``file_paths`` is a comma-joined list of paths, or None when there is
    no new data. In that case ``checkpoint`` is the previous checkpoint.
    """

    file_paths: Optional[str]
    checkpoint: str
    files: List[FileInfo] = field(default_factory=list)
    batch_ids: List[int] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.file_paths is not None

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self.files)

    def __iter__(self) -> Iterator[Optional[str]]:
        return iter((self.file_paths, self.checkpoint))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "file_paths": self.file_paths,
            "checkpoint": self.checkpoint,
            "file_count": len(self.files),
            "total_bytes": self.total_bytes,
            "batch_ids": list(self.batch_ids),
        }


class PathSelector(ABC):
    """Strategy for picking the next files to ingest from a root path.

    Subclasses implement ``select_next_batch``. Storage failures must be
    raised as StorageIOError carrying the checkpoint in effect; selectors
    never retry.
    """

    name: str = ""

    def __init__(
        self,
        config: SelectorConfig,
        storage: Optional[StorageBackend] = None,
    ) -> None:
        self.config = config
        self.storage = storage or get_storage(
            config.root_input_path, **config.storage_options
        )
        self.log = get_selector_logger(
            f"{__name__}.{type(self).__name__}",
            selector=self.name,
            root=config.root_input_path,
        )

    @property
    def root(self) -> str:
        return self.config.root_input_path

    @abstractmethod
    def select_next_batch(
        self,
        previous_checkpoint: Optional[str] = None,
        source_limit: int = DEFAULT_SOURCE_LIMIT,
    ) -> BatchSelection:
        """Return the files to ingest after ``previous_checkpoint``.

        Args:
            previous_checkpoint: Checkpoint persisted after the last
                ingestion, or None to start from the beginning
            source_limit: Upper bound on the data returned, for selectors
                that support one

        Returns:
            BatchSelection with the file list and the new checkpoint
        """
        pass

    def _io_error(
        self,
        exc: OSError,
        checkpoint: Optional[str],
        path: str,
    ) -> StorageIOError:
        return StorageIOError(
            f"Unable to read from source from checkpoint: {checkpoint}",
            checkpoint=checkpoint,
            path=path,
            cause=exc,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(root={self.root!r})"


_SELECTOR_REGISTRY: Dict[str, Type[PathSelector]] = {}


def register_selector(
    name: str,
) -> Callable[[Type[PathSelector]], Type[PathSelector]]:
    """Decorator to register a PathSelector class under a name.

    Usage:
        @register_selector("by_date")
        class DatePartitionSelector(PathSelector):
            ...
    """

    def decorator(cls: Type[PathSelector]) -> Type[PathSelector]:
        cls.name = name.lower()
        _SELECTOR_REGISTRY[cls.name] = cls
        return cls

    return decorator


def list_selectors() -> List[str]:
    """Return all registered selector names."""
    return sorted(_SELECTOR_REGISTRY.keys())


def get_path_selector(
    config: SelectorConfig,
    storage: Optional[StorageBackend] = None,
) -> PathSelector:
    """Build the selector named by ``config.selector``.

    Args:
        config: Selector configuration
        storage: Storage backend to use; built from the root path if None

    Raises:
        ConfigurationError: If no selector is registered under that name
    """
    name = config.selector.lower()
    cls = _SELECTOR_REGISTRY.get(name)
    if cls is None:
        raise ConfigurationError(
            f"Unknown selector '{config.selector}'. "
            f"Available selectors: {', '.join(list_selectors())}",
            field="selector",
            value=config.selector,
        )
    return cls(config, storage)


@register_selector("batch_id")
class BatchCheckpointSelector(PathSelector):
    """Select the next numbered batch directories after a checkpoint.

    The checkpoint is the last consumed batch id. The eligible range is
    ``(last, next]`` where ``next`` is ``last + 1``, unless the smallest
    batch present above ``last`` is larger. That happens when an upstream
    writer rolled back batches: with ``input/1``, ``input/2`` and
    ``input/5`` and checkpoint ``2``, batches 3 and 4 will never appear so
    the selection jumps straight to 5.

    ``source_limit`` is accepted for interface compatibility and ignored.
    """

    def _batch_directories(self, entries: List[FileInfo]) -> List[Tuple[int, FileInfo]]:
        """Numbered batch directories under the root, ordered by batch id."""
        # Only non-ignored directories are rollback candidates. Parsing every
        # entry name would fail on marker files and ignored temp directories.
        batches = []
        for entry in entries:
            if not entry.is_dir or self.config.is_ignored(entry.name):
                continue
            batches.append((_parse_int(entry.name, kind="batch directory name"), entry))
        return sorted(batches, key=lambda b: b[0])

    def select_next_batch(
        self,
        previous_checkpoint: Optional[str] = None,
        source_limit: int = DEFAULT_SOURCE_LIMIT,
    ) -> BatchSelection:
        if previous_checkpoint is not None:
            last_batch_id = _parse_int(previous_checkpoint, kind="checkpoint")
        else:
            last_batch_id = 0
        next_batch_id = last_batch_id + 1
        log = self.log.bind(checkpoint=previous_checkpoint, source_limit=source_limit)

        try:
            entries = self.storage.glob_entries(self.root, "*")
        except OSError as e:
            raise self._io_error(e, previous_checkpoint, self.root) from e

        batches = self._batch_directories(entries)

        later = [batch_id for batch_id, _ in batches if batch_id > last_batch_id]
        if later:
            earliest = min(later)
            if earliest > next_batch_id:
                log.info(
                    "Batches %d..%d missing (rolled back), advancing to batch %d",
                    next_batch_id,
                    earliest - 1,
                    earliest,
                )
                next_batch_id = earliest

        log = log.bind(last_batch_id=last_batch_id, next_batch_id=next_batch_id)
        log.info("Selecting batches in (%d, %d]", last_batch_id, next_batch_id)

        eligible: List[FileInfo] = []
        batch_ids: List[int] = []
        for batch_id, entry in batches:
            if not last_batch_id < batch_id <= next_batch_id:
                continue
            try:
                files = self.storage.list_files(entry.path, recursive=True)
            except OSError as e:
                raise self._io_error(e, previous_checkpoint, entry.path) from e
            log.debug("Batch %d: %d files", batch_id, len(files))
            eligible.extend(files)
            batch_ids.append(batch_id)

        if not eligible:
            checkpoint = (
                previous_checkpoint
                if previous_checkpoint is not None
                else NO_CHECKPOINT_SENTINEL
            )
            log.no_new_data(checkpoint)
            return BatchSelection(file_paths=None, checkpoint=checkpoint)

        selection = BatchSelection(
            file_paths=",".join(f.path for f in eligible),
            checkpoint=str(next_batch_id),
            files=eligible,
            batch_ids=batch_ids,
        )
        log.selection(
            selection.checkpoint, len(eligible), selection.total_bytes, batch_ids=batch_ids
        )
        return selection


@register_selector("modification_time")
class ModificationTimeSelector(PathSelector):
    """Select files modified after a checkpoint, bounded by ``source_limit``.

    Files are walked recursively under the root. Directories and files
    whose names start with an ignore prefix are skipped, along with
    everything below them. Eligible files are taken oldest first until
    adding the next file would reach ``source_limit`` bytes. Files sharing
    a modification time are never split across two calls, and at least
    one group is always taken so an oversized file cannot stall the feed.

    The checkpoint is the modification time, in epoch milliseconds, of the
    newest file selected.
    """

    def _walk(self, path: str) -> List[FileInfo]:
        files: List[FileInfo] = []
        for entry in self.storage.glob_entries(path, "*"):
            if self.config.is_ignored(entry.name):
                continue
            if entry.is_dir:
                files.extend(self._walk(entry.path))
            else:
                files.append(entry)
        return files

    def select_next_batch(
        self,
        previous_checkpoint: Optional[str] = None,
        source_limit: int = DEFAULT_SOURCE_LIMIT,
    ) -> BatchSelection:
        if previous_checkpoint is not None:
            last_time = _parse_int(previous_checkpoint, kind="checkpoint")
        else:
            last_time = MIN_CHECKPOINT
        log = self.log.bind(checkpoint=previous_checkpoint, source_limit=source_limit)

        try:
            files = self._walk(self.root)
        except OSError as e:
            raise self._io_error(e, previous_checkpoint, self.root) from e

        eligible = [
            f for f in files if f.modified_ms is not None and f.modified_ms > last_time
        ]
        eligible.sort(key=lambda f: (f.modified_ms, f.path))

        log.info("%d files modified after %d", len(eligible), last_time)

        checkpoint_time = last_time
        current_bytes = 0
        selected: List[FileInfo] = []
        for f in eligible:
            if (
                selected
                and current_bytes + f.size >= source_limit
                and f.modified_ms > checkpoint_time
            ):
                break
            checkpoint_time = f.modified_ms
            current_bytes += f.size
            selected.append(f)

        if not selected:
            log.no_new_data(str(checkpoint_time))
            return BatchSelection(file_paths=None, checkpoint=str(checkpoint_time))

        log.selection(str(checkpoint_time), len(selected), current_bytes)
        return BatchSelection(
            file_paths=",".join(f.path for f in selected),
            checkpoint=str(checkpoint_time),
            files=selected,
        )
