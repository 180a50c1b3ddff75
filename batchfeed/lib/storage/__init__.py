"""Storage backend abstraction for path selectors.

Provides a unified listing interface over different storage backends:
the local filesystem natively, and every fsspec protocol (S3, GCS, ADLS,
HDFS, memory, ...) through ``FsspecStorage``.

Usage:
    from batchfeed.lib.storage import get_storage

    # Local filesystem
    storage = get_storage("./data/input/")

    # AWS S3 (requires s3fs)
    storage = get_storage("s3://my-bucket/input/")
"""

from typing import Any

from batchfeed.lib.storage.base import FileInfo, StorageBackend
from batchfeed.lib.storage.fsspec_backend import FsspecStorage, get_fsspec_filesystem
from batchfeed.lib.storage.local import LocalStorage

__all__ = [
    "FileInfo",
    "StorageBackend",
    "LocalStorage",
    "FsspecStorage",
    "get_fsspec_filesystem",
    "get_storage",
    "parse_uri",
]


def parse_uri(path: str) -> tuple[str, str]:
    """Parse a storage URI into scheme and path.

    Args:
        path: Storage path (local path or URI)

    Returns:
        Tuple of (scheme, path) where scheme is 'local' for plain paths and
        ``file://`` URIs, and the URI protocol otherwise

    Examples:
        >>> parse_uri("./data/input/")
        ('local', './data/input/')
        >>> parse_uri("s3://my-bucket/input/")
        ('s3', 'my-bucket/input/')
    """
    if "://" not in path:
        return ("local", path)

    protocol, rest = path.split("://", 1)
    if protocol == "file":
        return ("local", rest)
    return (protocol, rest)


def get_storage(path: str, **options: Any) -> StorageBackend:
    """Get the appropriate storage backend for a path.

    Args:
        path: Storage path (local path or URI)
        **options: Backend-specific options (credentials, etc.)

    Returns:
        LocalStorage for local paths, FsspecStorage for everything else

    Examples:
        >>> storage = get_storage("./data/")
        >>> storage = get_storage("s3://my-bucket/data/", anon=True)
    """
    scheme, local_path = parse_uri(path)

    if scheme == "local":
        return LocalStorage(local_path, **options)
    return FsspecStorage(path, **options)
