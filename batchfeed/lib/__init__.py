"""Library modules for batchfeed.

This package contains the path selector strategies and the storage,
configuration, logging and checkpoint utilities around them.
"""

from batchfeed.lib.config_loader import (
    DEFAULT_IGNORE_PREFIXES,
    DEFAULT_SOURCE_LIMIT,
    SelectorConfig,
    YAMLConfigError,
    load_env_file,
    load_selector_config,
    selector_config_from_dict,
)
from batchfeed.lib.errors import (
    BatchfeedError,
    BatchIdParseError,
    ConfigurationError,
    StorageIOError,
)
from batchfeed.lib.logging import JSONFormatter, SelectorLogger, get_selector_logger, setup_logging
from batchfeed.lib.resilience import RetryConfig, retry_operation, with_retry
from batchfeed.lib.selector import (
    NO_CHECKPOINT_SENTINEL,
    BatchCheckpointSelector,
    BatchSelection,
    ModificationTimeSelector,
    PathSelector,
    get_path_selector,
    list_selectors,
    register_selector,
)
from batchfeed.lib.storage import (
    FileInfo,
    FsspecStorage,
    LocalStorage,
    StorageBackend,
    get_storage,
    parse_uri,
)
from batchfeed.lib.watermark import (
    delete_watermark,
    get_watermark,
    list_watermarks,
    save_watermark,
)

__all__ = [
    # Selectors
    "BatchCheckpointSelector",
    "BatchSelection",
    "ModificationTimeSelector",
    "NO_CHECKPOINT_SENTINEL",
    "PathSelector",
    "get_path_selector",
    "list_selectors",
    "register_selector",
    # Configuration
    "DEFAULT_IGNORE_PREFIXES",
    "DEFAULT_SOURCE_LIMIT",
    "SelectorConfig",
    "YAMLConfigError",
    "load_selector_config",
    "selector_config_from_dict",
    "load_env_file",
    # Errors
    "BatchfeedError",
    "BatchIdParseError",
    "ConfigurationError",
    "StorageIOError",
    # Logging
    "JSONFormatter",
    "SelectorLogger",
    "get_selector_logger",
    "setup_logging",
    # Resilience
    "RetryConfig",
    "retry_operation",
    "with_retry",
    # Storage
    "FileInfo",
    "FsspecStorage",
    "LocalStorage",
    "StorageBackend",
    "get_storage",
    "parse_uri",
    # Checkpoints
    "delete_watermark",
    "get_watermark",
    "list_watermarks",
    "save_watermark",
]
