"""Checkpointed file selection for incremental ingestion.

Given a root directory of newly-arrived data, batchfeed decides which files
are new since the last checkpoint and which checkpoint covers them.

Usage:
    python -m batchfeed select ./configs/events.yaml
    python -m batchfeed select ./configs/events.yaml --commit
    python -m batchfeed show-checkpoint ./configs/events.yaml
"""

from batchfeed.lib.config_loader import SelectorConfig, load_selector_config
from batchfeed.lib.selector import (
    BatchCheckpointSelector,
    BatchSelection,
    ModificationTimeSelector,
    PathSelector,
    get_path_selector,
)

__version__ = "1.0.0"

__all__ = [
    "BatchCheckpointSelector",
    "BatchSelection",
    "ModificationTimeSelector",
    "PathSelector",
    "SelectorConfig",
    "get_path_selector",
    "load_selector_config",
]
