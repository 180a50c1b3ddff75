"""Checkpoint persistence for the command line runner.

Selectors never persist anything: the caller stores the checkpoint once
the selected files have been ingested. The CLI uses these helpers to keep
one checkpoint per (system, entity) pair.

Checkpoints are stored as JSON files in a state directory.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

__all__ = ["delete_watermark", "get_watermark", "list_watermarks", "save_watermark"]

# Can be overridden via BATCHFEED_STATE_DIR
DEFAULT_STATE_DIR = ".state"


def _get_state_dir() -> Path:
    """Get the state directory path."""
    state_dir = os.environ.get("BATCHFEED_STATE_DIR", DEFAULT_STATE_DIR)
    return Path(state_dir)


def _get_watermark_path(system: str, entity: str) -> Path:
    """Get the path to a checkpoint file."""
    return _get_state_dir() / f"{system}_{entity}_watermark.json"


def get_watermark(system: str, entity: str) -> Optional[str]:
    """Get the last stored checkpoint.

    Args:
        system: Source system name
        entity: Entity name

    Returns:
        Last checkpoint value, or None if no checkpoint exists

    Example:
        >>> get_watermark("retail", "events")
        '5'
    """
    path = _get_watermark_path(system, entity)

    if not path.exists():
        logger.debug("No checkpoint found for %s.%s", system, entity)
        return None

    try:
        data = json.loads(path.read_text())
        value = data.get("last_value")
        logger.debug(
            "Found checkpoint for %s.%s: %s (updated %s)",
            system,
            entity,
            value,
            data.get("updated_at", "unknown"),
        )
        return value
    except (json.JSONDecodeError, AttributeError) as e:
        logger.warning("Invalid checkpoint file for %s.%s: %s", system, entity, e)
        return None


def save_watermark(system: str, entity: str, value: str) -> None:
    """Save a checkpoint after successful ingestion.

    Args:
        system: Source system name
        entity: Entity name
        value: New checkpoint value
    """
    state_dir = _get_state_dir()
    state_dir.mkdir(parents=True, exist_ok=True)

    path = _get_watermark_path(system, entity)
    data = {
        "system": system,
        "entity": entity,
        "last_value": value,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    path.write_text(json.dumps(data, indent=2))
    logger.info("Saved checkpoint for %s.%s: %s", system, entity, value)


def delete_watermark(system: str, entity: str) -> bool:
    """Delete a checkpoint so the next run starts from the beginning.

    Returns:
        True if the checkpoint was deleted, False if it didn't exist
    """
    path = _get_watermark_path(system, entity)

    if path.exists():
        path.unlink()
        logger.info("Deleted checkpoint for %s.%s", system, entity)
        return True

    return False


def list_watermarks() -> Dict[str, Dict[str, Any]]:
    """List all stored checkpoints.

    Returns:
        Dictionary mapping "system.entity" to checkpoint data
    """
    state_dir = _get_state_dir()

    if not state_dir.exists():
        return {}

    watermarks = {}

    for path in state_dir.glob("*_watermark.json"):
        try:
            data = json.loads(path.read_text())
            key = f"{data.get('system', 'unknown')}.{data.get('entity', 'unknown')}"
            watermarks[key] = data
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning("Invalid checkpoint file %s: %s", path, e)

    return watermarks
