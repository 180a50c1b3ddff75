"""YAML configuration loader for path selectors.

Example YAML (events.yaml):
    selector:
      type: batch_id
      root_input_path: "./landing/events"
      ignore_prefixes: [".", "_"]
      system: retail
      entity: events
      storage_options:
        profile: ${AWS_PROFILE:-default}

Usage:
    from batchfeed.lib.config_loader import load_selector_config
    config = load_selector_config("./configs/events.yaml")
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from batchfeed.lib.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_IGNORE_PREFIXES",
    "DEFAULT_SOURCE_LIMIT",
    "SelectorConfig",
    "YAMLConfigError",
    "load_env_file",
    "load_selector_config",
    "selector_config_from_dict",
]

# Hidden files and marker files such as _SUCCESS or _temporary
DEFAULT_IGNORE_PREFIXES = [".", "_"]

DEFAULT_SOURCE_LIMIT = 2**63 - 1


class YAMLConfigError(ConfigurationError):
    """Error in YAML selector configuration."""

    pass


@dataclass
class SelectorConfig:
    """Configuration handed to a path selector.

    Attributes:
        root_input_path: Directory holding the batch sub-directories
        ignore_prefixes: Entry names starting with any of these are skipped
        selector: Registered selector name ("batch_id", "modification_time")
        source_limit: Default source limit passed by the CLI
        system: Source system name, used as checkpoint store key
        entity: Entity name, used as checkpoint store key
        storage_options: Extra options for the storage backend
    """

    root_input_path: str
    ignore_prefixes: List[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORE_PREFIXES)
    )
    selector: str = "batch_id"
    source_limit: int = DEFAULT_SOURCE_LIMIT
    system: str = "default"
    entity: str = "default"
    storage_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.root_input_path:
            raise ConfigurationError(
                "root_input_path is required",
                field="root_input_path",
            )
        if isinstance(self.ignore_prefixes, str):
            self.ignore_prefixes = [self.ignore_prefixes]
        if any(not prefix for prefix in self.ignore_prefixes):
            # An empty prefix would match every entry
            raise ConfigurationError(
                "ignore_prefixes must not contain empty strings",
                field="ignore_prefixes",
                value=self.ignore_prefixes,
            )

    def is_ignored(self, name: str) -> bool:
        """Return True if an entry name starts with an ignore prefix."""
        return any(name.startswith(prefix) for prefix in self.ignore_prefixes)


# ${VAR} or ${VAR:-default}
_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def load_env_file(path: Union[str, Path]) -> bool:
    """Load variables from a .env file ahead of reading selector configs.

    Variables already set in the environment are not overridden.
    """
    path = Path(path)
    if not path.exists():
        raise YAMLConfigError(
            f"Env file not found: {path}",
            details={"path": str(path)},
        )
    loaded: bool = load_dotenv(dotenv_path=path, override=False)
    logger.debug("Loaded env file %s", path)
    return loaded


def _expand_env(value: Any, field_name: str) -> Any:
    """Substitute ${VAR} references in a selector value.

    Mappings and lists are expanded recursively; other scalars pass through.
    An unset variable without a default is a configuration error naming the
    field that referenced it.
    """
    if isinstance(value, dict):
        return {k: _expand_env(v, f"{field_name}.{k}") for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v, f"{field_name}[{i}]") for i, v in enumerate(value)]
    if not isinstance(value, str):
        return value

    def substitute(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        resolved = os.environ.get(name, default)
        if resolved is None:
            raise YAMLConfigError(
                f"selector.{field_name} references unset environment variable {name}",
                field=field_name,
                value=value,
                suggestion=f"Export {name}, pass --env-file, or write ${{{name}:-default}}",
            )
        return resolved

    return _ENV_REFERENCE.sub(substitute, value)


def _resolve_path(path: str, config_dir: Path) -> str:
    """Resolve relative paths based on config file location.

    Paths starting with "./" or "../" are resolved relative to the YAML file.
    Absolute paths and URIs are unchanged.
    """
    if "://" in path or os.path.isabs(path):
        return path

    if path.startswith("./") or path.startswith("../"):
        return str((config_dir / path).resolve())

    return path


def selector_config_from_dict(
    config: Dict[str, Any],
    config_dir: Optional[Path] = None,
) -> SelectorConfig:
    """Create a SelectorConfig from a parsed ``selector`` section.

    Args:
        config: Dictionary from parsed YAML (the 'selector' section)
        config_dir: Directory containing the YAML file

    Returns:
        Configured SelectorConfig

    Raises:
        YAMLConfigError: If configuration is invalid
    """
    config_dir = config_dir or Path.cwd()

    if not isinstance(config, dict):
        raise YAMLConfigError("selector section must be a mapping")

    root = config.get("root_input_path")
    if not root:
        raise YAMLConfigError(
            "selector.root_input_path is required",
            field="root_input_path",
        )
    root = _resolve_path(_expand_env(str(root), "root_input_path"), config_dir)

    prefixes = config.get("ignore_prefixes", DEFAULT_IGNORE_PREFIXES)
    if prefixes is None:
        prefixes = []
    if isinstance(prefixes, str):
        prefixes = [prefixes]
    if not isinstance(prefixes, list):
        raise YAMLConfigError(
            "selector.ignore_prefixes must be a list of strings",
            field="ignore_prefixes",
            value=prefixes,
        )

    source_limit = config.get("source_limit", DEFAULT_SOURCE_LIMIT)
    try:
        source_limit = int(source_limit)
    except (TypeError, ValueError):
        raise YAMLConfigError(
            "selector.source_limit must be an integer",
            field="source_limit",
            value=source_limit,
        )

    storage_options = config.get("storage_options") or {}
    if not isinstance(storage_options, dict):
        raise YAMLConfigError(
            "selector.storage_options must be a mapping",
            field="storage_options",
            value=storage_options,
        )

    try:
        return SelectorConfig(
            root_input_path=root,
            ignore_prefixes=[str(p) for p in prefixes],
            selector=str(config.get("type", "batch_id")).lower(),
            source_limit=source_limit,
            system=str(config.get("system", "default")),
            entity=str(config.get("entity", "default")),
            storage_options=_expand_env(storage_options, "storage_options"),
        )
    except YAMLConfigError:
        raise
    except ConfigurationError as e:
        raise YAMLConfigError(e.message, details=e.details) from e


def load_selector_config(path: Union[str, Path]) -> SelectorConfig:
    """Load a SelectorConfig from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Configured SelectorConfig

    Raises:
        YAMLConfigError: If the file is missing, unparseable or invalid
    """
    path = Path(path)

    if not path.exists():
        raise YAMLConfigError(
            f"Configuration file not found: {path}",
            details={"path": str(path)},
        )

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise YAMLConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict) or "selector" not in data:
        raise YAMLConfigError(
            f"{path} must contain a 'selector' section",
            details={"path": str(path)},
        )

    config = selector_config_from_dict(data["selector"], path.parent.resolve())
    logger.debug("Loaded selector config from %s: %s", path, config)
    return config
