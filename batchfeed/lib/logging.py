"""Logging utilities for batchfeed.

Provides console/file logging setup, a structured JSON output option for
production environments, and a logger adapter that carries the selector,
root and checkpoint of the call being logged.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "setup_logging",
    "JSONFormatter",
    "SelectorLogger",
    "get_selector_logger",
]

_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON.

    Example output:
        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "batchfeed.lib.selector", "message": "Selected 3 files"}
    """

    def __init__(self, exclude_fields: Optional[list[str]] = None):
        super().__init__()
        self.exclude_fields = exclude_fields or []

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_attrs = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _RESERVED_ATTRS and k not in self.exclude_fields
        }
        if extra_attrs:
            log_data["extra"] = extra_attrs

        return json.dumps(log_data, default=str)


class SelectorLogger(logging.LoggerAdapter):
    """Logger adapter that stamps selector fields onto every record.

    Fields are attached as record attributes, so the JSON formatter nests
    them under ``extra``. ``bind`` narrows the logger to one call:

        log = get_selector_logger(__name__, selector="batch_id", root="/landing")
        call_log = log.bind(checkpoint="2")
        call_log.info("Listing root")  # record carries selector, root, checkpoint
    """

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(fields or {}))

    @property
    def fields(self) -> Dict[str, Any]:
        return dict(self.extra)

    def process(self, msg: Any, kwargs: Any) -> Tuple[Any, Any]:
        # Explicit extra wins over bound fields
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> "SelectorLogger":
        """Return a logger carrying these fields in addition to the current ones."""
        return SelectorLogger(self.logger, {**self.extra, **fields})

    def selection(self, checkpoint: str, files: int, total_bytes: int, **fields: Any) -> None:
        """Log the outcome of a selection call."""
        self.info(
            "Selected %d files (%d bytes), new checkpoint %s",
            files,
            total_bytes,
            checkpoint,
            extra={
                "new_checkpoint": checkpoint,
                "files_selected": files,
                "bytes_selected": total_bytes,
                **fields,
            },
        )

    def no_new_data(self, checkpoint: Optional[str]) -> None:
        self.info(
            "No new data after checkpoint %s",
            checkpoint,
            extra={"new_checkpoint": checkpoint, "files_selected": 0},
        )


def get_selector_logger(name: str, **fields: Any) -> SelectorLogger:
    return SelectorLogger(logging.getLogger(name), fields)


def setup_logging(
    verbose: bool = False,
    json_format: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure logging for a selector run.

    Args:
        verbose: Enable debug-level logging
        json_format: Use JSON output format (for log aggregation)
        log_file: Optional file path to write logs to
    """
    level = logging.DEBUG if verbose else logging.INFO

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    # stderr keeps stdout free for selection output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # fsspec and its cloud drivers are chatty at DEBUG
    for noisy in ("fsspec", "s3fs", "botocore", "aiobotocore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
