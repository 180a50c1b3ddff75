"""Structured exception hierarchy for batchfeed.

Provides specific exception types for the failure modes of path selection,
with context for debugging and troubleshooting.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

__all__ = [
    "BatchfeedError",
    "BatchIdParseError",
    "StorageIOError",
    "ConfigurationError",
]


class BatchfeedError(Exception):
    """Base exception for all batchfeed errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if details:
            detail_lines = [f"  {k}: {v}" for k, v in details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class BatchIdParseError(BatchfeedError, ValueError):
    """A batch directory name or checkpoint is not a base-10 integer.

    Raised when a directory under the root is neither numeric nor covered by
    an ignore prefix, or when the supplied checkpoint cannot be parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        value: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.value = value

        details = kwargs.pop("details", {})
        if value is not None:
            details["value"] = value

        suggestion = kwargs.pop("suggestion", None)
        if not suggestion:
            suggestion = (
                "Batch directories must be named with integers. Add an ignore "
                "prefix for marker or temporary directories."
            )

        super().__init__(message, details=details, suggestion=suggestion, **kwargs)


class StorageIOError(BatchfeedError, IOError):
    """Storage listing failed while selecting the next batch.

    Carries the checkpoint that was in effect so the caller can retry from
    the same position.
    """

    def __init__(
        self,
        message: str,
        *,
        checkpoint: Optional[str] = None,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.checkpoint = checkpoint
        self.path = path
        self.cause = cause

        details = kwargs.pop("details", {})
        details["checkpoint"] = checkpoint
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)


class ConfigurationError(BatchfeedError):
    """Error in selector configuration.

    Raised when configuration is invalid or incomplete.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value

        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(message, details=details, **kwargs)
