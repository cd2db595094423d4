"""
Error taxonomy for job-history.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification
- Structured context for debugging
- Store-level failures kept distinct from operator-facing failures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the history ledger."""

    # Store errors (1xxx)
    STORE_ERROR = "ERR_1000"
    STORE_CONNECTION_ERROR = "ERR_1001"
    STORE_TIMEOUT = "ERR_1002"

    # Job class errors (2xxx)
    JOB_CLASS_ERROR = "ERR_2000"
    JOB_CLASS_NOT_FOUND = "ERR_2001"

    # Worker errors (3xxx)
    WORKER_ERROR = "ERR_3000"
    WORKER_DIRTY_EXIT = "ERR_3001"

    # Operator action errors (4xxx)
    OPERATION_FAILED = "ERR_4000"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    INVALID_CONFIG = "ERR_6002"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    class_name: str | None = None
    job_id: str | None = None
    key: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_name": self.class_name,
            "job_id": self.job_id,
            "key": self.key,
            "operation": self.operation,
            **self.extra,
        }


class JobHistoryError(Exception):
    """
    Base exception for all job-history errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.key:
            parts.append(f"(key={self.context.key})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(JobHistoryError):
    """A key-value store operation failed."""

    code = ErrorCode.STORE_ERROR
    retryable = False


class StoreConnectionError(StoreError):
    """The key-value store could not be reached."""

    code = ErrorCode.STORE_CONNECTION_ERROR
    retryable = True


class StoreTimeoutError(StoreError):
    """A key-value store operation timed out."""

    code = ErrorCode.STORE_TIMEOUT
    retryable = True


# =============================================================================
# Job Class Errors
# =============================================================================


class JobClassNotFoundError(JobHistoryError):
    """No job class is registered under the requested name."""

    code = ErrorCode.JOB_CLASS_NOT_FOUND

    def __init__(self, class_name: str, **kwargs):
        kwargs.setdefault("context", ErrorContext(class_name=class_name))
        super().__init__(f"Job class '{class_name}' is not registered", **kwargs)
        self.class_name = class_name


# =============================================================================
# Worker Errors
# =============================================================================


class WorkerExitError(JobHistoryError):
    """The worker process running a job exited abnormally.

    Execution engines raise (or pass) this to ``Job.failed`` so the recorded
    message carries the process exit status.
    """

    code = ErrorCode.WORKER_DIRTY_EXIT

    def __init__(
        self,
        message: str = "Job process exited unexpectedly",
        *,
        process_status: Any = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.process_status = process_status


# =============================================================================
# Operator Action Errors
# =============================================================================


class OperationFailedError(JobHistoryError):
    """An operator action (cancel, delete, retry, purge) did not complete."""

    code = ErrorCode.OPERATION_FAILED

    def __init__(self, action: str, **kwargs):
        kwargs.setdefault("context", ErrorContext(operation=action))
        super().__init__(f"Operation '{action}' failed", **kwargs)
        self.action = action


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(JobHistoryError, ValueError):
    """Base class for configuration errors.

    Also a ``ValueError``, the type dataclass validation conventionally raises.
    """

    code = ErrorCode.CONFIG_ERROR


class InvalidConfigError(ConfigError):
    """A configuration value is invalid."""

    code = ErrorCode.INVALID_CONFIG

    def __init__(self, field_name: str, reason: str, **kwargs):
        super().__init__(f"Invalid configuration for '{field_name}': {reason}", **kwargs)
        self.field_name = field_name


# =============================================================================
# Utilities
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """
    Check if an error is retryable.

    Args:
        error: Exception to check

    Returns:
        True if the error is retryable
    """
    if isinstance(error, JobHistoryError):
        return error.retryable

    import asyncio

    retryable_types = (
        asyncio.TimeoutError,
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


__all__ = [
    # Base
    "ErrorCode",
    "ErrorContext",
    "JobHistoryError",
    # Store errors
    "StoreError",
    "StoreConnectionError",
    "StoreTimeoutError",
    # Job class errors
    "JobClassNotFoundError",
    # Worker errors
    "WorkerExitError",
    # Operator errors
    "OperationFailedError",
    # Config errors
    "ConfigError",
    "InvalidConfigError",
    # Utilities
    "is_retryable",
]
