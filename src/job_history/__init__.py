"""
job-history: an execution-history ledger for background job queues.

For every job instance the ledger records start/end timestamps, the worker
host and process, arguments and failure detail, and tracks each job class's
running, finished and linear job sets in a shared key-value store.

Quick start:
    ```python
    from job_history import HistoryLedger, RedisHistoryStore, track_job

    ledger = HistoryLedger(RedisHistoryStore.from_url("redis://localhost:6379/0"))

    async with track_job(ledger, "ReportJob", "42", "weekly"):
        await build_report("weekly")
    ```
"""

from .actions import ClassSummary, HistoryActions, JobEntry, JobPage
from .cleaner import Cleaner
from .config import (
    ClassConfig,
    KillConfig,
    LoggingConfig,
    Settings,
    StoreConfig,
    configure,
    get_settings,
    load_env,
)
from .errors import (
    ErrorCode,
    ErrorContext,
    JobClassNotFoundError,
    JobHistoryError,
    OperationFailedError,
    StoreConnectionError,
    StoreError,
    StoreTimeoutError,
    WorkerExitError,
    is_retryable,
)
from .history_base import HistoryBase
from .hooks import job_history, new_job_id, track_job
from .job import CANCEL_MESSAGE, Job, JobRecord
from .job_list import ClassList, JobList
from .keys import KeySpace
from .ledger import HistoryLedger, HostInfo
from .logging import StructuredLogger, logger_from_config
from .registry import JobClass, JobClassRegistry
from .store import HistoryStore, InMemoryHistoryStore, RedisHistoryStore, build_store

__version__ = "0.1.0"

__all__ = [
    # Ledger
    "HistoryLedger",
    "HostInfo",
    "HistoryBase",
    "Job",
    "JobRecord",
    "CANCEL_MESSAGE",
    "JobList",
    "ClassList",
    "Cleaner",
    "KeySpace",
    # Operator actions
    "HistoryActions",
    "ClassSummary",
    "JobEntry",
    "JobPage",
    # Hooks
    "track_job",
    "job_history",
    "new_job_id",
    # Registry
    "JobClass",
    "JobClassRegistry",
    # Stores
    "HistoryStore",
    "InMemoryHistoryStore",
    "RedisHistoryStore",
    "build_store",
    # Config
    "Settings",
    "StoreConfig",
    "ClassConfig",
    "KillConfig",
    "LoggingConfig",
    "get_settings",
    "configure",
    "load_env",
    # Errors
    "ErrorCode",
    "ErrorContext",
    "JobHistoryError",
    "StoreError",
    "StoreConnectionError",
    "StoreTimeoutError",
    "JobClassNotFoundError",
    "WorkerExitError",
    "OperationFailedError",
    "is_retryable",
    # Logging
    "StructuredLogger",
    "logger_from_config",
]
