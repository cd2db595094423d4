"""
Key layout of the persisted ledger.

External tooling reads these keys directly, so the naming is part of the
contract:

    <prefix>.<class>.<job-id>          job record (hash)
    <prefix>.<class>.running_jobs      sorted set
    <prefix>.<class>.finished_jobs     sorted set
    <prefix>.<class>.linear_jobs       sorted set
    <prefix>.<class>.max_jobs          counter
    <prefix>.<class>.total_failed      counter
    <prefix>.class_list                set of class names
"""

from __future__ import annotations

from dataclasses import dataclass

RUNNING_JOBS = "running_jobs"
FINISHED_JOBS = "finished_jobs"
LINEAR_JOBS = "linear_jobs"
MAX_JOBS = "max_jobs"
TOTAL_FAILED = "total_failed"
CLASS_LIST = "class_list"

JOB_LIST_NAMES = (RUNNING_JOBS, FINISHED_JOBS, LINEAR_JOBS)
CLASS_SUFFIXES = frozenset({RUNNING_JOBS, FINISHED_JOBS, LINEAR_JOBS, MAX_JOBS, TOTAL_FAILED})

GLOB_SPECIAL = frozenset("\\*?[]")


def glob_escape(text: str) -> str:
    """Escape ``text`` so a Redis glob pattern matches it literally."""
    return "".join(f"\\{char}" if char in GLOB_SPECIAL else char for char in text)


@dataclass(frozen=True)
class KeySpace:
    """Derives every store key from a prefix, a class name and a job id."""

    prefix: str = "job_history"

    def class_key(self, class_name: str) -> str:
        return f"{self.prefix}.{class_name}"

    def list_key(self, class_name: str, list_name: str) -> str:
        return f"{self.class_key(class_name)}.{list_name}"

    def job_key(self, class_name: str, job_id: str) -> str:
        return f"{self.class_key(class_name)}.{job_id}"

    def max_running_key(self, class_name: str) -> str:
        return f"{self.class_key(class_name)}.{MAX_JOBS}"

    def total_failed_key(self, class_name: str) -> str:
        return f"{self.class_key(class_name)}.{TOTAL_FAILED}"

    def class_list_key(self) -> str:
        return f"{self.prefix}.{CLASS_LIST}"

    def class_pattern(self, class_name: str) -> str:
        return f"{glob_escape(self.class_key(class_name))}.*"

    def all_pattern(self) -> str:
        return f"{glob_escape(self.prefix)}.*"

    def job_id_from_key(self, class_name: str, key: str) -> str | None:
        """Job id encoded in ``key``, or None if it is not a record key."""
        base = f"{self.class_key(class_name)}."
        if not key.startswith(base):
            return None
        remainder = key[len(base):]
        if not remainder or remainder in CLASS_SUFFIXES:
            return None
        return remainder


__all__ = [
    "KeySpace",
    "RUNNING_JOBS",
    "FINISHED_JOBS",
    "LINEAR_JOBS",
    "MAX_JOBS",
    "TOTAL_FAILED",
    "CLASS_LIST",
    "JOB_LIST_NAMES",
    "CLASS_SUFFIXES",
    "glob_escape",
]
