"""
Shared test fixtures for job-history tests.

This module provides:
- A deterministic clock
- An in-memory store and a ledger wired to it
- A job class registry with a recording enqueue function
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from job_history.config import ClassConfig, LoggingConfig, Settings, StoreConfig
from job_history.ledger import HistoryLedger, HostInfo
from job_history.logging import StructuredLogger
from job_history.registry import JobClassRegistry
from job_history.store.memory import InMemoryHistoryStore


# =============================================================================
# Helpers
# =============================================================================


class FakeClock:
    """Epoch-seconds clock that moves forward a millisecond per reading."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 0.001):
        self.value = start
        self.step = step

    def __call__(self) -> float:
        self.value += self.step
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@dataclass
class RecordingEnqueue:
    """Stands in for the execution engine's enqueue primitive."""

    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)


def make_settings(**defaults: Any) -> Settings:
    defaults.setdefault("history_len", 5)
    return Settings(
        store=StoreConfig(backend="memory"),
        defaults=ClassConfig(**defaults),
        logging=LoggingConfig(),
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def registry() -> JobClassRegistry:
    return JobClassRegistry()


@pytest.fixture
def enqueue() -> RecordingEnqueue:
    return RecordingEnqueue()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def ledger(store, settings, registry, clock) -> HistoryLedger:
    return HistoryLedger(
        store,
        settings=settings,
        registry=registry,
        host_info=lambda: HostInfo(hostname="worker-1", pid=4242),
        clock=clock,
        logger=StructuredLogger("job_history.tests", level="DEBUG", json_output=False),
    )


@pytest.fixture
def make_ledger(store, registry, clock):
    """Build a ledger over the shared store with custom class defaults."""

    def factory(**defaults: Any) -> HistoryLedger:
        return HistoryLedger(
            store,
            settings=make_settings(**defaults),
            registry=registry,
            host_info=lambda: HostInfo(hostname="worker-1", pid=4242),
            clock=clock,
            logger=StructuredLogger("job_history.tests", level="DEBUG", json_output=False),
        )

    return factory
