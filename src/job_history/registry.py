"""
Job class registry.

The execution engine owns the job classes; the ledger only needs to look one
up by name to re-enqueue it, to unwrap compressed arguments, and to read
per-class history overrides.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import JobClassNotFoundError
from .serialization import COMPRESSED_KEY, is_compressed, uncompress_payload

logger = logging.getLogger(__name__)


@dataclass
class JobClass:
    """Registry entry for one job class.

    ``enqueue`` may be a plain function or a coroutine function. A class
    supports compressed arguments only when ``decompress`` is set.
    """
    name: str
    enqueue: Callable[..., Any] | None = None
    decompress: Callable[[Any], list[Any]] | None = None
    is_compressed: Callable[[list[Any]], bool] | None = None
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def supports_compression(self) -> bool:
        return self.decompress is not None

    def compressed(self, args: list[Any]) -> bool:
        check = self.is_compressed or is_compressed
        return bool(check(args))

    def uncompressed_args(self, args: list[Any]) -> list[Any]:
        """Unwrap ``args`` if this class compresses them, else pass through."""
        if not self.supports_compression or not self.compressed(args):
            return args
        envelope = args[0] if args and isinstance(args[0], dict) else {}
        payload = envelope.get(COMPRESSED_KEY)
        if not isinstance(payload, (str, bytes)):
            return args
        return self.decompress(payload)

    async def submit(self, *args: Any) -> Any:
        """Hand ``args`` to the execution engine's enqueue function."""
        if self.enqueue is None:
            raise JobClassNotFoundError(self.name)
        result = self.enqueue(*args)
        if inspect.isawaitable(result):
            result = await result
        return result


class JobClassRegistry:
    """Mapping from class-name string to :class:`JobClass`."""

    def __init__(self):
        self._classes: dict[str, JobClass] = {}

    def register(self, job_class: JobClass) -> JobClassRegistry:
        """Register a job class.

        Returns:
            Self for chaining

        Raises:
            ValueError: If a class with the same name is already registered
        """
        if job_class.name in self._classes:
            raise ValueError(f"Job class '{job_class.name}' is already registered")
        self._classes[job_class.name] = job_class
        logger.debug(f"Registered job class: {job_class.name}")
        return self

    def add(
        self,
        name: str,
        enqueue: Callable[..., Any] | None = None,
        *,
        compressible: bool = False,
        **config: Any,
    ) -> JobClass:
        """Shorthand for registering a class; ``compressible`` wires the stock codec."""
        job_class = JobClass(
            name=name,
            enqueue=enqueue,
            decompress=uncompress_payload if compressible else None,
            config=dict(config),
        )
        self.register(job_class)
        return job_class

    def unregister(self, name: str) -> bool:
        if name in self._classes:
            del self._classes[name]
            logger.debug(f"Unregistered job class: {name}")
            return True
        return False

    def get(self, name: str) -> JobClass | None:
        return self._classes.get(name)

    def require(self, name: str) -> JobClass:
        job_class = self._classes.get(name)
        if job_class is None:
            raise JobClassNotFoundError(name)
        return job_class

    def names(self) -> list[str]:
        return sorted(self._classes)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __len__(self) -> int:
        return len(self._classes)


__all__ = [
    "JobClass",
    "JobClassRegistry",
]
