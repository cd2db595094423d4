"""
Bulk maintenance of the ledger.

These operations work on keys directly and bypass per-job transitions, so
they do not touch failure counters. Counters and sets deleted here are
recreated lazily by the next ``start``; missing counters read as zero.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ledger import HistoryLedger


class Cleaner:
    """Purges and repairs history for whole classes."""

    def __init__(self, ledger: HistoryLedger):
        self.ledger = ledger
        self.store = ledger.store
        self.keys = ledger.keys

    async def purge_class(self, class_name: str) -> int:
        """Remove every record, set and counter of ``class_name``.

        Returns:
            Number of keys deleted.
        """
        history = self.ledger.history(class_name)
        doomed: set[str] = {
            history.max_running_key,
            history.total_failed_key,
        }

        for job_list in (history.running_jobs, history.finished_jobs, history.linear_jobs):
            doomed.add(job_list.key)
            for job_id in await job_list.all_job_ids():
                doomed.add(self.keys.job_key(class_name, job_id))

        doomed.update(await self._owned_keys(class_name))

        deleted = await self.store.delete(*sorted(doomed))
        await self.ledger.class_list().remove_class(class_name)

        self.ledger.logger.info(
            f"Purged history for {class_name}",
            class_name=class_name,
            deleted_keys=deleted,
        )
        return deleted

    async def purge_all_jobs(self) -> int:
        """Remove all history for every class, including unlisted leftovers."""
        deleted = 0
        for class_name in await self.ledger.class_list().class_names():
            deleted += await self.purge_class(class_name)

        leftovers = await self.store.scan_keys(self.keys.all_pattern())
        if leftovers:
            deleted += await self.store.delete(*leftovers)

        self.ledger.logger.info("Purged all job history", deleted_keys=deleted)
        return deleted

    async def fixup_class_keys(self, class_name: str) -> list[str]:
        """Purge records of ``class_name`` that no job set tracks any more.

        Returns:
            Ids of the purged jobs.
        """
        purged: list[str] = []
        for key in await self._owned_keys(class_name):
            job_id = self.keys.job_id_from_key(class_name, key)
            if job_id is None:
                continue
            if await self.ledger.job(class_name, job_id).safe_purge():
                purged.append(job_id)

        if purged:
            self.ledger.logger.warning(
                f"Removed {len(purged)} orphaned {class_name} records",
                class_name=class_name,
                job_ids=purged,
            )
        return purged

    async def fixup_all_keys(self) -> dict[str, list[str]]:
        results: dict[str, list[str]] = {}
        for class_name in await self.ledger.class_list().class_names():
            purged = await self.fixup_class_keys(class_name)
            if purged:
                results[class_name] = purged
        return results

    async def purge_invalid_classes(self) -> list[str]:
        """Purge history of listed classes the registry no longer knows."""
        invalid = [
            class_name
            for class_name in await self.ledger.class_list().class_names()
            if class_name not in self.ledger.registry
        ]
        for class_name in invalid:
            await self.purge_class(class_name)
        return invalid

    async def _owned_keys(self, class_name: str) -> list[str]:
        """Keys under ``class_name``'s prefix that belong to it.

        Class names may contain dots, so ``<prefix>.a.*`` also matches keys of
        a class ``a.b``; those are excluded.
        """
        keys = await self.store.scan_keys(self.keys.class_pattern(class_name))
        nested = [
            f"{self.keys.class_key(other)}."
            for other in await self.ledger.class_list().class_names()
            if other != class_name and other.startswith(f"{class_name}.")
        ]
        return [key for key in keys if not any(key.startswith(prefix) for prefix in nested)]


__all__ = ["Cleaner"]
