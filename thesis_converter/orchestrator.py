"""Batch orchestration: list a collection, convert it batch by batch."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable

from tqdm import tqdm

from .metadata import FirestoreStore
from .models import TaskRecord
from .utils import DEFAULT_MAX_WORKERS, partition

log = logging.getLogger(__name__)


class BatchOrchestrator:
    """Runs one conversion task per document on a bounded worker pool.

    Batches run strictly one after another: every task of a batch finishes
    (converted, skipped or out of retries) before the next batch is
    submitted. A failing document never stops its siblings or later batches.

    Args:
        store: Metadata store used to list the collection.
        task_factory: Builds a task with a ``run() -> TaskRecord`` method
            from a document reference.
        collection_id: Collection to convert.
        batch_size: Documents per batch.
        max_workers: Worker pool width.
    """

    def __init__(
        self,
        store: FirestoreStore,
        task_factory: Callable[[Any], Any],
        collection_id: str,
        batch_size: int,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._store = store
        self._task_factory = task_factory
        self._collection_id = collection_id
        self._batch_size = batch_size
        self._max_workers = max_workers

    def convert_documents(self) -> list[TaskRecord]:
        refs = self._store.list_documents(self._collection_id)
        batches = partition(refs, self._batch_size)
        log.info(
            "Converting %s documents in %s batches of up to %s (%s workers)",
            len(refs),
            len(batches),
            self._batch_size,
            self._max_workers,
        )

        records: list[TaskRecord] = []
        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="convert",
        ) as executor:
            for index, batch in enumerate(tqdm(batches, desc="Batches"), start=1):
                t0 = time.perf_counter()
                batch_records = self.convert_batch(executor, batch)
                records.extend(batch_records)
                log.info(
                    "Batch %s/%s: %s",
                    index,
                    len(batches),
                    summarize(batch_records),
                )
                log.debug("Batch %s took %.2fs", index, time.perf_counter() - t0)
        return records

    def convert_batch(self, executor: Executor, batch: list[Any]) -> list[TaskRecord]:
        """Submit every task of *batch* and wait for all of them."""
        futures = [executor.submit(self._task_factory(ref).run) for ref in batch]
        return [future.result() for future in futures]


def summarize(records: list[TaskRecord]) -> str:
    """One-line ``success/skipped/error`` count for log output."""
    counts = {"success": 0, "skipped": 0, "error": 0}
    for record in records:
        counts[record.status] = counts.get(record.status, 0) + 1
    return ", ".join(f"{count} {status}" for status, count in counts.items())
