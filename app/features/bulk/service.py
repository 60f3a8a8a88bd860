"""Bulk import and bulk delete orchestration.

Flow per call:
    ping store -> split into sub-batches -> run each sub-batch
    (concurrently within, sequentially across) -> accumulate -> BulkResult

CRITICAL: Per-record failures never abort the batch. The only call-level
failure is an unreachable store at the start, raised as
``StoreUnavailableError`` before any record is attempted.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Literal, TypeVar

import structlog

from app.core.config import Settings, get_settings
from app.core.exceptions import StoreUnavailableError
from app.core.logging import get_logger
from app.features.bulk.executor import DeleteExecutor, UpsertExecutor
from app.features.bulk.results import BulkResult, RecordOutcome
from app.features.bulk.splitter import split_batches
from app.features.catalog.store import Collection, DocumentStore, KeyPreloadingStore

logger = get_logger(__name__)

T = TypeVar("T")


def clamp_batch_size(batch_size: int | None, settings: Settings) -> int:
    """Resolve the sub-batch size for an import.

    Args:
        batch_size: Requested size, or None for the default.
        settings: Application settings with default and maximum.

    Returns:
        Size within [1, bulk_max_batch_size].
    """
    if batch_size is None:
        return settings.bulk_default_batch_size
    return max(1, min(batch_size, settings.bulk_max_batch_size))


async def process_in_batches(
    items: Sequence[T],
    batch_size: int,
    execute: Callable[[T, int], Awaitable[RecordOutcome]],
    cancelled: Callable[[T, int], RecordOutcome],
    *,
    concurrent: bool,
    deadline: float | None,
    clock: Callable[[], float] = time.monotonic,
) -> list[RecordOutcome]:
    """Run ``execute`` for every item, one sub-batch at a time.

    Within a sub-batch, items run concurrently (at most ``batch_size`` store
    calls in flight) when ``concurrent`` is set, otherwise one at a time.
    Results are collected after fan-in, so the returned list is in original
    input order either way.

    Once ``deadline`` (a ``clock()`` value) has passed, no further
    sub-batch is started and every remaining item gets a cancelled outcome.

    Args:
        items: Records or identifiers in submission order.
        batch_size: Maximum sub-batch size.
        execute: Per-item executor, must not raise for per-item failures.
        cancelled: Builds the outcome for an item that is never attempted.
        concurrent: Fan out within each sub-batch.
        deadline: Monotonic deadline, or None for no deadline.
        clock: Monotonic time source the deadline is measured against.

    Returns:
        Exactly one outcome per item, in input order.
    """
    outcomes: list[RecordOutcome] = []
    sub_batches = split_batches(items, batch_size)

    for sub_batch in sub_batches:
        if deadline is not None and clock() >= deadline:
            remaining = len(items) - sub_batch.offset
            logger.warning(
                "bulk.deadline_exceeded",
                sub_batch=sub_batch.number + 1,
                sub_batch_count=len(sub_batches),
                unprocessed=remaining,
            )
            outcomes.extend(
                cancelled(item, index)
                for index, item in enumerate(items[sub_batch.offset :], start=sub_batch.offset)
            )
            break

        start_time = time.perf_counter()
        indexed = list(enumerate(sub_batch.items, start=sub_batch.offset))

        if concurrent:
            results = await asyncio.gather(*(execute(item, index) for index, item in indexed))
            outcomes.extend(results)
        else:
            for index, item in indexed:
                outcomes.append(await execute(item, index))

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "bulk.sub_batch_completed",
            sub_batch=sub_batch.number + 1,
            sub_batch_count=len(sub_batches),
            size=len(sub_batch.items),
            duration_ms=round(duration_ms, 2),
        )

    return outcomes


class _BulkOrchestrator:
    """Shared plumbing for import and delete orchestrators."""

    operation: Literal["import", "delete"]

    def __init__(
        self,
        collection: Collection,
        store: DocumentStore,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.collection = collection
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock

    async def _ensure_store_available(self) -> None:
        try:
            await self.store.ping()
        except Exception as e:
            logger.error(
                "bulk.store_unavailable",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise StoreUnavailableError(
                message=f"Cannot run bulk {self.operation}: document store is unavailable",
                details={"collection": self.collection.value},
            ) from e

    async def _before_batches(self, items: Sequence[Any]) -> None:
        """Hook run once the store is known to be reachable."""

    def _deadline(self, timeout_seconds: float | None) -> float | None:
        timeout = self.settings.bulk_timeout_seconds if timeout_seconds is None else timeout_seconds
        if timeout <= 0:
            return None
        return self.clock() + timeout

    async def _run(
        self,
        items: Sequence[Any],
        batch_size: int,
        execute: Callable[[Any, int], Awaitable[RecordOutcome]],
        cancelled: Callable[[Any, int], RecordOutcome],
        timeout_seconds: float | None,
    ) -> BulkResult:
        start_time = time.perf_counter()

        with structlog.contextvars.bound_contextvars(
            operation=self.operation,
            collection=self.collection.value,
        ):
            logger.info(
                "bulk.run_started",
                total=len(items),
                batch_size=batch_size,
                concurrent=self.settings.bulk_concurrent,
            )

            outcomes: list[RecordOutcome] = []
            if items:
                await self._ensure_store_available()
                await self._before_batches(items)
                outcomes = await process_in_batches(
                    items,
                    batch_size,
                    execute,
                    cancelled,
                    concurrent=self.settings.bulk_concurrent,
                    deadline=self._deadline(timeout_seconds),
                    clock=self.clock,
                )

            processing_time_ms = int((time.perf_counter() - start_time) * 1000)
            result = BulkResult.from_outcomes(self.operation, outcomes, processing_time_ms)

            logger.info(
                "bulk.run_completed",
                total=result.total,
                created=result.created,
                updated=result.updated,
                deleted=result.deleted,
                failed=result.failed,
                processing_time_ms=result.processing_time_ms,
            )

        return result


class BulkImportOrchestrator(_BulkOrchestrator):
    """Upsert a batch of records into one collection."""

    operation = "import"

    async def _before_batches(self, items: Sequence[Any]) -> None:
        if not isinstance(self.store, KeyPreloadingStore):
            return
        try:
            await self.store.preload(items)
        except Exception as e:
            # Keys are then resolved per record inside each store call
            logger.warning(
                "bulk.key_preload_failed",
                error=str(e),
                error_type=type(e).__name__,
            )

    async def run(
        self,
        records: Sequence[dict[str, Any]],
        batch_size: int | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> BulkResult:
        """Import records with per-record failure isolation.

        Args:
            records: Raw records in submission order.
            batch_size: Requested sub-batch size (clamped to [1, 100], default 50).
            timeout_seconds: Override for the configured bulk deadline.

        Returns:
            Aggregate result with created/updated/failed counts.

        Raises:
            StoreUnavailableError: If the store cannot be reached at all.
        """
        executor = UpsertExecutor(self.collection, self.store)
        return await self._run(
            records,
            clamp_batch_size(batch_size, self.settings),
            executor.execute,
            executor.cancelled,
            timeout_seconds,
        )


class BulkDeleteOrchestrator(_BulkOrchestrator):
    """Delete a batch of documents from one collection by identifier."""

    operation = "delete"

    async def run(
        self,
        ids: Sequence[str],
        *,
        timeout_seconds: float | None = None,
    ) -> BulkResult:
        """Delete documents with per-identifier failure isolation.

        Args:
            ids: Identifiers in submission order.
            timeout_seconds: Override for the configured bulk deadline.

        Returns:
            Aggregate result with deleted/failed counts.

        Raises:
            StoreUnavailableError: If the store cannot be reached at all.
        """
        executor = DeleteExecutor(self.collection, self.store)
        return await self._run(
            ids,
            self.settings.bulk_delete_batch_size,
            executor.execute,
            executor.cancelled,
            timeout_seconds,
        )
