from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from orderdesk.application import AssignmentManager, utc_now
from orderdesk.application.assignments import Clock
from orderdesk.domain import ExternalMeta, ExternalOrder, OrderRecord, OrderState
from orderdesk.infrastructure import ExternalOrderSource, ExternalSyncError, OrderStore

logger = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    ingested: list[int] = field(default_factory=list)
    reprocessed: list[int] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class ExternalSyncAdapter:
    """Keeps the local pool in step with the external system of record.

    Each tick ingests newly created orders and pushes cancelled orders back to
    processing upstream, once per order. Cancelled orders the pool has never
    seen are not stored; once moved back upstream they arrive through the
    regular new-order fetch. Calls to the source run in a worker thread and
    never while a store lock is held; a failing call is logged and retried on
    the next tick.
    """

    name = "external-sync"

    def __init__(
        self,
        store: OrderStore,
        manager: AssignmentManager,
        source: ExternalOrderSource,
        *,
        clock: Clock = utc_now,
        alert_threshold: int = 5,
    ) -> None:
        self._store = store
        self._manager = manager
        self._source = source
        self._clock = clock
        self._alert_threshold = max(1, alert_threshold)
        self._consecutive_failures = 0
        self._reprocess_lock = asyncio.Lock()
        # unknown ids already moved back, waiting for the new-order fetch
        self._moved_back: set[int] = set()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _build_record(self, order: ExternalOrder) -> OrderRecord:
        now = self._clock()
        state = OrderState.AVAILABLE
        if order.scheduled_for is not None and order.scheduled_for > now:
            state = OrderState.SCHEDULED
        return OrderRecord(
            order_id=order.order_id,
            state=state,
            customer_contact=order.customer_contact,
            external_meta=ExternalMeta(
                source_status=order.status,
                modified_marker=order.modified_marker,
                ingested_at=now,
                reprocessed=order.order_id in self._moved_back,
            ),
            scheduled_for=order.scheduled_for,
        )

    def _ingest(self, orders: Sequence[ExternalOrder]) -> list[int]:
        inserted: list[int] = []
        for order in orders:
            if self._store.upsert(self._build_record(order)):
                inserted.append(order.order_id)
                self._moved_back.discard(order.order_id)
        if inserted:
            logger.info("Ingested %d new order(s): %s", len(inserted), inserted)
        return inserted

    def _needs_move_back(self, order_id: int) -> bool:
        record = self._store.get(order_id)
        if record is None:
            return order_id not in self._moved_back
        return not record.external_meta.reprocessed

    def _record_failure(self, summary: SyncSummary, step: str, exc: Exception) -> None:
        summary.failures.append(step)
        logger.warning("External sync step %s failed: %s", step, exc)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def ingest_new_orders(self, summary: SyncSummary | None = None) -> SyncSummary:
        summary = summary or SyncSummary()
        try:
            orders = await asyncio.to_thread(self._source.fetch_new_orders)
        except ExternalSyncError as exc:
            self._record_failure(summary, "fetch_new_orders", exc)
            return summary
        summary.ingested.extend(self._ingest(orders))
        return summary

    async def reprocess_cancelled(self, summary: SyncSummary | None = None) -> SyncSummary:
        summary = summary or SyncSummary()
        async with self._reprocess_lock:
            try:
                orders = await asyncio.to_thread(self._source.fetch_cancelled_orders)
            except ExternalSyncError as exc:
                self._record_failure(summary, "fetch_cancelled_orders", exc)
                return summary

            for order in orders:
                if not self._needs_move_back(order.order_id):
                    continue
                try:
                    moved = await asyncio.to_thread(self._source.mark_moved_to_processing, order.order_id)
                except ExternalSyncError as exc:
                    self._record_failure(summary, f"mark_moved_to_processing:{order.order_id}", exc)
                    continue
                if not moved:
                    summary.failures.append(f"mark_moved_to_processing:{order.order_id}")
                    logger.warning("Order %s was not moved back to processing", order.order_id)
                    continue

                if self._store.get(order.order_id) is None:
                    self._moved_back.add(order.order_id)
                elif not self._manager.mark_reprocessed(order.order_id):
                    continue
                summary.reprocessed.append(order.order_id)
                logger.info("Cancelled order %s moved back to processing", order.order_id)
        return summary

    async def run_once(self) -> SyncSummary:
        summary = SyncSummary()
        await self.ingest_new_orders(summary)
        await self.reprocess_cancelled(summary)

        if summary.ok:
            if self._consecutive_failures:
                logger.info("External sync recovered after %d failing tick(s)", self._consecutive_failures)
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
            if self._consecutive_failures >= self._alert_threshold:
                logger.error(
                    "External sync has failed %d tick(s) in a row: %s",
                    self._consecutive_failures,
                    ", ".join(summary.failures),
                )
        return summary
