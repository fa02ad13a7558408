from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta

from conftest import make_record
from orderdesk.domain import CustomerContact, ExternalOrder, OrderState
from orderdesk.infrastructure import ExternalSyncError
from orderdesk.workers.sync import ExternalSyncAdapter


class FakeSource:
    def __init__(self) -> None:
        self.new_orders: list[ExternalOrder] = []
        self.cancelled_orders: list[ExternalOrder] = []
        self.fail_new = False
        self.fail_cancelled = False
        self.reject_moves: set[int] = set()
        self.broken_moves: set[int] = set()
        self.moved: list[int] = []

    def fetch_new_orders(self):
        if self.fail_new:
            raise ExternalSyncError("timeout listing orders")
        return list(self.new_orders)

    def fetch_cancelled_orders(self):
        if self.fail_cancelled:
            raise ExternalSyncError("timeout listing cancelled orders")
        return list(self.cancelled_orders)

    def mark_moved_to_processing(self, order_id: int) -> bool:
        if order_id in self.broken_moves:
            raise ExternalSyncError("connection reset")
        if order_id in self.reject_moves:
            return False
        self.moved.append(order_id)
        return True


def _order(order_id: int, status: str = "processing", **kwargs) -> ExternalOrder:
    return ExternalOrder(
        order_id=order_id,
        status=status,
        customer_contact=CustomerContact(first_name="Grace", email=f"{order_id}@example.com"),
        modified_marker=f"{status}@{order_id}",
        **kwargs,
    )


def _adapter(store, manager, clock, source, **kwargs) -> ExternalSyncAdapter:
    return ExternalSyncAdapter(store, manager, source, clock=clock, **kwargs)


def test_new_orders_are_ingested_once(store, manager, clock):
    source = FakeSource()
    source.new_orders = [_order(10), _order(11)]
    adapter = _adapter(store, manager, clock, source)

    first = asyncio.run(adapter.run_once())
    manager.claim(10, "alice")
    second = asyncio.run(adapter.run_once())

    assert first.ingested == [10, 11]
    assert second.ingested == []
    assert len(store) == 2
    record = store.get(10)
    assert record.state is OrderState.ASSIGNED
    assert record.customer_contact.email == "10@example.com"
    assert record.external_meta.source_status == "processing"
    assert record.external_meta.modified_marker == "processing@10"
    assert record.external_meta.ingested_at == clock.now


def test_future_orders_start_scheduled(store, manager, clock):
    source = FakeSource()
    source.new_orders = [
        _order(20, scheduled_for=clock.now + timedelta(days=1)),
        _order(21, scheduled_for=clock.now - timedelta(days=1)),
    ]

    asyncio.run(_adapter(store, manager, clock, source).run_once())

    assert store.get(20).state is OrderState.SCHEDULED
    assert store.get(21).state is OrderState.AVAILABLE


def test_cancelled_orders_are_moved_back_once(store, manager, clock):
    source = FakeSource()
    source.cancelled_orders = [_order(30, status="cancelled")]
    adapter = _adapter(store, manager, clock, source)

    first = asyncio.run(adapter.run_once())
    second = asyncio.run(adapter.run_once())

    assert first.reprocessed == [30]
    assert first.ingested == []
    assert second.reprocessed == []
    assert source.moved == [30]
    assert store.get(30) is None


def test_moved_back_order_can_be_claimed_next_tick(store, manager, clock):
    source = FakeSource()
    source.cancelled_orders = [_order(32, status="cancelled")]
    adapter = _adapter(store, manager, clock, source)

    asyncio.run(adapter.run_once())
    source.new_orders = [_order(32)]
    summary = asyncio.run(adapter.run_once())

    assert summary.ingested == [32]
    assert summary.reprocessed == []
    assert source.moved == [32]
    assert store.get(32).state is OrderState.AVAILABLE
    assert store.get(32).external_meta.reprocessed is True
    assert manager.claim(32, "alice").ok
    assert store.get(32).owner == "alice"


def test_cancelled_order_already_known_keeps_local_state(store, manager, clock):
    store.upsert(make_record(31))
    source = FakeSource()
    source.cancelled_orders = [_order(31, status="cancelled")]
    adapter = _adapter(store, manager, clock, source)

    summary = asyncio.run(adapter.run_once())
    again = asyncio.run(adapter.run_once())

    assert summary.ingested == []
    assert summary.reprocessed == [31]
    assert again.reprocessed == []
    assert source.moved == [31]
    assert store.get(31).state is OrderState.AVAILABLE
    assert store.get(31).external_meta.reprocessed is True


def test_overlapping_reprocess_moves_each_order_once(store, manager, clock):
    class SlowSource(FakeSource):
        def mark_moved_to_processing(self, order_id: int) -> bool:
            time.sleep(0.05)
            return super().mark_moved_to_processing(order_id)

    store.upsert(make_record(33))
    source = SlowSource()
    source.cancelled_orders = [_order(33, status="cancelled"), _order(34, status="cancelled")]
    adapter = _adapter(store, manager, clock, source)

    async def overlap():
        return await asyncio.gather(adapter.reprocess_cancelled(), adapter.reprocess_cancelled())

    first, second = asyncio.run(overlap())

    assert source.moved == [33, 34]
    assert sorted(first.reprocessed + second.reprocessed) == [33, 34]


def test_failing_half_does_not_block_other_half(store, manager, clock, caplog):
    source = FakeSource()
    source.fail_new = True
    source.cancelled_orders = [_order(40, status="cancelled")]
    adapter = _adapter(store, manager, clock, source)

    with caplog.at_level(logging.WARNING, logger="orderdesk"):
        summary = asyncio.run(adapter.run_once())

    assert summary.failures == ["fetch_new_orders"]
    assert summary.reprocessed == [40]
    assert "fetch_new_orders failed" in caplog.text

    source.fail_new = False
    source.fail_cancelled = True
    source.new_orders = [_order(41)]
    summary = asyncio.run(adapter.run_once())

    assert summary.ingested == [41]
    assert summary.failures == ["fetch_cancelled_orders"]


def test_failed_move_is_retried_next_tick(store, manager, clock):
    source = FakeSource()
    source.cancelled_orders = [_order(50, status="cancelled"), _order(51, status="cancelled")]
    source.broken_moves = {50}
    source.reject_moves = {51}
    adapter = _adapter(store, manager, clock, source)

    summary = asyncio.run(adapter.run_once())

    assert summary.reprocessed == []
    assert summary.failures == ["mark_moved_to_processing:50", "mark_moved_to_processing:51"]
    assert source.moved == []

    source.broken_moves = set()
    source.reject_moves = set()
    summary = asyncio.run(adapter.run_once())

    assert summary.reprocessed == [50, 51]
    assert source.moved == [50, 51]


def test_repeated_failures_escalate_and_reset(store, manager, clock, caplog):
    source = FakeSource()
    source.fail_new = True
    adapter = _adapter(store, manager, clock, source, alert_threshold=2)

    with caplog.at_level(logging.WARNING, logger="orderdesk"):
        asyncio.run(adapter.run_once())
        assert not [record for record in caplog.records if record.levelno == logging.ERROR]
        asyncio.run(adapter.run_once())

    assert adapter.consecutive_failures == 2
    assert any(
        record.levelno == logging.ERROR and "failed 2 tick(s) in a row" in record.getMessage()
        for record in caplog.records
    )

    source.fail_new = False
    asyncio.run(adapter.run_once())
    assert adapter.consecutive_failures == 0
