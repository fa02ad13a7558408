from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from orderdesk.application import AssignmentManager
from orderdesk.domain import CustomerContact, ExternalMeta, OrderRecord, OrderState
from orderdesk.infrastructure import InMemoryOrderStore


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_record(order_id: int, state: OrderState = OrderState.AVAILABLE, **overrides) -> OrderRecord:
    values = {
        "order_id": order_id,
        "state": state,
        "customer_contact": CustomerContact(first_name="Ada", last_name="Lovelace", email="ada@example.com"),
        "external_meta": ExternalMeta(source_status="processing", modified_marker=f"processing@{order_id}"),
    }
    values.update(overrides)
    return OrderRecord(**values)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture()
def manager(store, clock) -> AssignmentManager:
    return AssignmentManager(store, clock=clock)
