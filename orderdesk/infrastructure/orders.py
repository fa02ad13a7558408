"""Infrastructure layer for order state."""
from __future__ import annotations

import threading
from typing import Callable, Protocol, TypeVar

from orderdesk.domain import OrderRecord, OrderState

T = TypeVar("T")

Mutation = Callable[[OrderRecord | None], tuple[OrderRecord | None, T]]


class OrderStore(Protocol):
    """Storage contract for order records."""

    def get(self, order_id: int) -> OrderRecord | None: ...

    def list_by_state(self, state: OrderState) -> list[OrderRecord]: ...

    def list_by_owner(self, owner: str) -> list[OrderRecord]: ...

    def upsert(self, record: OrderRecord) -> bool: ...

    def mutate(self, order_id: int, fn: Mutation[T]) -> T: ...

    def __len__(self) -> int: ...


class InMemoryOrderStore:
    """Thread-safe in-memory table of orders keyed by id.

    Each id has its own lock so that read-modify-write sequences on one order
    never block another. Locks are created by :meth:`upsert` alongside their
    record. The table lock only guards key creation and the snapshots taken
    for enumeration.
    """

    def __init__(self) -> None:
        self._records: dict[int, OrderRecord] = {}
        self._locks: dict[int, threading.Lock] = {}
        self._table_lock = threading.Lock()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _lock_for(self, order_id: int) -> threading.Lock | None:
        # a lock exists exactly when its record does
        with self._table_lock:
            return self._locks.get(order_id)

    def _snapshot(self) -> list[OrderRecord]:
        with self._table_lock:
            records = list(self._records.values())
        records.sort(key=lambda record: record.order_id)
        return records

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get(self, order_id: int) -> OrderRecord | None:
        return self._records.get(order_id)

    def list_by_state(self, state: OrderState) -> list[OrderRecord]:
        return [record for record in self._snapshot() if record.state is state]

    def list_by_owner(self, owner: str) -> list[OrderRecord]:
        return [
            record
            for record in self._snapshot()
            if record.state is OrderState.ASSIGNED and record.owner == owner
        ]

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    def upsert(self, record: OrderRecord) -> bool:
        """Insert ``record`` unless its id is already known."""

        with self._table_lock:
            if record.order_id in self._records:
                return False
            self._locks[record.order_id] = threading.Lock()
            self._records[record.order_id] = record
        return True

    def mutate(self, order_id: int, fn: Mutation[T]) -> T:
        """Apply ``fn`` to the current record while holding its lock.

        ``fn`` returns ``(replacement, result)``; a ``None`` replacement leaves
        the record untouched. An unknown id gets ``fn(None)`` and nothing is
        written or allocated for it.
        """

        lock = self._lock_for(order_id)
        if lock is None:
            _, result = fn(None)
            return result

        with lock:
            current = self._records[order_id]
            replacement, result = fn(current)
            if replacement is not None:
                if replacement.order_id != order_id:
                    raise ValueError("a mutation may not change the order id")
                with self._table_lock:
                    self._records[order_id] = replacement
            return result
