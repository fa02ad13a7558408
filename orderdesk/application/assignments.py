"""Application service for claiming and resolving orders.

Request-triggered operations return a :class:`TransitionOutcome` instead of
raising; a lost claim race is an ordinary result. The check and the write for
a single order always happen inside one :meth:`OrderStore.mutate` call.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from orderdesk.domain import OrderRecord, OrderState
from orderdesk.infrastructure import OrderStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

EXPIRED_REASON = "expired"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FailureKind(str, Enum):
    CONFLICT = "conflict"
    NOT_FOUND_OR_NOT_OWNED = "not_found_or_not_owned"
    INVALID_ARGUMENT = "invalid_argument"


@dataclass(frozen=True, slots=True)
class TransitionOutcome:
    """Result of a single transition attempt."""

    order_id: int
    ok: bool
    kind: FailureKind | None = None
    record: OrderRecord | None = None
    message: str = ""

    @classmethod
    def success(cls, record: OrderRecord, message: str) -> "TransitionOutcome":
        return cls(order_id=record.order_id, ok=True, record=record, message=message)

    @classmethod
    def failure(cls, order_id: int, kind: FailureKind, message: str) -> "TransitionOutcome":
        return cls(order_id=order_id, ok=False, kind=kind, message=message)


class AssignmentManager:
    """Coordinates the order lifecycle on top of an :class:`OrderStore`."""

    def __init__(self, store: OrderStore, *, clock: Clock = utc_now) -> None:
        self._store = store
        self._clock = clock

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _release(record: OrderRecord, reason: str) -> OrderRecord:
        return replace(
            record,
            state=OrderState.AVAILABLE,
            owner=None,
            claimed_at=None,
            last_reason=reason,
        )

    def _log(self, action: str, caller: str, outcome: TransitionOutcome) -> TransitionOutcome:
        if outcome.ok:
            logger.info("%s order %s by %s: ok", action, outcome.order_id, caller)
        else:
            logger.info(
                "%s order %s by %s: %s (%s)",
                action,
                outcome.order_id,
                caller,
                outcome.kind.value if outcome.kind else "failed",
                outcome.message,
            )
        return outcome

    def _release_owned(self, action: str, order_id: int, caller: str, reason: str) -> TransitionOutcome:
        reason = (reason or "").strip()
        if not reason:
            outcome = TransitionOutcome.failure(
                order_id, FailureKind.INVALID_ARGUMENT, "a reason is required"
            )
            return self._log(action, caller, outcome)

        def apply(current: OrderRecord | None) -> tuple[OrderRecord | None, TransitionOutcome]:
            if current is None or current.state is not OrderState.ASSIGNED or current.owner != caller:
                return None, TransitionOutcome.failure(
                    order_id,
                    FailureKind.NOT_FOUND_OR_NOT_OWNED,
                    "order is not assigned to caller",
                )
            updated = self._release(current, reason)
            return updated, TransitionOutcome.success(updated, "order returned to available orders")

        outcome = self._store.mutate(order_id, apply)
        if outcome.ok:
            logger.info("%s order %s by %s, reason: %s", action, order_id, caller, reason)
        return self._log(action, caller, outcome)

    # ------------------------------------------------------------------
    # request-triggered transitions
    # ------------------------------------------------------------------
    def claim(self, order_id: int, caller: str) -> TransitionOutcome:
        now = self._clock()

        def apply(current: OrderRecord | None) -> tuple[OrderRecord | None, TransitionOutcome]:
            if current is None:
                return None, TransitionOutcome.failure(
                    order_id, FailureKind.NOT_FOUND_OR_NOT_OWNED, "order not found"
                )
            if current.state is OrderState.ASSIGNED:
                return None, TransitionOutcome.failure(
                    order_id, FailureKind.CONFLICT, "order already assigned to another user"
                )
            if current.state is not OrderState.AVAILABLE:
                return None, TransitionOutcome.failure(
                    order_id,
                    FailureKind.NOT_FOUND_OR_NOT_OWNED,
                    f"order is {current.state.value} and cannot be claimed",
                )
            updated = replace(current, state=OrderState.ASSIGNED, owner=caller, claimed_at=now)
            return updated, TransitionOutcome.success(updated, "order assigned")

        return self._log("claim", caller, self._store.mutate(order_id, apply))

    def complete(self, order_id: int, caller: str) -> TransitionOutcome:
        now = self._clock()

        def apply(current: OrderRecord | None) -> tuple[OrderRecord | None, TransitionOutcome]:
            if current is None or current.state is not OrderState.ASSIGNED or current.owner != caller:
                return None, TransitionOutcome.failure(
                    order_id, FailureKind.NOT_FOUND_OR_NOT_OWNED, "order not found in assigned list"
                )
            updated = replace(
                current,
                state=OrderState.COMPLETED,
                owner=None,
                claimed_at=None,
                completed_at=now,
            )
            return updated, TransitionOutcome.success(updated, "order marked as completed")

        return self._log("complete", caller, self._store.mutate(order_id, apply))

    def cancel(self, order_id: int, caller: str, reason: str) -> TransitionOutcome:
        return self._release_owned("cancel", order_id, caller, reason)

    def manual_return(self, order_id: int, caller: str, reason: str) -> TransitionOutcome:
        return self._release_owned("return", order_id, caller, reason)

    # ------------------------------------------------------------------
    # reconciliation
    # ------------------------------------------------------------------
    def reclaim_expired(self, max_claim_age: timedelta) -> list[OrderRecord]:
        """Return stale claims to the pool and report which ones moved."""

        now = self._clock()
        reclaimed: list[OrderRecord] = []
        for candidate in self._store.list_by_state(OrderState.ASSIGNED):
            if candidate.claimed_at is None or now - candidate.claimed_at <= max_claim_age:
                continue

            def apply(current: OrderRecord | None) -> tuple[OrderRecord | None, OrderRecord | None]:
                # state may have moved on since the scan
                if (
                    current is None
                    or current.state is not OrderState.ASSIGNED
                    or current.claimed_at is None
                    or now - current.claimed_at <= max_claim_age
                ):
                    return None, None
                updated = self._release(current, EXPIRED_REASON)
                return updated, updated

            updated = self._store.mutate(candidate.order_id, apply)
            if updated is not None:
                reclaimed.append(updated)
        return reclaimed

    def release_scheduled(self) -> list[OrderRecord]:
        now = self._clock()
        released: list[OrderRecord] = []
        for candidate in self._store.list_by_state(OrderState.SCHEDULED):
            if candidate.scheduled_for is not None and candidate.scheduled_for > now:
                continue

            def apply(current: OrderRecord | None) -> tuple[OrderRecord | None, OrderRecord | None]:
                if current is None or current.state is not OrderState.SCHEDULED:
                    return None, None
                if current.scheduled_for is not None and current.scheduled_for > now:
                    return None, None
                updated = replace(current, state=OrderState.AVAILABLE)
                return updated, updated

            updated = self._store.mutate(candidate.order_id, apply)
            if updated is not None:
                released.append(updated)
        return released

    def mark_reprocessed(self, order_id: int) -> bool:
        def apply(current: OrderRecord | None) -> tuple[OrderRecord | None, bool]:
            if current is None or current.external_meta.reprocessed:
                return None, False
            meta = replace(current.external_meta, reprocessed=True)
            return replace(current, external_meta=meta), True

        return self._store.mutate(order_id, apply)

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    def get(self, order_id: int) -> OrderRecord | None:
        return self._store.get(order_id)

    def list_scheduled(self) -> list[OrderRecord]:
        return self._store.list_by_state(OrderState.SCHEDULED)

    def list_available(self) -> list[OrderRecord]:
        return self._store.list_by_state(OrderState.AVAILABLE)

    def list_assigned(self, caller: str) -> list[OrderRecord]:
        return self._store.list_by_owner(caller)

    def list_completed(self) -> list[OrderRecord]:
        return self._store.list_by_state(OrderState.COMPLETED)
