"""Hooks for the external order system of record.

The sync worker only talks to the system of record through the
:class:`ExternalOrderSource` contract. Deployments without a configured store
fall back to :class:`NoOpOrderSource`, which reports no work, so the polling
loop can run unchanged in development and tests.
"""
from __future__ import annotations

from typing import Protocol, Sequence

from orderdesk.domain import ExternalOrder


class ExternalSyncError(RuntimeError):
    """Raised when the system of record cannot be reached or answers badly."""


class ExternalOrderSource(Protocol):
    """Contract for system-of-record integrations."""

    def fetch_new_orders(self) -> Sequence[ExternalOrder]:
        """Return orders that are ready to be worked."""

    def fetch_cancelled_orders(self) -> Sequence[ExternalOrder]:
        """Return orders the system of record has marked cancelled."""

    def mark_moved_to_processing(self, order_id: int) -> bool:
        """Move a cancelled order back to processing upstream."""


class NoOpOrderSource:
    """Fallback source used when no system of record is configured."""

    def fetch_new_orders(self) -> Sequence[ExternalOrder]:  # pragma: no cover - trivial
        return []

    def fetch_cancelled_orders(self) -> Sequence[ExternalOrder]:  # pragma: no cover - trivial
        return []

    def mark_moved_to_processing(self, order_id: int) -> bool:  # pragma: no cover - trivial
        return False
