from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta

from orderdesk.application import AssignmentManager
from orderdesk.domain import OrderRecord

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    released: list[OrderRecord] = field(default_factory=list)
    reclaimed: list[OrderRecord] = field(default_factory=list)


class ExpiryReconciler:
    """Per-tick pass that frees stale claims and releases scheduled orders."""

    name = "expiry-reconciler"

    def __init__(self, manager: AssignmentManager, max_claim_age: timedelta) -> None:
        if max_claim_age <= timedelta(0):
            raise ValueError("max_claim_age must be positive")
        self._manager = manager
        self._max_claim_age = max_claim_age

    @property
    def max_claim_age(self) -> timedelta:
        return self._max_claim_age

    async def run_once(self) -> ReconcileSummary:
        summary = ReconcileSummary()
        summary.released = self._manager.release_scheduled()
        for record in summary.released:
            logger.info("Scheduled order %s is now available", record.order_id)

        summary.reclaimed = self._manager.reclaim_expired(self._max_claim_age)
        for record in summary.reclaimed:
            logger.info(
                "Order %s claim exceeded %s, returned to available orders",
                record.order_id,
                self._max_claim_age,
            )
        return summary
