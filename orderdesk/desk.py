"""Construction of an order pool and its background workers."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from orderdesk.application import AssignmentManager, utc_now
from orderdesk.application.assignments import Clock
from orderdesk.config import Settings
from orderdesk.infrastructure import (
    EmployeeDirectory,
    ExternalOrderSource,
    InMemoryOrderStore,
    NoOpOrderSource,
    WooCommerceClient,
)
from orderdesk.workers.reconciler import ExpiryReconciler
from orderdesk.workers.scheduler import PollingScheduler
from orderdesk.workers.sync import ExternalSyncAdapter

logger = logging.getLogger(__name__)


@dataclass
class OrderDesk:
    """All components of one order pool, wired together."""

    store: InMemoryOrderStore
    manager: AssignmentManager
    reconciler: ExpiryReconciler
    sync: ExternalSyncAdapter
    scheduler: PollingScheduler
    employees: EmployeeDirectory


def build_order_desk(
    settings: Settings,
    *,
    source: ExternalOrderSource | None = None,
    employees: EmployeeDirectory | None = None,
    clock: Clock = utc_now,
) -> OrderDesk:
    if source is None:
        if settings.woocommerce_configured:
            source = WooCommerceClient(
                settings.woocommerce_api_base,  # type: ignore[arg-type]
                settings.woocommerce_key,  # type: ignore[arg-type]
                settings.woocommerce_secret,  # type: ignore[arg-type]
            )
        else:
            logger.warning("WooCommerce credentials not configured, external sync is disabled")
            source = NoOpOrderSource()

    if employees is None:
        if settings.employees_file is not None:
            employees = EmployeeDirectory.from_file(settings.employees_file)
        else:
            logger.warning("No employee credentials configured, order routes will reject every caller")
            employees = EmployeeDirectory()

    store = InMemoryOrderStore()
    manager = AssignmentManager(store, clock=clock)
    reconciler = ExpiryReconciler(manager, settings.max_claim_age)
    sync = ExternalSyncAdapter(
        store,
        manager,
        source,
        clock=clock,
        alert_threshold=settings.sync_alert_threshold,
    )
    scheduler = PollingScheduler([sync, reconciler], interval=settings.poll_interval_seconds)
    return OrderDesk(
        store=store,
        manager=manager,
        reconciler=reconciler,
        sync=sync,
        scheduler=scheduler,
        employees=employees,
    )
