"""Domain entities for the order pool."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class OrderState(str, Enum):
    """Lifecycle states of an order held in the pool."""

    SCHEDULED = "scheduled"
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderState.COMPLETED, OrderState.CANCELED)


@dataclass(frozen=True, slots=True)
class CustomerContact:
    """Contact details copied from the system of record; never edited here."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass(frozen=True, slots=True)
class ExternalMeta:
    """Idempotency markers recorded when an order is first ingested."""

    source_status: str
    modified_marker: str | None = None
    ingested_at: datetime | None = None
    reprocessed: bool = False


@dataclass(frozen=True, slots=True)
class ExternalOrder:
    """An order as reported by the external system of record."""

    order_id: int
    status: str
    customer_contact: CustomerContact = field(default_factory=CustomerContact)
    scheduled_for: datetime | None = None
    modified_marker: str | None = None


@dataclass(frozen=True, slots=True)
class OrderRecord:
    """Authoritative local state of a single order.

    Records are immutable; transitions replace the stored record with a new
    one built via :func:`dataclasses.replace`.
    """

    order_id: int
    state: OrderState
    customer_contact: CustomerContact
    external_meta: ExternalMeta
    owner: str | None = None
    claimed_at: datetime | None = None
    last_reason: str | None = None
    scheduled_for: datetime | None = None
    completed_at: datetime | None = None
