from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from orderdesk.domain import CustomerContact, ExternalOrder

SCHEDULED_FOR_META_KEY = "scheduled_for"


class BillingPayload(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


class MetaDataItem(BaseModel):
    id: int | None = None
    key: str
    value: Any = None


class WooCommerceOrderPayload(BaseModel):
    id: int
    status: str
    date_created_gmt: datetime | None = None
    date_modified_gmt: datetime | None = None
    billing: BillingPayload = Field(default_factory=BillingPayload)
    meta_data: list[MetaDataItem] = Field(default_factory=list)

    def meta_value(self, key: str) -> Any:
        for item in self.meta_data:
            if item.key == key:
                return item.value
        return None

    def scheduled_for(self) -> datetime | None:
        raw = self.meta_value(SCHEDULED_FOR_META_KEY)
        if not raw:
            return None
        try:
            value = datetime.fromisoformat(str(raw))
        except ValueError:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def to_external_order(self) -> ExternalOrder:
        modified = self.date_modified_gmt or self.date_created_gmt
        return ExternalOrder(
            order_id=self.id,
            status=self.status,
            customer_contact=CustomerContact(
                first_name=self.billing.first_name,
                last_name=self.billing.last_name,
                email=self.billing.email,
                phone=self.billing.phone,
            ),
            scheduled_for=self.scheduled_for(),
            modified_marker=f"{self.status}@{modified.isoformat()}" if modified else self.status,
        )


class EmployeeLogin(BaseModel):
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)
    ext: str | None = None
