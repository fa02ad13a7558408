"""Domain layer definitions."""

from .orders import CustomerContact, ExternalMeta, ExternalOrder, OrderRecord, OrderState

__all__ = [
    "CustomerContact",
    "ExternalMeta",
    "ExternalOrder",
    "OrderRecord",
    "OrderState",
]
