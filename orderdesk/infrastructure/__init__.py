"""Infrastructure layer exports."""

from .employees import EmployeeDirectory
from .external import ExternalOrderSource, ExternalSyncError, NoOpOrderSource
from .orders import InMemoryOrderStore, OrderStore
from .woocommerce import WooCommerceClient

__all__ = [
    "EmployeeDirectory",
    "ExternalOrderSource",
    "ExternalSyncError",
    "InMemoryOrderStore",
    "NoOpOrderSource",
    "OrderStore",
    "WooCommerceClient",
]
