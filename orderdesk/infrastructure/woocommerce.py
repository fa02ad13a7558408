"""Integration with the WooCommerce REST API (v2 orders endpoint)."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from orderdesk.core.schema import WooCommerceOrderPayload
from orderdesk.domain import ExternalOrder

from .external import ExternalSyncError

logger = logging.getLogger(__name__)


class WooCommerceClient:
    """Client for the order endpoints of a WooCommerce store."""

    NEW_ORDER_STATUS = "processing"
    CANCELLED_ORDER_STATUS = "cancelled"

    def __init__(
        self,
        api_base: str,
        consumer_key: str,
        consumer_secret: str,
        *,
        page_size: int = 100,
        max_pages: int = 50,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")
        if page_size < 1:
            raise ValueError("page_size must be positive")
        if max_pages < 1:
            raise ValueError("max_pages must be positive")

        self._api_base = api_base if api_base.endswith("/") else f"{api_base}/"
        self._auth = httpx.BasicAuth(consumer_key, consumer_secret)
        self._page_size = page_size
        self._max_pages = max_pages
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        return f"{self._api_base}{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, self._url(path), auth=self._auth, **kwargs)
        except httpx.HTTPError as exc:
            raise ExternalSyncError(f"{method} {path} failed: {exc}") from exc

    @staticmethod
    def _parse_orders(items: Any) -> list[ExternalOrder]:
        if not isinstance(items, list):
            raise ExternalSyncError("orders endpoint did not return a list")

        orders: list[ExternalOrder] = []
        for item in items:
            try:
                payload = WooCommerceOrderPayload.model_validate(item)
            except ValidationError as exc:
                order_id = item.get("id") if isinstance(item, dict) else None
                logger.warning("Skipping malformed order %s: %s", order_id, exc.errors()[:1])
                continue
            orders.append(payload.to_external_order())
        return orders

    @staticmethod
    def _total_pages(response: httpx.Response) -> int | None:
        value = response.headers.get("X-WP-TotalPages")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring unreadable X-WP-TotalPages header %r", value)
            return None

    def _fetch_by_status(self, status: str) -> list[ExternalOrder]:
        orders: list[ExternalOrder] = []
        for page in range(1, self._max_pages + 1):
            response = self._request(
                "GET",
                "orders",
                params={"status": status, "per_page": self._page_size, "page": page},
            )
            if response.is_error:
                raise ExternalSyncError(f"listing {status} orders returned HTTP {response.status_code}")
            try:
                items = response.json()
            except ValueError as exc:
                raise ExternalSyncError(f"listing {status} orders returned invalid JSON") from exc

            orders.extend(self._parse_orders(items))
            total_pages = self._total_pages(response)
            if len(items) < self._page_size or (total_pages is not None and page >= total_pages):
                return orders

        logger.warning(
            "Stopped listing %s orders at the %d page limit",
            status,
            self._max_pages,
        )
        return orders

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def fetch_new_orders(self) -> list[ExternalOrder]:
        return self._fetch_by_status(self.NEW_ORDER_STATUS)

    def fetch_cancelled_orders(self) -> list[ExternalOrder]:
        return self._fetch_by_status(self.CANCELLED_ORDER_STATUS)

    def mark_moved_to_processing(self, order_id: int) -> bool:
        response = self._request("PUT", f"orders/{order_id}", json={"status": self.NEW_ORDER_STATUS})
        if response.is_error:
            logger.warning(
                "Moving order %s back to processing returned HTTP %s", order_id, response.status_code
            )
            return False
        return True

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["WooCommerceClient"]
