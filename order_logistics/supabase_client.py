"""Supabase REST client for reading order snapshots and writing results back."""

import logging
import os

import requests
from dotenv import load_dotenv

from order_logistics.base_client import ConflictError, OrderStoreClient
from order_logistics.models import Order, OrderStatus, ShippingType, StorageDrawer
from order_logistics.pricing import PricingConfig

load_dotenv()

logger = logging.getLogger(__name__)

REST_PATH = "rest/v1"

# PostgREST caps a single response at its max-rows setting (1000 by default).
PAGE_SIZE = 1000

ORDER_FIELDS = ",".join([
    "id", "local_order_id", "client_id", "store_id", "status", "shipment_id",
    "price_in_mru", "commission", "shipping_cost", "local_delivery_cost",
    "amount_paid", "is_delivery_fee_prepaid", "weight", "storage_location",
    "shipping_type", "origin_center", "driver_id", "driver_name",
    "delivery_run_id", "withdrawal_date",
])


def order_from_row(row: dict) -> Order:
    """Map an ``Orders`` table row to an Order.

    Raises:
        ValueError: The row carries an unknown status.
    """
    return Order(
        id=str(row["id"]),
        client_id=str(row.get("client_id") or ""),
        store_id=str(row.get("store_id") or ""),
        status=OrderStatus(row.get("status") or OrderStatus.NEW.value),
        local_order_id=row.get("local_order_id") or "",
        shipment_id=row.get("shipment_id"),
        price_in_mru=row.get("price_in_mru"),
        commission=row.get("commission"),
        shipping_cost=row.get("shipping_cost"),
        local_delivery_cost=row.get("local_delivery_cost"),
        amount_paid=row.get("amount_paid"),
        is_delivery_fee_prepaid=bool(row.get("is_delivery_fee_prepaid")),
        weight=row.get("weight"),
        storage_location=row.get("storage_location"),
        shipping_type=ShippingType(row.get("shipping_type") or ShippingType.NORMAL.value),
        origin_center=row.get("origin_center"),
        driver_id=row.get("driver_id"),
        driver_name=row.get("driver_name"),
        delivery_run_id=row.get("delivery_run_id"),
        withdrawal_date=row.get("withdrawal_date"),
    )


def drawer_from_row(row: dict) -> StorageDrawer:
    return StorageDrawer(
        id=str(row["id"]),
        name=row.get("name", ""),
        capacity=row.get("capacity"),
        rows=row.get("rows"),
        columns=row.get("columns"),
    )


class SupabaseClient(OrderStoreClient):
    """Client for the Supabase (PostgREST) API of the office database."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float = 30.0,
        page_size: int = PAGE_SIZE,
    ):
        self.url = (url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.api_key = api_key or os.getenv("SUPABASE_ANON_KEY", "")
        if not self.url or not self.api_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY must be set "
                "either as arguments or in a .env file."
            )
        if not self.url.startswith("https://"):
            raise ValueError(f"SUPABASE_URL must be an https:// URL, got '{self.url}'.")

        self.base_url = f"{self.url}/{REST_PATH}"
        self.timeout = timeout
        self.page_size = page_size
        self.session = requests.Session()
        self.session.headers.update(
            {
                "apikey": self.api_key,
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        table: str,
        params: dict | None = None,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> list[dict]:
        url = f"{self.base_url}/{table}"
        resp = self.session.request(
            method,
            url,
            params=params,
            json=json,
            headers=headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        if not resp.content:
            return []
        return resp.json()

    def get_orders(self, statuses: list[OrderStatus] | None = None) -> list[Order]:
        """Fetch orders from the ``Orders`` table, newest first.

        Results are read page by page until a short page comes back, so
        offices with more orders than the server's row cap get a full
        snapshot.

        Args:
            statuses: Only return orders in these statuses. None for all.

        Returns:
            List of Order snapshots.
        """
        params: dict = {
            "select": ORDER_FIELDS,
            # id breaks ties so pages do not overlap.
            "order": "local_order_id.desc,id.desc",
            "limit": self.page_size,
        }
        if statuses:
            params["status"] = "in.({})".format(",".join(s.value for s in statuses))

        rows: list[dict] = []
        offset = 0
        while True:
            page = self._request("GET", "Orders", {**params, "offset": offset})
            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        logger.debug("Fetched %d order(s)", len(rows))
        return [order_from_row(r) for r in rows]

    def get_order(self, order_id: str) -> Order | None:
        rows = self._request(
            "GET", "Orders", {"select": ORDER_FIELDS, "id": f"eq.{order_id}"}
        )
        return order_from_row(rows[0]) if rows else None

    def get_drawers(self) -> list[StorageDrawer]:
        rows = self._request("GET", "StorageDrawers", {"select": "*", "order": "name.asc"})
        return [drawer_from_row(r) for r in rows]

    def get_pricing_config(self) -> PricingConfig:
        rows = self._request("GET", "AppSettings", {"select": "*", "limit": "1"})
        return PricingConfig.from_settings_row(rows[0] if rows else None)

    def assign_storage_slot(
        self,
        order_id: str,
        location: str,
        expected_status: OrderStatus,
    ) -> Order:
        """Conditionally store an order, guarded on its current status.

        The PATCH only matches while the order is still in
        ``expected_status``, so two clerks storing the same order cannot
        both succeed.

        Raises:
            ConflictError: No row matched the guard.
        """
        rows = self._request(
            "PATCH",
            "Orders",
            params={
                "id": f"eq.{order_id}",
                "status": f"eq.{expected_status.value}",
                "select": ORDER_FIELDS,
            },
            json={
                "status": OrderStatus.STORED.value,
                "storage_location": location,
            },
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise ConflictError(
                f"Order {order_id} is no longer '{expected_status.value}'."
            )
        logger.info("Stored order %s at %s", order_id, location)
        return order_from_row(rows[0])

    def record_payment(self, order_id: str, amount: float, method: str, note: str = "") -> None:
        self._request(
            "POST",
            "OrderPayments",
            json={
                "order_id": order_id,
                "amount": amount,
                "payment_method": method,
                "notes": note,
            },
        )

    def update_order(self, order_id: str, fields: dict) -> None:
        self._request("PATCH", "Orders", params={"id": f"eq.{order_id}"}, json=fields)

    def mark_settled(self, order_ids: list[str], when: str) -> None:
        if not order_ids:
            return
        self._request(
            "PATCH",
            "Orders",
            params={"id": "in.({})".format(",".join(order_ids))},
            json={"withdrawal_date": when},
        )
        logger.info("Marked %d order(s) settled", len(order_ids))
