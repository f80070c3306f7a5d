"""Abstract base class for the order database collaborator."""

from abc import ABC, abstractmethod

from order_logistics.models import Order, OrderStatus, StorageDrawer
from order_logistics.pricing import PricingConfig


class ConflictError(Exception):
    """A conditional write found the order changed since it was read."""


class OrderStoreClient(ABC):
    """Base class that every order store backend must implement."""

    @abstractmethod
    def get_orders(self, statuses: list[OrderStatus] | None = None) -> list[Order]:
        """Fetch orders, newest first.

        Args:
            statuses: Only return orders in these statuses. None for all.

        Returns:
            List of Order snapshots.
        """

    @abstractmethod
    def get_order(self, order_id: str) -> Order | None:
        """Fetch one order by id, or None if it does not exist."""

    @abstractmethod
    def get_drawers(self) -> list[StorageDrawer]:
        """Fetch the configured storage drawers."""

    @abstractmethod
    def get_pricing_config(self) -> PricingConfig:
        """Fetch office pricing settings."""

    @abstractmethod
    def assign_storage_slot(
        self,
        order_id: str,
        location: str,
        expected_status: OrderStatus,
    ) -> Order:
        """Store an order at ``location`` if it is still in ``expected_status``.

        Raises:
            ConflictError: The order is no longer in ``expected_status``.
        """

    @abstractmethod
    def record_payment(self, order_id: str, amount: float, method: str, note: str = "") -> None:
        """Append a payment transaction to an order's history."""

    @abstractmethod
    def update_order(self, order_id: str, fields: dict) -> None:
        """Write ``fields`` (database column names) to one order."""

    @abstractmethod
    def mark_settled(self, order_ids: list[str], when: str) -> None:
        """Set the withdrawal date of the given orders to ``when``."""
