"""Shared fixtures: order builders and an in-memory order store."""

from dataclasses import replace

import pytest

from order_logistics.base_client import ConflictError, OrderStoreClient
from order_logistics.models import Order, OrderStatus, StorageDrawer
from order_logistics.pricing import PricingConfig


def make_order(order_id="o1", client_id="c1", **fields) -> Order:
    return Order(id=order_id, client_id=client_id, **fields)


def stored(order_id, location, client_id="other", **fields) -> Order:
    return make_order(
        order_id,
        client_id,
        status=OrderStatus.STORED,
        storage_location=location,
        **fields,
    )


class InMemoryStore(OrderStoreClient):
    """Order store kept in a dict, recording every write."""

    def __init__(self, orders=(), drawers=(), config=None):
        self.orders = {o.id: o for o in orders}
        self.drawers = list(drawers)
        self.config = config or PricingConfig()
        self.payments = []
        self.updates = []
        self.settled = []
        self.conflicts_left = 0

    def get_orders(self, statuses=None):
        orders = list(self.orders.values())
        if statuses:
            orders = [o for o in orders if o.status in statuses]
        return orders

    def get_order(self, order_id):
        return self.orders.get(order_id)

    def get_drawers(self):
        return list(self.drawers)

    def get_pricing_config(self):
        return self.config

    def assign_storage_slot(self, order_id, location, expected_status):
        order = self.orders[order_id]
        if self.conflicts_left > 0:
            self.conflicts_left -= 1
            raise ConflictError(f"Order {order_id} changed.")
        if order.status != expected_status:
            raise ConflictError(f"Order {order_id} is no longer '{expected_status.value}'.")
        order = replace(order, status=OrderStatus.STORED, storage_location=location)
        self.orders[order_id] = order
        return order

    def record_payment(self, order_id, amount, method, note=""):
        self.payments.append((order_id, amount, method, note))

    def update_order(self, order_id, fields):
        self.updates.append((order_id, fields))

    def mark_settled(self, order_ids, when):
        self.settled.append((list(order_ids), when))


@pytest.fixture
def drawers():
    return [
        StorageDrawer(id="d1", name="A", capacity=10),
        StorageDrawer(id="d2", name="B", capacity=5),
    ]


@pytest.fixture
def store_factory():
    return InMemoryStore
