"""Tests for office workflows against the in-memory store."""

import pytest

from conftest import InMemoryStore, make_order, stored
from order_logistics.lifecycle import InvalidTransitionError, MissingWeightError
from order_logistics.models import FLOOR, OrderStatus, StorageDrawer
from order_logistics.workflows import (
    SettlementError,
    SlotAssignmentError,
    complete_delivery,
    direct_delivery,
    return_to_storage,
    settle_run,
    store_order,
)

S = OrderStatus


def _arrived(order_id="new", client_id="c1", **fields):
    return make_order(order_id, client_id, status=S.ARRIVED_AT_OFFICE, **fields)


class TestStoreOrder:

    def test_stores_at_suggested_slot(self, drawers):
        store = InMemoryStore([_arrived(), stored("1", "B-02", client_id="c1")], drawers)
        order = store_order(store, "new")
        assert order.status == S.STORED
        assert order.storage_location == "B-02"

    def test_falls_back_to_floor(self):
        drawers = [StorageDrawer(id="d", name="A", capacity=1)]
        store = InMemoryStore([_arrived(), stored("1", "A-01")], drawers)
        assert store_order(store, "new").storage_location == FLOOR

    def test_retries_after_conflict(self, drawers):
        store = InMemoryStore([_arrived()], drawers)
        store.conflicts_left = 2
        assert store_order(store, "new", max_attempts=3).storage_location == "A-01"

    def test_gives_up_after_max_attempts(self, drawers):
        store = InMemoryStore([_arrived()], drawers)
        store.conflicts_left = 5
        with pytest.raises(SlotAssignmentError):
            store_order(store, "new", max_attempts=2)

    def test_rejects_order_not_at_office(self, drawers):
        store = InMemoryStore([make_order("new", status=S.ORDERED)], drawers)
        with pytest.raises(InvalidTransitionError):
            store_order(store, "new")

    def test_unknown_order(self, drawers):
        with pytest.raises(ValueError, match="not found"):
            store_order(InMemoryStore([], drawers), "ghost")

    def test_strict_mode_avoids_shared_slot(self, drawers):
        store = InMemoryStore([_arrived(), stored("1", "A-01", client_id="c1")], drawers)
        assert store_order(store, "new", strict=True).storage_location == "A-02"

    def test_strict_mode_rechecks_slot_taken_meanwhile(self, drawers):
        class RacingStore(InMemoryStore):
            raced = False

            def get_drawers(self):
                if not self.raced:
                    self.raced = True
                    self.orders["rival"] = stored("rival", "A-01")
                return super().get_drawers()

        store = RacingStore([_arrived()], drawers)
        order = store_order(store, "new", strict=True)
        assert order.storage_location == "A-02"


class TestDeliveries:

    def test_complete_delivery(self):
        store = InMemoryStore([make_order("a", status=S.OUT_FOR_DELIVERY, weight=1)])
        complete_delivery(store, "a")
        assert store.updates == [("a", {"status": "completed", "payment_method": "Cash"})]

    def test_complete_delivery_requires_weight(self):
        store = InMemoryStore([make_order("a", status=S.OUT_FOR_DELIVERY)])
        with pytest.raises(MissingWeightError):
            complete_delivery(store, "a")
        assert store.updates == []

    def test_return_to_storage_clears_run(self):
        store = InMemoryStore([make_order("a", status=S.OUT_FOR_DELIVERY, delivery_run_id="r1")])
        return_to_storage(store, "a")
        order_id, fields = store.updates[0]
        assert fields["status"] == "stored"
        assert fields["delivery_run_id"] is None


class TestDirectDelivery:

    def test_allocates_and_completes(self):
        orders = [
            make_order("a", status=S.STORED, weight=1, price_in_mru=600),
            make_order("b", status=S.STORED, weight=1, price_in_mru=300),
        ]
        store = InMemoryStore(orders)
        allocations = direct_delivery(store, ["a", "b"], 700)
        assert [a.allocated for a in allocations] == [600, 100]
        assert store.payments == [
            ("a", 600, "Cash", "Bulk Payment"),
            ("b", 100, "Cash", "Bulk Payment"),
        ]
        assert [f["amount_paid"] for _, f in store.updates] == [600, 100]
        assert all(f["status"] == "completed" for _, f in store.updates)

    def test_unweighed_order_aborts_batch(self):
        orders = [
            make_order("a", status=S.STORED, weight=1, price_in_mru=600),
            make_order("b", status=S.STORED, price_in_mru=300),
        ]
        store = InMemoryStore(orders)
        with pytest.raises(MissingWeightError):
            direct_delivery(store, ["a", "b"], 900)
        assert store.payments == [] and store.updates == []


class TestSettleRun:

    def _run(self, *statuses):
        return [
            make_order(
                str(i), status=status, delivery_run_id="r1", driver_id="d1",
                price_in_mru=450, local_delivery_cost=100, weight=1,
            )
            for i, status in enumerate(statuses)
        ]

    def test_settles_completed_orders(self):
        store = InMemoryStore(self._run(S.COMPLETED, S.COMPLETED, S.STORED))
        result = settle_run(store, "r1", when="2026-10-19T10:00:00+00:00")
        assert result.net_total == 900
        assert store.settled == [(["0", "1"], "2026-10-19T10:00:00+00:00")]
        assert store.updates == [("0", {"amount_paid": 550}), ("1", {"amount_paid": 550})]

    def test_refuses_while_orders_out(self):
        store = InMemoryStore(self._run(S.COMPLETED, S.OUT_FOR_DELIVERY))
        with pytest.raises(SettlementError, match="active"):
            settle_run(store, "r1")
        assert store.settled == []

    def test_unknown_run(self):
        with pytest.raises(SettlementError, match="not found"):
            settle_run(InMemoryStore([]), "r9")
