"""Office workflows that apply advisor and ledger results to the database.

Each workflow re-reads fresh snapshots right before acting; the pure
calculators never see stale data held across user interactions.
"""

import logging
from datetime import datetime, timezone

from order_logistics.base_client import ConflictError, OrderStoreClient
from order_logistics.ledger import allocate_bulk_payment, settle_driver_run, settlement_amount_paid
from order_logistics.lifecycle import check_transition, storage_location_for
from order_logistics.models import FLOOR, Allocation, Order, OrderStatus, SettlementResult
from order_logistics.runs import find_run, ready_to_settle
from order_logistics.slot_advisor import orders_in_slot, suggest_storage_slot

logger = logging.getLogger(__name__)


class SlotAssignmentError(ValueError):
    """No slot could be committed within the allowed attempts."""


class SettlementError(ValueError):
    """A delivery run cannot be settled in its current state."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_order(client: OrderStoreClient, order_id: str) -> Order:
    order = client.get_order(order_id)
    if order is None:
        raise ValueError(f"Order {order_id} not found.")
    return order


def store_order(
    client: OrderStoreClient,
    order_id: str,
    strict: bool = False,
    max_attempts: int = 3,
) -> Order:
    """Place an order that arrived at the office into storage.

    The advisor's slot (or the floor when no drawer has room) is committed
    with a write guarded on the order still being at the office. When the
    guard fails, or in strict mode the slot was taken meanwhile, a fresh
    snapshot is read and a new slot recommended.

    The guard is on this order's status only. It stops two clerks storing
    the same order twice; it does not stop two different orders landing in
    the same empty slot. The strict re-check narrows that window but is a
    read followed by a separate write, so two concurrent strict stores can
    still pick the same slot.

    Raises:
        LifecycleError: The order is not ready to be stored.
        SlotAssignmentError: Every attempt hit a conflict.
    """
    for attempt in range(1, max_attempts + 1):
        order = _require_order(client, order_id)
        check_transition(order, OrderStatus.STORED)

        stored_orders = client.get_orders([OrderStatus.STORED])
        suggestion = suggest_storage_slot(order, stored_orders, client.get_drawers(), strict=strict)
        location = storage_location_for(order, OrderStatus.STORED, suggestion.location or FLOOR)

        if strict and location != FLOOR:
            fresh = client.get_orders([OrderStatus.STORED])
            if orders_in_slot(location, fresh):
                logger.warning(
                    "Slot %s taken before order %s was stored (attempt %d/%d)",
                    location, order_id, attempt, max_attempts,
                )
                continue

        try:
            return client.assign_storage_slot(order_id, location, order.status)
        except ConflictError as exc:
            logger.warning("%s Retrying (attempt %d/%d)", exc, attempt, max_attempts)

    raise SlotAssignmentError(
        f"Could not store order {order_id} after {max_attempts} attempt(s)."
    )


def complete_delivery(client: OrderStoreClient, order_id: str) -> None:
    """Mark an order as delivered by the driver (cash now in their hands)."""
    order = _require_order(client, order_id)
    check_transition(order, OrderStatus.COMPLETED)
    client.update_order(
        order_id,
        {"status": OrderStatus.COMPLETED.value, "payment_method": "Cash"},
    )


def return_to_storage(client: OrderStoreClient, order_id: str) -> None:
    """Take an undelivered order off its run and put it back in storage."""
    order = _require_order(client, order_id)
    check_transition(order, OrderStatus.STORED)
    client.update_order(
        order_id,
        {
            "status": OrderStatus.STORED.value,
            "driver_id": None,
            "driver_name": None,
            "delivery_run_id": None,
        },
    )


def direct_delivery(
    client: OrderStoreClient,
    order_ids: list[str],
    pool: float,
    method: str = "Cash",
) -> list[Allocation]:
    """Hand orders to a client at the office against a single payment.

    All orders are checked before anything is written, so an unweighed
    order aborts the whole batch.

    Raises:
        LifecycleError: An order cannot be completed.
    """
    orders = [_require_order(client, oid) for oid in order_ids]
    for order in orders:
        check_transition(order, OrderStatus.COMPLETED)

    allocations = allocate_bulk_payment(pool, orders)
    note = "Bulk Payment" if len(orders) > 1 else ""
    for allocation in allocations:
        if allocation.records_payment:
            client.record_payment(allocation.order_id, allocation.allocated, method, note)
        client.update_order(
            allocation.order_id,
            {
                "status": OrderStatus.COMPLETED.value,
                "amount_paid": allocation.new_amount_paid,
                "payment_method": method,
            },
        )
    return allocations


def settle_run(
    client: OrderStoreClient,
    run_id: str,
    when: str | None = None,
) -> SettlementResult:
    """Settle a driver's run and archive its completed orders.

    Raises:
        SettlementError: The run does not exist, is already settled, or
            still has orders out for delivery.
    """
    run = find_run(client.get_orders(), run_id)
    if run is None:
        raise SettlementError(f"Delivery run {run_id} not found.")
    if not ready_to_settle(run):
        raise SettlementError(
            f"Delivery run {run_id} is {run.state.value} and cannot be settled yet."
        )

    result = settle_driver_run(run.orders)
    client.mark_settled(result.completed_order_ids, when or _now())
    for order in run.orders:
        if order.status == OrderStatus.COMPLETED:
            client.update_order(order.id, {"amount_paid": settlement_amount_paid(order)})

    logger.info(
        "Settled run %s for driver %s: net %d",
        run_id, run.driver_name or run.driver_id, result.net_total,
    )
    return result
