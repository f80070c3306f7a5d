"""Storage slot advisor using a clustering-first placement heuristic."""

import logging
from collections import Counter
from collections.abc import Sequence

from order_logistics.models import (
    DrawerUsage,
    Order,
    OrderStatus,
    StorageDrawer,
    Suggestion,
)

logger = logging.getLogger(__name__)

CLIENT_CLUSTER_SCORE = 100
SHIPMENT_CLUSTER_SCORE = 80
ACTIVE_DRAWER_SCORE = 50
EMPTY_DRAWER_SCORE = 10

# Drawers at or above this fill ratio are not preferred for new parcels.
_ACTIVE_FILL_LIMIT = 0.9

NO_SUGGESTION = Suggestion(location=None, score=0)


def drawer_name_of(location: str) -> str:
    """Return the drawer part of a slot address such as ``A-03``."""
    return location.split("-", 1)[0]


def _stored_orders(all_orders: Sequence[Order]) -> list[Order]:
    return [
        o for o in all_orders
        if o.status == OrderStatus.STORED and o.storage_location
    ]


def _occupied_count(drawer: StorageDrawer, stored: Sequence[Order]) -> int:
    prefix = drawer.name + "-"
    return sum(1 for o in stored if o.storage_location.startswith(prefix))


def _first_free_slot(drawer: StorageDrawer, occupied: set[str]) -> str | None:
    for slot in drawer.slot_labels():
        if slot not in occupied:
            return slot
    return None


def orders_in_slot(location: str, all_orders: Sequence[Order]) -> list[Order]:
    """Return the stored orders currently sitting at ``location``."""
    return [o for o in _stored_orders(all_orders) if o.storage_location == location]


def drawer_usage(
    drawers: Sequence[StorageDrawer],
    all_orders: Sequence[Order],
) -> list[DrawerUsage]:
    """Summarise occupancy per drawer, in drawer list order."""
    stored = _stored_orders(all_orders)
    return [
        DrawerUsage(
            name=d.name,
            occupied=_occupied_count(d, stored),
            capacity=d.slot_count,
        )
        for d in drawers
    ]


def suggest_storage_slot(
    order: Order,
    all_orders: Sequence[Order],
    drawers: Sequence[StorageDrawer],
    strict: bool = False,
) -> Suggestion:
    """Recommend a storage slot for an order arriving at the office.

    Candidates are tried in priority order and the first match wins:

    1. the slot the client's stored orders use most (score 100),
    2. a free slot in the drawer holding the same shipment (score 80),
    3. a free slot in the best non-full drawer: partly filled drawers
       below 90% score 50, any other drawer 10.

    Args:
        order: The order needing placement.
        all_orders: Current order snapshot, used to derive occupancy.
            Callers list the newest orders first.
        drawers: Configured drawers.
        strict: Never recommend an occupied slot. By default the client
            cluster slot is recommended even when shared or over capacity.

    Returns:
        A Suggestion; ``location`` is None when no drawer has room, in
        which case the caller picks a slot manually or uses the floor.
    """
    stored = _stored_orders(all_orders)
    occupied = {o.storage_location for o in stored}
    by_name = {d.name: d for d in drawers}

    def is_full(drawer: StorageDrawer) -> bool:
        return _occupied_count(drawer, stored) >= drawer.slot_count

    suggestion = (
        _client_cluster(order, stored, occupied, by_name, is_full, strict)
        or _shipment_cluster(order, stored, occupied, by_name, is_full)
        or _least_fragmented(drawers, stored, occupied)
        or NO_SUGGESTION
    )
    logger.debug(
        "Slot suggestion for order %s: %s (score %d)",
        order.id,
        suggestion.location,
        suggestion.score,
    )
    return suggestion


def _client_cluster(order, stored, occupied, by_name, is_full, strict):
    counts = Counter(o.storage_location for o in stored if o.client_id == order.client_id)
    if not counts:
        return None

    best_slot, count = counts.most_common(1)[0]
    drawer = by_name.get(drawer_name_of(best_slot))
    if drawer is None:
        return None

    reasons = (
        "cluster with client's existing orders",
        f"{count} order(s) of this client already here",
    )
    if not strict:
        return Suggestion(best_slot, CLIENT_CLUSTER_SCORE, reasons)

    if is_full(drawer):
        return None
    slot = _first_free_slot(drawer, occupied)
    if slot is None:
        return None
    return Suggestion(slot, CLIENT_CLUSTER_SCORE, reasons + ("empty slot in same drawer",))


def _shipment_cluster(order, stored, occupied, by_name, is_full):
    if not order.shipment_id:
        return None
    same_shipment = [o for o in stored if o.shipment_id == order.shipment_id]
    if not same_shipment:
        return None

    drawer = by_name.get(drawer_name_of(same_shipment[0].storage_location))
    if drawer is None or is_full(drawer):
        return None

    slot = _first_free_slot(drawer, occupied)
    if slot is None:
        return None
    return Suggestion(
        slot,
        SHIPMENT_CLUSTER_SCORE,
        ("cluster with same shipment", "empty slot in same drawer"),
    )


def _least_fragmented(drawers, stored, occupied):
    best: tuple[int, StorageDrawer, str] | None = None
    for drawer in drawers:
        capacity = drawer.slot_count
        count = _occupied_count(drawer, stored)
        if count >= capacity:
            continue
        fill_ratio = count / capacity
        if 0 < fill_ratio < _ACTIVE_FILL_LIMIT:
            candidate = (ACTIVE_DRAWER_SCORE, drawer, "active drawer, optimize space")
        else:
            candidate = (EMPTY_DRAWER_SCORE, drawer, "first empty drawer available")
        # Strictly greater keeps the earliest drawer on ties.
        if best is None or candidate[0] > best[0]:
            best = candidate

    if best is None:
        return None
    score, drawer, reason = best
    slot = _first_free_slot(drawer, occupied)
    if slot is None:
        return None
    return Suggestion(slot, score, (reason,))
