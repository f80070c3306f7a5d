"""Order status progression and the preconditions guarding it."""

from order_logistics.models import FLOOR, Order, OrderStatus

_S = OrderStatus

# Every status must appear here; tests assert the table is exhaustive.
_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    _S.NEW: frozenset({_S.ORDERED, _S.CANCELLED}),
    _S.ORDERED: frozenset({_S.SHIPPED_FROM_STORE, _S.CANCELLED}),
    _S.SHIPPED_FROM_STORE: frozenset({_S.ARRIVED_AT_OFFICE, _S.CANCELLED}),
    _S.ARRIVED_AT_OFFICE: frozenset({_S.STORED, _S.COMPLETED, _S.CANCELLED}),
    _S.STORED: frozenset({_S.OUT_FOR_DELIVERY, _S.COMPLETED, _S.CANCELLED}),
    _S.OUT_FOR_DELIVERY: frozenset({_S.COMPLETED, _S.STORED, _S.CANCELLED}),
    _S.COMPLETED: frozenset(),
    _S.CANCELLED: frozenset(),
}

_FORWARD: dict[OrderStatus, OrderStatus | None] = {
    _S.NEW: _S.ORDERED,
    _S.ORDERED: _S.SHIPPED_FROM_STORE,
    _S.SHIPPED_FROM_STORE: _S.ARRIVED_AT_OFFICE,
    _S.ARRIVED_AT_OFFICE: _S.STORED,
    _S.STORED: _S.OUT_FOR_DELIVERY,
    _S.OUT_FOR_DELIVERY: _S.COMPLETED,
    _S.COMPLETED: None,
    _S.CANCELLED: None,
}

# Statuses that hand the parcel to a driver or the client.
WEIGHT_REQUIRED = frozenset({_S.OUT_FOR_DELIVERY, _S.COMPLETED})


class LifecycleError(ValueError):
    """Base class for rejected status changes."""


class InvalidTransitionError(LifecycleError):
    def __init__(self, order_id: str, current: OrderStatus, target: OrderStatus):
        super().__init__(
            f"Order {order_id} cannot move from '{current.value}' to '{target.value}'."
        )
        self.current = current
        self.target = target


class MissingWeightError(LifecycleError):
    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} has no recorded weight; weigh it before delivery."
        )
        self.order_id = order_id


def next_status(status: OrderStatus) -> OrderStatus | None:
    """Return the forward successor of ``status``, or None when terminal."""
    return _FORWARD[status]


def allowed_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    return _TRANSITIONS[status]


def is_terminal(status: OrderStatus) -> bool:
    return not _TRANSITIONS[status]


def check_transition(order: Order, target: OrderStatus) -> None:
    """Raise a LifecycleError if ``order`` may not move to ``target``.

    Raises:
        InvalidTransitionError: The move is not part of the lifecycle.
        MissingWeightError: The target hands the parcel over and the
            order has not been weighed.
    """
    if target not in _TRANSITIONS[order.status]:
        raise InvalidTransitionError(order.id, order.status, target)
    if target in WEIGHT_REQUIRED and not order.is_weighed:
        raise MissingWeightError(order.id)


def storage_location_for(order: Order, target: OrderStatus, location: str | None) -> str | None:
    """Return the storage location to persist alongside a move to ``target``.

    Entering storage requires a slot (or the floor); leaving it clears it.
    """
    if target != OrderStatus.STORED:
        return None
    if not location:
        raise LifecycleError(
            f"Order {order.id} needs a storage slot or '{FLOOR}' to be stored."
        )
    return location
