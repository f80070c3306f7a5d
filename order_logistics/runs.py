"""Grouping of dispatched orders into per-driver delivery runs."""

from collections.abc import Iterable

from order_logistics.ledger import cash_to_collect
from order_logistics.models import DeliveryRun, Order, OrderStatus, RunState

_ON_ROAD = frozenset({OrderStatus.OUT_FOR_DELIVERY, OrderStatus.COMPLETED})


def _run_state(orders: list[Order]) -> RunState:
    if all(o.withdrawal_date for o in orders):
        return RunState.SETTLED
    if any(o.status in _ON_ROAD for o in orders):
        return RunState.ACTIVE
    return RunState.DRAFT


def group_delivery_runs(orders: Iterable[Order]) -> list[DeliveryRun]:
    """Group orders by delivery run, in order of first appearance.

    Orders without a run id or driver are ignored. Cash totals only count
    orders already handed to the driver.
    """
    runs: dict[str, DeliveryRun] = {}

    for order in orders:
        if not order.delivery_run_id or not order.driver_id:
            continue
        run = runs.get(order.delivery_run_id)
        if run is None:
            run = DeliveryRun(
                run_id=order.delivery_run_id,
                driver_id=order.driver_id,
                driver_name=order.driver_name,
            )
            runs[order.delivery_run_id] = run
        run.orders.append(order)

        if order.status in _ON_ROAD:
            cash = cash_to_collect(order)
            run.total_cash_to_collect += cash
            if order.status == OrderStatus.COMPLETED:
                run.completed_count += 1
                # Assumes the driver collected exactly what was required.
                run.actually_collected += cash

    for run in runs.values():
        run.state = _run_state(run.orders)
    return list(runs.values())


def find_run(orders: Iterable[Order], run_id: str) -> DeliveryRun | None:
    for run in group_delivery_runs(orders):
        if run.run_id == run_id:
            return run
    return None


def ready_to_settle(run: DeliveryRun) -> bool:
    """True once nothing is still out and at least one order was delivered."""
    if run.state == RunState.SETTLED:
        return False
    if any(o.status == OrderStatus.OUT_FOR_DELIVERY for o in run.orders):
        return False
    return run.completed_count > 0


def pending_orders(run: DeliveryRun) -> list[Order]:
    return [o for o in run.orders if o.status == OrderStatus.OUT_FOR_DELIVERY]
