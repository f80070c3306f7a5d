"""Collection ledger: client debt, driver cash and run settlement.

Every function here is total: missing or malformed monetary fields are
treated as zero and no input combination raises.
"""

import logging
from collections.abc import Iterable

from order_logistics.models import (
    Allocation,
    BillingSummary,
    Order,
    OrderStatus,
    PaymentStatus,
    SettlementResult,
)
from order_logistics.money import round_amount, to_amount

logger = logging.getLogger(__name__)

# Orders that never reach billing.
_UNBILLED = frozenset({OrderStatus.NEW, OrderStatus.CANCELLED})


def order_base_value(order: Order) -> int:
    """Product price, commission and international shipping, rounded."""
    product_total = round_amount(to_amount(order.price_in_mru) + to_amount(order.commission))
    shipping_total = round_amount(order.shipping_cost)
    return product_total + shipping_total


def delivery_fee(order: Order) -> int:
    return round_amount(order.local_delivery_cost)


def order_total(order: Order) -> int:
    """Grand total owed for the order, delivery fee included."""
    return order_base_value(order) + delivery_fee(order)


def base_debt(order: Order) -> int:
    """Outstanding product and shipping balance, excluding the delivery fee."""
    return max(0, order_base_value(order) - round_amount(order.amount_paid))


def cash_to_collect(order: Order) -> int:
    """Cash the delivery driver must collect from the client.

    A prepaid delivery fee was already settled at the office, so the
    driver only chases the product and shipping balance.
    """
    if order.is_delivery_fee_prepaid:
        return base_debt(order)
    return base_debt(order) + delivery_fee(order)


def remaining_balance(order: Order) -> int:
    """Grand total minus payments. Negative when the client overpaid."""
    return order_total(order) - round_amount(order.amount_paid)


def payment_status(order: Order) -> PaymentStatus:
    total = order_total(order)
    paid = round_amount(order.amount_paid)
    remaining = total - paid
    if remaining <= 0 and total > 0:
        return PaymentStatus.PAID
    if paid > 0 and remaining > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.UNPAID


def allocate_bulk_payment(pool, orders: Iterable[Order]) -> list[Allocation]:
    """Spread a single payment across several orders, first order first.

    Args:
        pool: Amount received. A negative amount allocates nothing and
            records nothing; a zero or missing amount still records a
            payment row for every order.
        orders: Orders in the sequence they should be paid off.

    Returns:
        One Allocation per order, in input order. Orders reached after
        the pool is exhausted get a zero allocation.
    """
    received = to_amount(pool)
    total_pool = max(0.0, received)
    remaining_pool = total_pool
    allocations: list[Allocation] = []

    for order in orders:
        prior_paid = to_amount(order.amount_paid)
        due = max(0.0, order_total(order) - prior_paid)
        allocated = min(remaining_pool, due)
        remaining_pool -= allocated
        allocations.append(
            Allocation(
                order_id=order.id,
                due=due,
                allocated=allocated,
                new_amount_paid=prior_paid + allocated,
                records_payment=allocated > 0 or received == 0,
            )
        )

    # Surplus has nowhere to go: no credit balance is tracked for clients.
    if remaining_pool > 0:
        logger.warning(
            "Bulk payment of %s exceeds total dues; %s left unallocated",
            total_pool,
            remaining_pool,
        )
    return allocations


def settle_driver_run(orders: Iterable[Order]) -> SettlementResult:
    """Reconcile the cash a driver holds against the fees they earned.

    Only completed orders count. Returned or still-out orders are listed
    in ``excluded_order_ids`` and must be reconciled by returning them to
    storage.
    """
    completed: list[str] = []
    excluded: list[str] = []
    base_total = 0
    fees_from_client = 0
    driver_earnings = 0

    for order in orders:
        if order.status != OrderStatus.COMPLETED:
            excluded.append(order.id)
            continue
        completed.append(order.id)
        fee = delivery_fee(order)
        base_total += base_debt(order)
        if not order.is_delivery_fee_prepaid:
            fees_from_client += fee
        # The driver earns the fee whoever paid it.
        driver_earnings += fee

    cash_in_hand = base_total + fees_from_client
    return SettlementResult(
        completed_order_ids=tuple(completed),
        excluded_order_ids=tuple(excluded),
        total_base_debt_collected=base_total,
        total_delivery_fees_from_client=fees_from_client,
        total_driver_earnings=driver_earnings,
        total_cash_in_hand=cash_in_hand,
        net_total=cash_in_hand - driver_earnings,
    )


def settlement_amount_paid(order: Order) -> int:
    """Value written to ``amount_paid`` once a settled order is archived."""
    return order_total(order)


def billing_summary(orders: Iterable[Order]) -> BillingSummary:
    """Aggregate revenue, collections and payment-status counts."""
    revenue = collected = outstanding = 0
    counts = {status: 0 for status in PaymentStatus}

    for order in orders:
        if order.status in _UNBILLED:
            continue
        revenue += order_total(order)
        collected += round_amount(order.amount_paid)
        outstanding += max(0, remaining_balance(order))
        counts[payment_status(order)] += 1

    return BillingSummary(
        total_revenue=revenue,
        total_collected=collected,
        total_outstanding=outstanding,
        count_paid=counts[PaymentStatus.PAID],
        count_partial=counts[PaymentStatus.PARTIAL],
        count_unpaid=counts[PaymentStatus.UNPAID],
    )
