#!/usr/bin/env python3
"""CLI entry point for storage, delivery and billing reports."""

import argparse
import csv
import logging
import sys

from order_logistics.base_client import OrderStoreClient
from order_logistics.ledger import (
    billing_summary,
    cash_to_collect,
    order_total,
    payment_status,
    remaining_balance,
    settle_driver_run,
)
from order_logistics.models import FLOOR, OrderStatus, PaymentStatus, ShippingType
from order_logistics.money import format_mru
from order_logistics.pricing import FIXED, PERCENTAGE, quote
from order_logistics.runs import find_run, ready_to_settle
from order_logistics.slot_advisor import drawer_usage, suggest_storage_slot
from order_logistics.workflows import settle_run, store_order


def _rule(title):
    print(f"\n{'=' * 70}")
    print(f"  {title}")
    print(f"{'=' * 70}\n")


def _print_settlement(result, driver_name):
    _rule(f"DRIVER SETTLEMENT - {driver_name}")
    print(f"  Completed orders:            {len(result.completed_order_ids)}")
    if result.excluded_order_ids:
        print(f"  Excluded (not delivered):    {len(result.excluded_order_ids)}")
    print(f"  Base debt collected:         {format_mru(result.total_base_debt_collected)}")
    print(f"  Delivery fees from clients:  {format_mru(result.total_delivery_fees_from_client)}")
    print(f"  Cash in hand:                {format_mru(result.total_cash_in_hand)}")
    print(f"  Driver earnings:             {format_mru(result.total_driver_earnings)}")
    if result.driver_owes_office:
        print(f"\n  Driver pays office:          {format_mru(result.amount_due)}")
    else:
        print(f"\n  Office pays driver:          {format_mru(result.amount_due)}")
    print()


def _export_csv(orders, path):
    """Export the billing rows to a CSV file."""
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([
            "order_id", "local_order_id", "client_id", "status",
            "total", "paid", "remaining", "payment_status",
        ])
        for o in orders:
            writer.writerow([
                o.id, o.local_order_id, o.client_id, o.status.value,
                order_total(o), o.amount_paid or 0, remaining_balance(o),
                payment_status(o).value,
            ])
    print(f"Billing exported to {path}")


def _build_client(args) -> OrderStoreClient:
    from order_logistics.supabase_client import SupabaseClient
    return SupabaseClient(url=args.supabase_url, api_key=args.api_key)


def cmd_suggest(client, args):
    order = client.get_order(args.order_id)
    if order is None:
        raise ValueError(f"Order {args.order_id} not found.")

    if args.store:
        stored = store_order(client, order.id, strict=args.strict)
        print(f"Order {stored.local_order_id or stored.id} stored at {stored.storage_location}.")
        return

    suggestion = suggest_storage_slot(
        order, client.get_orders([OrderStatus.STORED]), client.get_drawers(), strict=args.strict,
    )
    if suggestion.location is None:
        print(f"No drawer has room. Choose a slot manually or use '{FLOOR}'.")
        return
    print(f"Suggested slot: {suggestion.location} (score {suggestion.score})")
    for reason in suggestion.reasons:
        print(f"  - {reason}")


def cmd_storage(client, args):
    usage = drawer_usage(client.get_drawers(), client.get_orders([OrderStatus.STORED]))
    _rule("STORAGE OCCUPANCY")
    for u in usage:
        flag = "  FULL" if u.is_full else ""
        print(f"  {u.name:<10} {u.occupied:>4}/{u.capacity:<4} {u.fill_ratio:6.0%}{flag}")
    print()


def cmd_collect(client, args):
    run = find_run(client.get_orders(), args.run_id)
    if run is None:
        raise ValueError(f"Delivery run {args.run_id} not found.")

    _rule(f"DELIVERY RUN {run.run_id} - {run.driver_name or run.driver_id}")
    print(f"  State: {run.state.value} | {len(run.orders)} orders\n")
    for i, o in enumerate(run.orders, 1):
        prepaid = " (delivery prepaid)" if o.is_delivery_fee_prepaid else ""
        print(f"  Stop {i}: {o.local_order_id or o.id} [{o.status.value}]")
        print(f"    Collect: {format_mru(cash_to_collect(o))}{prepaid}")
    print(f"\n  Total to collect:   {format_mru(run.total_cash_to_collect)}")
    print(f"  Collected so far:   {format_mru(run.actually_collected)}\n")


def cmd_settle(client, args):
    run = find_run(client.get_orders(), args.run_id)
    if run is None:
        raise ValueError(f"Delivery run {args.run_id} not found.")
    if args.confirm:
        result = settle_run(client, args.run_id)
        _print_settlement(result, run.driver_name or run.driver_id)
        print("Settlement recorded.")
        return

    _print_settlement(settle_driver_run(run.orders), run.driver_name or run.driver_id)
    if not ready_to_settle(run):
        print("Warning: this run cannot be settled yet.")
    else:
        print("Preview only. Re-run with --confirm to record the settlement.")


def cmd_billing(client, args):
    orders = client.get_orders()
    summary = billing_summary(orders)
    _rule("BILLING SUMMARY")
    print(f"  Revenue:      {format_mru(summary.total_revenue)}")
    print(f"  Collected:    {format_mru(summary.total_collected)} ({summary.collection_rate}%)")
    print(f"  Outstanding:  {format_mru(summary.total_outstanding)}")
    print(
        f"  Paid {summary.count_paid} | Partial {summary.count_partial} "
        f"| Unpaid {summary.count_unpaid}\n"
    )

    if args.csv:
        rows = [o for o in orders if o.status not in (OrderStatus.NEW, OrderStatus.CANCELLED)]
        if args.status:
            rows = [o for o in rows if payment_status(o) == PaymentStatus(args.status)]
        _export_csv(rows, args.csv)


def cmd_quote(client, args):
    config = client.get_pricing_config()
    result = quote(
        amount=args.amount,
        exchange_rate=args.rate,
        weight=args.weight,
        shipping_type=ShippingType(args.shipping_type),
        config=config,
        origin=args.origin,
        commission_type=args.commission_type,
        commission_value=args.commission,
    )
    _rule("PRICE QUOTE")
    print(f"  Zone:        {result.zone_name or 'global rates'}")
    print(f"  Product:     {format_mru(result.product_mru)}")
    print(f"  Shipping:    {format_mru(result.shipping_cost)}")
    minimum = " (minimum)" if result.min_commission_applied else ""
    print(f"  Commission:  {format_mru(result.commission)}{minimum}")
    print(f"  Total:       {format_mru(result.total)}\n")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Storage slotting, delivery cash and billing reports for the shipping office.",
    )
    parser.add_argument(
        "--supabase-url",
        help="Supabase project URL (overrides SUPABASE_URL env var).",
    )
    parser.add_argument(
        "--api-key",
        help="Supabase API key (overrides SUPABASE_ANON_KEY env var).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("suggest", help="Suggest a storage slot for an arrived order.")
    p.add_argument("order_id")
    p.add_argument("--strict", action="store_true", help="Never suggest an occupied slot.")
    p.add_argument("--store", action="store_true", help="Store the order at the suggested slot.")
    p.set_defaults(func=cmd_suggest)

    p = sub.add_parser("storage", help="Show drawer occupancy.")
    p.set_defaults(func=cmd_storage)

    p = sub.add_parser("collect", help="Show the cash a driver must collect on a run.")
    p.add_argument("run_id")
    p.set_defaults(func=cmd_collect)

    p = sub.add_parser("settle", help="Compute (and record) a driver settlement.")
    p.add_argument("run_id")
    p.add_argument("--confirm", action="store_true", help="Record the settlement.")
    p.set_defaults(func=cmd_settle)

    p = sub.add_parser("billing", help="Show the billing summary.")
    p.add_argument("--csv", metavar="FILE", help="Export billed orders to a CSV file.")
    p.add_argument(
        "--status",
        choices=[s.value for s in PaymentStatus],
        help="Only export orders with this payment status.",
    )
    p.set_defaults(func=cmd_billing)

    p = sub.add_parser("quote", help="Quote a price for a prospective order.")
    p.add_argument("--amount", type=float, required=True, help="Product price in store currency.")
    p.add_argument("--rate", type=float, default=1.0, help="MRU per unit of store currency.")
    p.add_argument("--weight", type=float, default=0.0, help="Estimated weight in kg.")
    p.add_argument(
        "--shipping-type",
        default=ShippingType.NORMAL.value,
        choices=[t.value for t in ShippingType],
    )
    p.add_argument("--origin", help="Shipping origin (default: office default origin).")
    p.add_argument("--commission-type", default=PERCENTAGE, choices=[PERCENTAGE, FIXED])
    p.add_argument("--commission", type=float, help="Commission percentage or fixed amount.")
    p.set_defaults(func=cmd_quote)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        client = _build_client(args)
        args.func(client, args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
