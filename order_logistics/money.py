"""Monetary coercion and rounding helpers shared by the ledger and pricing."""

from math import floor, isfinite

CURRENCY = "MRU"


def to_amount(value) -> float:
    """Coerce a loosely-typed monetary value to a float.

    ``None``, blanks, unparseable strings and non-finite numbers all
    become ``0.0`` so calculations over partially-filled orders never fail.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if isfinite(amount) else 0.0


def round_amount(value) -> int:
    """Round half up to a whole amount (``2.5 -> 3``, ``-2.5 -> -2``)."""
    return int(floor(to_amount(value) + 0.5))


def format_mru(value) -> str:
    """Return a display string such as ``"1,234 MRU"``."""
    return f"{round_amount(value):,} {CURRENCY}"
