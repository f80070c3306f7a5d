"""Shipping cost and quick price quotes from explicit pricing settings."""

from dataclasses import dataclass, field

from order_logistics.models import ShippingType
from order_logistics.money import round_amount, to_amount

PERCENTAGE = "percentage"
FIXED = "fixed"


@dataclass(frozen=True)
class ShippingZone:
    """Per-origin shipping rates in MRU per kilogram."""

    name: str
    fast: float
    normal: float


@dataclass(frozen=True)
class PricingConfig:
    """Office-wide pricing settings.

    Defaults mirror a freshly installed office before any settings are saved.
    """

    commission_rate: float = 10.0
    min_commission: float = 100.0
    fast_rate: float = 450.0
    normal_rate: float = 280.0
    zones: list[ShippingZone] = field(default_factory=list)
    default_origin: str = "Dubai"

    @classmethod
    def from_settings_row(cls, row: dict | None) -> "PricingConfig":
        """Build a config from an ``AppSettings`` database row."""
        if not row:
            return cls()
        defaults = cls()
        rates = row.get("shipping_rates") or {}
        zones = [
            ShippingZone(
                name=z.get("name", ""),
                fast=to_amount((z.get("rates") or {}).get("fast")),
                normal=to_amount((z.get("rates") or {}).get("normal")),
            )
            for z in (row.get("shipping_zones") or [])
        ]
        return cls(
            commission_rate=_or_default(row.get("commission_rate"), defaults.commission_rate),
            min_commission=_or_default(row.get("min_commission_value"), defaults.min_commission),
            fast_rate=_or_default(rates.get("fast"), defaults.fast_rate),
            normal_rate=_or_default(rates.get("normal"), defaults.normal_rate),
            zones=zones,
            default_origin=row.get("default_origin_center") or defaults.default_origin,
        )

    def zone_for(self, origin: str | None) -> ShippingZone | None:
        key = (origin or self.default_origin).strip().lower()
        for zone in self.zones:
            if zone.name.strip().lower() == key:
                return zone
        return None


@dataclass(frozen=True)
class Quote:
    product_mru: float
    shipping_cost: float
    commission: float
    total: int
    zone_name: str | None
    min_commission_applied: bool


def _or_default(value, default: float) -> float:
    if value is None:
        return default
    return to_amount(value)


def shipping_rate(
    config: PricingConfig,
    shipping_type: ShippingType,
    origin: str | None = None,
) -> float:
    """Return the per-kg rate for ``origin``, falling back to global rates."""
    zone = config.zone_for(origin)
    if zone is not None:
        return zone.fast if shipping_type == ShippingType.FAST else zone.normal
    return config.fast_rate if shipping_type == ShippingType.FAST else config.normal_rate


def shipping_cost(
    weight,
    shipping_type: ShippingType,
    config: PricingConfig,
    origin: str | None = None,
) -> int:
    """International shipping cost for a weighed parcel, rounded."""
    return round_amount(to_amount(weight) * shipping_rate(config, shipping_type, origin))


def quote(
    amount,
    exchange_rate,
    weight,
    shipping_type: ShippingType,
    config: PricingConfig,
    origin: str | None = None,
    commission_type: str = PERCENTAGE,
    commission_value: float | None = None,
) -> Quote:
    """Estimate the total price of a product for a prospective client.

    Args:
        amount: Total product price in the store currency.
        exchange_rate: MRU per unit of the store currency.
        weight: Estimated weight in kilograms.
        shipping_type: Fast or normal shipping.
        config: Office pricing settings.
        origin: Shipping origin; defaults to ``config.default_origin``.
        commission_type: ``"percentage"`` of the product price, floored at
            ``config.min_commission``, or a ``"fixed"`` amount.
        commission_value: Percentage or fixed amount; defaults to
            ``config.commission_rate``.
    """
    if commission_type not in (PERCENTAGE, FIXED):
        raise ValueError(f"Unknown commission type: {commission_type}")

    product_mru = to_amount(amount) * to_amount(exchange_rate)
    shipping = to_amount(weight) * shipping_rate(config, shipping_type, origin)
    value = config.commission_rate if commission_value is None else to_amount(commission_value)

    min_applied = False
    if commission_type == PERCENTAGE:
        raw = product_mru * value / 100
        commission = max(raw, config.min_commission)
        min_applied = raw < config.min_commission
    else:
        commission = value

    zone = config.zone_for(origin)
    return Quote(
        product_mru=product_mru,
        shipping_cost=shipping,
        commission=commission,
        total=round_amount(product_mru + shipping + commission),
        zone_name=zone.name if zone else None,
        min_commission_applied=min_applied,
    )
