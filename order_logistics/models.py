"""Shared data models for order storage, delivery and billing."""

from dataclasses import dataclass, field
from enum import Enum

from order_logistics.money import round_amount

# Pseudo-location for parcels kept outside the drawers. Unlimited, unnumbered.
FLOOR = "Floor"

# Canonical grid used when a drawer has no explicit capacity.
DEFAULT_DRAWER_ROWS = 1
DEFAULT_DRAWER_COLUMNS = 5


class OrderStatus(str, Enum):
    """Order lifecycle status, valued as stored in the database."""

    NEW = "new"
    ORDERED = "ordered"
    SHIPPED_FROM_STORE = "shipped_from_store"
    ARRIVED_AT_OFFICE = "arrived_at_office"
    STORED = "stored"
    OUT_FOR_DELIVERY = "out_for_delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ShippingType(str, Enum):
    FAST = "fast"
    NORMAL = "normal"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class RunState(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    SETTLED = "settled"


@dataclass(frozen=True)
class Order:
    """A client order as read from the database.

    Monetary fields may be ``None``; the ledger treats missing values as 0.
    """

    id: str
    client_id: str
    store_id: str = ""
    status: OrderStatus = OrderStatus.NEW
    local_order_id: str = ""
    shipment_id: str | None = None
    price_in_mru: float | None = None
    commission: float | None = None
    shipping_cost: float | None = None
    local_delivery_cost: float | None = None
    amount_paid: float | None = None
    is_delivery_fee_prepaid: bool = False
    weight: float | None = None
    storage_location: str | None = None
    shipping_type: ShippingType = ShippingType.NORMAL
    origin_center: str | None = None
    driver_id: str | None = None
    driver_name: str | None = None
    delivery_run_id: str | None = None
    withdrawal_date: str | None = None

    @property
    def is_weighed(self) -> bool:
        try:
            return self.weight is not None and float(self.weight) > 0
        except (TypeError, ValueError):
            return False


@dataclass(frozen=True)
class StorageDrawer:
    """A physical storage unit subdivided into numbered slots."""

    id: str
    name: str
    capacity: int | None = None
    rows: int | None = None
    columns: int | None = None

    @property
    def slot_count(self) -> int:
        if self.capacity and self.capacity > 0:
            return int(self.capacity)
        return (self.rows or DEFAULT_DRAWER_ROWS) * (self.columns or DEFAULT_DRAWER_COLUMNS)

    def slot_label(self, number: int) -> str:
        return f"{self.name}-{number:02d}"

    def slot_labels(self) -> list[str]:
        """Return the slot addresses ``<name>-01`` .. ``<name>-<NN>`` in order."""
        return [self.slot_label(i) for i in range(1, self.slot_count + 1)]


@dataclass(frozen=True)
class Suggestion:
    """A recommended storage slot. ``location`` is None when nothing fits."""

    location: str | None
    score: int
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class DrawerUsage:
    name: str
    occupied: int
    capacity: int

    @property
    def fill_ratio(self) -> float:
        if self.capacity <= 0:
            return 0.0
        return min(self.occupied / self.capacity, 1.0)

    @property
    def is_full(self) -> bool:
        return self.occupied >= self.capacity


@dataclass(frozen=True)
class Allocation:
    """Share of a bulk payment assigned to one order."""

    order_id: str
    due: float
    allocated: float
    new_amount_paid: float
    records_payment: bool


@dataclass(frozen=True)
class SettlementResult:
    """Cash reconciliation of a driver's completed orders."""

    completed_order_ids: tuple[str, ...]
    excluded_order_ids: tuple[str, ...]
    total_base_debt_collected: int
    total_delivery_fees_from_client: int
    total_driver_earnings: int
    total_cash_in_hand: int
    net_total: int

    @property
    def driver_owes_office(self) -> bool:
        return self.net_total >= 0

    @property
    def amount_due(self) -> int:
        return abs(self.net_total)


@dataclass(frozen=True)
class BillingSummary:
    total_revenue: int = 0
    total_collected: int = 0
    total_outstanding: int = 0
    count_paid: int = 0
    count_partial: int = 0
    count_unpaid: int = 0

    @property
    def collection_rate(self) -> int:
        """Collected share of revenue as a whole percentage."""
        if self.total_revenue <= 0:
            return 0
        return round_amount(self.total_collected * 100 / self.total_revenue)


@dataclass
class DeliveryRun:
    """Orders assigned to one driver for one delivery trip."""

    run_id: str
    driver_id: str
    driver_name: str | None = None
    orders: list[Order] = field(default_factory=list)
    state: RunState = RunState.DRAFT
    total_cash_to_collect: int = 0
    actually_collected: int = 0
    completed_count: int = 0
