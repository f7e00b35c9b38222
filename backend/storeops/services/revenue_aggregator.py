# Overview: Per-store daily revenue totals and categorical breakdowns.

"""
Revenue aggregation for one store and one day.

Amounts are accumulated as Decimal built from each value's string form, so
POS prices (two decimals) add up exactly; rounding to cents happens once,
when the record is serialized. Every breakdown dimension buckets missing
categories under a sentinel key, which keeps each dimension's bucket sum
equal to the store total; buckets are rounded together (allocate_cents) so
the rounded buckets still add up to the rounded total.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation


CENT = Decimal("0.01")
ZERO = Decimal("0")

NET_FIELD = "finalPriceWithSessionDiscountsAndSurcharges"
GROSS_FIELD = "finalPrice"


def round_money(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def allocate_cents(amounts: list[Decimal]) -> list[float]:
    """
    Round a list of bucket amounts to cents so they still add up to the
    rounded sum (largest-remainder allocation).

    WHY: rounding each bucket on its own drifts once buckets carry sub-cent
    values (5 x 0.005 rounds to 0.05 per bucket, 0.03 as a total).
    """
    total_cents = (sum(amounts, ZERO) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    scaled = [amount * 100 for amount in amounts]
    cents = [value.to_integral_value(rounding=ROUND_FLOOR) for value in scaled]
    shortfall = int(total_cents - sum(cents, ZERO))
    # Ties keep input order (sorted is stable)
    by_remainder = sorted(range(len(amounts)), key=lambda i: scaled[i] - cents[i], reverse=True)
    for i in by_remainder[:shortfall]:
        cents[i] += 1
    return [float(value / 100) for value in cents]


def to_amount(value) -> Decimal:
    """Numeric POS value as Decimal; missing or non-numeric values count as 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, float) and not math.isfinite(value):
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return amount if amount.is_finite() else ZERO


@dataclass
class RevenueAmounts:
    net: Decimal = ZERO
    gross: Decimal = ZERO

    def add(self, net: Decimal, gross: Decimal) -> None:
        self.net += net
        self.gross += gross


@dataclass(frozen=True)
class BreakdownDimension:
    field: str
    sentinel: str
    output_key: str

    def category(self, item: dict) -> str:
        value = item.get(self.field)
        text = "" if value is None else str(value).strip()
        return text or self.sentinel


BREAKDOWN_DIMENSIONS = (
    BreakdownDimension("sourceApp", "no_app", "breakdown_by_sourceApp"),
    BreakdownDimension("sourceType", "no_type", "breakdown_by_sourceType"),
    BreakdownDimension("moneyTypeName", "no_payment_type", "breakdown_by_moneyTypeName"),
    BreakdownDimension("saleTypeName", "no_sale_type", "breakdown_by_saleTypeName"),
)


@dataclass
class DailyStoreRevenueRecord:
    store_id: str
    store_name: str
    date: str
    total: RevenueAmounts = field(default_factory=RevenueAmounts)
    total_orders: int = 0
    total_items: int = 0
    # output_key -> category -> amounts, categories in first-seen order
    breakdowns: dict[str, dict[str, RevenueAmounts]] = field(
        default_factory=lambda: {dim.output_key: {} for dim in BREAKDOWN_DIMENSIONS}
    )

    def to_dict(self) -> dict:
        payload = {
            "store_id": self.store_id,
            "store_name": self.store_name,
            "date": self.date,
            "total_" + NET_FIELD: round_money(self.total.net),
            "total_" + GROSS_FIELD: round_money(self.total.gross),
            "total_orders": self.total_orders,
            "total_items": self.total_items,
        }
        for output_key, buckets in self.breakdowns.items():
            categories = list(buckets)
            net = allocate_cents([buckets[c].net for c in categories])
            gross = allocate_cents([buckets[c].gross for c in categories])
            payload[output_key] = {
                category: {NET_FIELD: net[i], GROSS_FIELD: gross[i]}
                for i, category in enumerate(categories)
            }
        return payload


def aggregate(store: dict, items: list[dict], day: date) -> DailyStoreRevenueRecord:
    """
    Build the day's summary for one store from its resolved items.

    Called for every directory store; an empty item list gives an all-zero
    record with empty breakdowns.
    """
    record = DailyStoreRevenueRecord(
        store_id=str(store["id"]),
        store_name=store.get("name") or "",
        date=day.isoformat(),
    )
    orders: set[str] = set()

    for item in items:
        net = to_amount(item.get(NET_FIELD))
        gross = to_amount(item.get(GROSS_FIELD))
        record.total.add(net, gross)

        order_key = item.get("order")
        if order_key is not None and str(order_key).strip():
            orders.add(str(order_key).strip())

        for dim in BREAKDOWN_DIMENSIONS:
            buckets = record.breakdowns[dim.output_key]
            buckets.setdefault(dim.category(item), RevenueAmounts()).add(net, gross)

    record.total_orders = len(orders)
    record.total_items = len(items)
    return record
