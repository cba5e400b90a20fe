"""
FORST aggregation primitives.

    group_and_sum, group_and_count   one accumulator for every report cube
    sort_by_zone_order               fixed zone display order
    activity/forecast/order_month    month resolution
    deviation_percent, hit_rate      derived metrics

Each report uses one of three month resolvers as its time axis:

    activity_month : po_expected_month → offer_month → created_at
    forecast_month : po_expected_month only
    order_month    : po_received_month → po_date
"""

from __future__ import annotations

import math
from collections.abc import Callable, Hashable, Iterable, Sequence
from datetime import date

from forst.services.forst_records import OfferRecord, ReportSettings

MONTH_NAMES = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
               "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
MONTHS = tuple(range(1, 13))
QUARTERS = (
    ("Q1", (1, 2, 3)),
    ("Q2", (4, 5, 6)),
    ("Q3", (7, 8, 9)),
    ("Q4", (10, 11, 12)),
)


# ═════════════════════════════════════════════════════════════════════════════
# Group & sum
# ═════════════════════════════════════════════════════════════════════════════


def _accumulate(rows, key, value, keys, zero):
    buckets = dict.fromkeys(keys, zero) if keys is not None else {}
    for row in rows:
        k = key(row)
        if k is None:
            continue
        if keys is not None and k not in buckets:
            continue
        buckets[k] = buckets.get(k, zero) + value(row)
    return buckets


def group_and_sum(
    rows: Iterable,
    key: Callable[[object], Hashable | None],
    value: Callable[[object], float],
    keys: Sequence[Hashable] | None = None,
) -> dict:
    """Sum ``value(row)`` into buckets keyed by ``key(row)``.

    Keys may be tuples for multi-dimensional cubes. A key of ``None`` drops
    the row. When ``keys`` is given every bucket starts at 0.0 in that order
    and rows keyed outside it are ignored.
    """
    return _accumulate(rows, key, value, keys, 0.0)


def group_and_count(
    rows: Iterable,
    key: Callable[[object], Hashable | None],
    keys: Sequence[Hashable] | None = None,
) -> dict:
    """Count rows per ``key(row)``; same bucket rules as :func:`group_and_sum`."""
    return _accumulate(rows, key, lambda _row: 1, keys, 0)


def cube_keys(*axes: Sequence[Hashable]) -> list[tuple]:
    """Cartesian product of axes as tuple keys, in axis order."""
    keys: list[tuple] = [()]
    for axis in axes:
        keys = [k + (item,) for k in keys for item in axis]
    return keys


# ═════════════════════════════════════════════════════════════════════════════
# Zone ordering
# ═════════════════════════════════════════════════════════════════════════════


def sort_by_zone_order(items, zone_order: Sequence[str], name=lambda item: item.name):
    """Known zone names in configured order, then the rest alphabetically."""
    rank = {zone_name: idx for idx, zone_name in enumerate(zone_order)}
    unknown = len(rank)

    def _sort_key(item):
        zone_name = name(item) or ""
        idx = rank.get(zone_name, unknown)
        return (idx, zone_name if idx == unknown else "")

    return sorted(items, key=_sort_key)


# ═════════════════════════════════════════════════════════════════════════════
# Month resolution
# ═════════════════════════════════════════════════════════════════════════════


def month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def _month_of(value: date | None) -> str | None:
    if value is None:
        return None
    return month_key(value.year, value.month)


def activity_month(offer: OfferRecord) -> str | None:
    return offer.po_expected_month or offer.offer_month or _month_of(offer.created_at)


def forecast_month(offer: OfferRecord) -> str | None:
    return offer.po_expected_month or None


def order_month(offer: OfferRecord) -> str | None:
    return offer.po_received_month or _month_of(offer.po_date)


def month_in_year(month_str: str | None, year: int) -> int | None:
    """Month number 1-12 of an exact ``"YYYY-MM"`` string inside ``year``, else None."""
    prefix = f"{year}-"
    if not month_str or not month_str.startswith(prefix):
        return None
    digits = month_str[len(prefix):]
    if len(digits) != 2 or not digits.isdigit():
        return None
    month = int(digits)
    return month if 1 <= month <= 12 else None


# ═════════════════════════════════════════════════════════════════════════════
# Year membership
# ═════════════════════════════════════════════════════════════════════════════


def is_year_offer(offer: OfferRecord, year: int, settings: ReportSettings) -> bool:
    """Offer counts for ``year``: any of its month fields in the year, status not excluded."""
    if offer.status in settings.excluded_statuses:
        return False
    prefix = f"{year}-"
    return bool(
        (offer.po_expected_month or "").startswith(prefix)
        or (offer.offer_month or "").startswith(prefix)
        or (offer.created_at is not None and offer.created_at.year == year)
    )


def is_year_order(offer: OfferRecord, year: int, settings: ReportSettings) -> bool:
    """Offer is an order for ``year``: received in the year, stage is an order stage."""
    if offer.stage not in settings.order_stages:
        return False
    return bool(
        (offer.po_received_month or "").startswith(f"{year}-")
        or (offer.po_date is not None and offer.po_date.year == year)
    )


# ═════════════════════════════════════════════════════════════════════════════
# Derived metrics
# ═════════════════════════════════════════════════════════════════════════════


def percentage(value: float, total: float) -> float:
    """Share of ``total`` in percent; 0 when total is not positive."""
    return value / total * 100 if total > 0 else 0.0


def deviation_percent(actual: float, target: float) -> float:
    """(actual − target) / target × 100; 0 when target is not positive."""
    return (actual - target) / target * 100 if target > 0 else 0.0


def hit_rate(orders_count: int, offers_count: int) -> int:
    """Orders per offer in percent, rounded half up to an integer."""
    return int(math.floor(percentage(orders_count, offers_count) + 0.5))


def open_funnel(offers_value: float, orders_value: float) -> float:
    return max(0.0, offers_value - orders_value)


def balance(target: float, actual: float) -> float:
    return target - actual


def to_lakhs(value: float, divisor: int = 100000) -> float:
    return round((value or 0) / divisor, 2)
