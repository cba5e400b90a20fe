"""
FORST report builders.

Each builder is a pure function of a ``ReportInputs`` bundle and returns the
camelCase dict the dashboard consumes. All monetary fields are raw rupee
floats; only ``hitRate`` is rounded here.

Usage:
    from forst.services.forst_queries import load_report_inputs
    from forst.services.forst_reports import build_highlights

    inputs = load_report_inputs(2025, settings)
    data = build_highlights(inputs)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta, timezone

from forst.services.aggregation import (
    MONTH_NAMES,
    MONTHS,
    QUARTERS,
    activity_month,
    balance,
    cube_keys,
    deviation_percent,
    forecast_month,
    group_and_count,
    group_and_sum,
    hit_rate,
    is_year_offer,
    is_year_order,
    month_in_year,
    month_key,
    open_funnel,
    order_month,
    percentage,
    sort_by_zone_order,
)
from forst.services.forst_records import (
    UNASSIGNED_PERSON,
    UNKNOWN_PRODUCT,
    OfferRecord,
    ReportInputs,
    ReportSettings,
    TargetKind,
    ZoneRecord,
)

logger = logging.getLogger(__name__)

PIPELINE_STAGES = ("INITIAL", "PROPOSAL_SENT", "NEGOTIATION", "PO_RECEIVED", "WON", "LOST")
CLOSED_STAGES = frozenset({"WON", "LOST", "CANCELLED"})
AT_RISK_DAYS = 60


def _offer_value(offer: OfferRecord) -> float:
    return offer.offer_value or 0.0


def _po_value(offer: OfferRecord) -> float:
    return offer.po_value or 0.0


def _by_zone(offer: OfferRecord):
    return offer.zone_id


# ── Shared selection ─────────────────────────────────────────────────────────


def _year_offers(inputs: ReportInputs) -> list[OfferRecord]:
    return [o for o in inputs.offers if is_year_offer(o, inputs.year, inputs.settings)]


def _year_orders(inputs: ReportInputs) -> list[OfferRecord]:
    return [o for o in inputs.orders if is_year_order(o, inputs.year, inputs.settings)]


def _booked(offers: Iterable[OfferRecord], settings: ReportSettings) -> list[OfferRecord]:
    return [o for o in offers if o.stage in settings.order_stages]


def _ordered_zones(inputs: ReportInputs, zone_id: int | None = None) -> list[ZoneRecord]:
    zones = sort_by_zone_order(inputs.zones, inputs.settings.zone_order)
    if zone_id is None:
        return zones
    return [z for z in zones if z.id == zone_id]


def _year_targets(inputs: ReportInputs):
    if inputs.targets.kind == TargetKind.YEARLY:
        return [t for t in inputs.targets.records if t.target_period == str(inputs.year)]
    return [t for t in inputs.targets.records if month_in_year(t.target_period, inputs.year)]


def zone_bu(inputs: ReportInputs) -> dict[int, float]:
    """Yearly BU per zone: yearly targets as-is, else the sum of monthly targets."""
    return group_and_sum(
        _year_targets(inputs),
        key=lambda t: t.zone_id,
        value=lambda t: t.target_value,
        keys=[z.id for z in inputs.zones],
    )


def monthly_bu(inputs: ReportInputs) -> dict[tuple[int, int], float]:
    """BU per (zone, month): yearly ÷ 12, or that month's own target."""
    zone_ids = [z.id for z in inputs.zones]
    if inputs.targets.kind == TargetKind.YEARLY:
        yearly = zone_bu(inputs)
        return {(zone_id, m): yearly[zone_id] / 12 for zone_id in zone_ids for m in MONTHS}
    return group_and_sum(
        _year_targets(inputs),
        key=lambda t: (t.zone_id, month_in_year(t.target_period, inputs.year)),
        value=lambda t: t.target_value,
        keys=cube_keys(zone_ids, MONTHS),
    )


def _performance(num_offers, offers_value, orders_received, num_orders, order_booking, bu):
    return {
        "numOffers": num_offers,
        "offersValue": offers_value,
        "ordersReceived": orders_received,
        "numOrders": num_orders,
        "openFunnel": open_funnel(offers_value, orders_received),
        "orderBooking": order_booking,
        "bu": bu,
        "devPercent": deviation_percent(orders_received, bu),
        "achievement": percentage(orders_received, bu),
        "balanceBu": balance(bu, orders_received),
        "hitRate": hit_rate(num_orders, num_offers),
    }


# ═════════════════════════════════════════════════════════════════════════════
# 1. Offers highlights
# ═════════════════════════════════════════════════════════════════════════════


def build_highlights(inputs: ReportInputs) -> dict:
    """Zone rollup of offers, orders, funnel, booking and BU for the year."""
    offers = _year_offers(inputs)
    orders = _year_orders(inputs)
    zones = _ordered_zones(inputs)
    zone_ids = [z.id for z in zones]

    num_offers = group_and_count(offers, _by_zone, zone_ids)
    offers_value = group_and_sum(offers, _by_zone, _offer_value, zone_ids)
    num_orders = group_and_count(orders, _by_zone, zone_ids)
    orders_value = group_and_sum(orders, _by_zone, _po_value, zone_ids)
    booking = group_and_sum(_booked(offers, inputs.settings), _by_zone, _offer_value, zone_ids)
    bu = zone_bu(inputs)

    rows = [
        {
            "zoneId": z.id,
            "zoneName": z.name,
            "shortForm": z.short_form,
            **_performance(
                num_offers[z.id], offers_value[z.id], orders_value[z.id],
                num_orders[z.id], booking[z.id], bu[z.id],
            ),
        }
        for z in zones
    ]

    totals = {
        "zoneId": None,
        "zoneName": "TOTAL",
        "shortForm": "TOTAL",
        **_performance(
            sum(r["numOffers"] for r in rows),
            sum(r["offersValue"] for r in rows),
            sum(r["ordersReceived"] for r in rows),
            sum(r["numOrders"] for r in rows),
            sum(r["orderBooking"] for r in rows),
            sum(r["bu"] for r in rows),
        ),
    }

    return {
        "year": inputs.year,
        "zones": rows,
        "totals": totals,
        "hitRate": totals["hitRate"],
        "totalOffers": totals["numOffers"],
        "totalOrders": totals["numOrders"],
    }


# ═════════════════════════════════════════════════════════════════════════════
# 2. Zone-wise monthly
# ═════════════════════════════════════════════════════════════════════════════


def build_zone_monthly(inputs: ReportInputs, zone_id: int | None = None) -> dict:
    """Twelve month rows per zone, offers by activity month, orders by order month."""
    year = inputs.year
    offers = _year_offers(inputs)
    orders = _year_orders(inputs)
    zones = _ordered_zones(inputs, zone_id)
    keys = cube_keys([z.id for z in zones], MONTHS)

    def by_activity(o):
        return (o.zone_id, month_in_year(activity_month(o), year))

    def by_order(o):
        return (o.zone_id, month_in_year(order_month(o), year))

    num_offers = group_and_count(offers, by_activity, keys)
    offers_value = group_and_sum(offers, by_activity, _offer_value, keys)
    orders_value = group_and_sum(orders, by_order, _po_value, keys)
    booking = group_and_sum(_booked(offers, inputs.settings), by_activity, _offer_value, keys)
    month_bu = monthly_bu(inputs)
    year_bu = zone_bu(inputs)

    result = []
    for z in zones:
        months = []
        prev = None
        for m in MONTHS:
            k = (z.id, m)
            bu = month_bu.get(k, 0.0)
            row = {
                "month": m,
                "monthName": MONTH_NAMES[m - 1],
                "monthKey": month_key(year, m),
                "numOffers": num_offers[k],
                "offersValue": offers_value[k],
                "ordersReceived": orders_value[k],
                "openFunnel": open_funnel(offers_value[k], orders_value[k]),
                "orderBooking": booking[k],
                "bu": bu,
                "devPercent": deviation_percent(orders_value[k], bu),
                "achievement": percentage(orders_value[k], bu),
                "balanceBu": balance(bu, orders_value[k]),
                "offersMomPercent": (
                    deviation_percent(offers_value[k], prev["offersValue"]) if prev else 0.0
                ),
                "ordersMomPercent": (
                    deviation_percent(orders_value[k], prev["ordersReceived"]) if prev else 0.0
                ),
            }
            months.append(row)
            prev = row

        total_offers = sum(r["offersValue"] for r in months)
        total_orders = sum(r["ordersReceived"] for r in months)
        total_bu = year_bu.get(z.id, 0.0)
        result.append({
            "zoneId": z.id,
            "zoneName": z.name,
            "shortForm": z.short_form,
            "months": months,
            "totals": {
                "numOffers": sum(r["numOffers"] for r in months),
                "offersValue": total_offers,
                "ordersReceived": total_orders,
                "openFunnel": open_funnel(total_offers, total_orders),
                "orderBooking": sum(r["orderBooking"] for r in months),
                "bu": total_bu,
                "devPercent": deviation_percent(total_orders, total_bu),
                "achievement": percentage(total_orders, total_bu),
                "balanceBu": balance(total_bu, total_orders),
            },
        })

    return {"year": year, "zones": result}


# ═════════════════════════════════════════════════════════════════════════════
# 3. Quarterly forecast
# ═════════════════════════════════════════════════════════════════════════════


def build_quarterly(inputs: ReportInputs, today: date | None = None) -> dict:
    """
    Forecast (expected month) vs actual orders per quarter against BU ÷ 4.

    ``byZone`` is keyed by zone name; ServiceZone.name is unique.
    ``currentQuarter`` follows ``today`` (default: the current date).
    """
    year = inputs.year
    today = today or date.today()
    offers = _year_offers(inputs)
    orders = _year_orders(inputs)
    zones = _ordered_zones(inputs)
    zone_ids = [z.id for z in zones]

    def by_forecast(o):
        return month_in_year(forecast_month(o), year)

    forecast = group_and_sum(offers, by_forecast, _offer_value, MONTHS)
    actual = group_and_sum(orders, lambda o: month_in_year(order_month(o), year), _po_value, MONTHS)
    zone_forecast = group_and_sum(
        offers,
        lambda o: (o.zone_id, by_forecast(o)),
        _offer_value,
        cube_keys(zone_ids, MONTHS),
    )

    yearly_target = sum(zone_bu(inputs).values())
    quarter_target = yearly_target / 4

    months = [
        {
            "month": m,
            "monthName": MONTH_NAMES[m - 1],
            "forecast": forecast[m],
            "actual": actual[m],
            "byZone": {z.name: zone_forecast[(z.id, m)] for z in zones},
        }
        for m in MONTHS
    ]

    quarters = []
    for idx, (name, q_months) in enumerate(QUARTERS, start=1):
        q_forecast = sum(forecast[m] for m in q_months)
        q_actual = sum(actual[m] for m in q_months)
        quarters.append({
            "quarter": name,
            "quarterIndex": idx,
            "months": list(q_months),
            "forecast": q_forecast,
            "actual": q_actual,
            "byZone": {
                z.name: sum(zone_forecast[(z.id, m)] for m in q_months) for z in zones
            },
            "target": quarter_target,
            "forecastAchievement": percentage(q_forecast, quarter_target),
            "actualAchievement": percentage(q_actual, quarter_target),
            "devPercent": deviation_percent(q_actual, quarter_target),
            "gap": balance(quarter_target, q_actual),
        })

    current_quarter = (today.month - 1) // 3 + 1
    return {
        "year": year,
        "targetSource": inputs.targets.kind.value,
        "yearlyTarget": yearly_target,
        "quarterTarget": quarter_target,
        "currentQuarter": current_quarter,
        "currentQuarterData": quarters[current_quarter - 1],
        "zones": [z.name for z in zones],
        "months": months,
        "quarters": quarters,
    }


# ═════════════════════════════════════════════════════════════════════════════
# 4. Product-type summary (zone × person × product)
# ═════════════════════════════════════════════════════════════════════════════


def _person_names(offers: Iterable[OfferRecord]) -> dict:
    names: dict = {}
    for o in offers:
        if o.person_id is None:
            names.setdefault(None, UNASSIGNED_PERSON)
        else:
            names.setdefault(o.person_id, o.person_name)
    return names


def _person_sort_key(entry: dict, total_field: str):
    # Unassigned last, then largest value first, then name
    return (entry["userId"] is None, -entry[total_field], entry["userName"])


def build_product_type_summary(inputs: ReportInputs, zone_id: int | None = None) -> dict:
    """Offer value per product type for every person inside every zone."""
    settings = inputs.settings
    codes = settings.product_codes_with_unknown
    zones = _ordered_zones(inputs, zone_id)
    zone_ids = {z.id for z in zones}
    offers = [o for o in _year_offers(inputs) if o.zone_id in zone_ids]

    cells = group_and_sum(
        offers,
        lambda o: (o.zone_id, o.person_id, settings.normalize_product(o.product_type)),
        _offer_value,
    )
    names = _person_names(offers)

    zone_rows = []
    for z in zones:
        person_ids = {p for (zid, p, _code) in cells if zid == z.id}
        persons = []
        for person_id in person_ids:
            products = {code: cells.get((z.id, person_id, code), 0.0) for code in codes}
            persons.append({
                "userId": person_id,
                "userName": names.get(person_id, UNASSIGNED_PERSON),
                "products": products,
                "total": sum(products.values()),
            })
        persons.sort(key=lambda p: _person_sort_key(p, "total"))

        product_totals = {code: sum(p["products"][code] for p in persons) for code in codes}
        zone_rows.append({
            "zoneId": z.id,
            "zoneName": z.name,
            "persons": persons,
            "productTotals": product_totals,
            "total": sum(product_totals.values()),
        })

    product_totals = {code: sum(z["productTotals"][code] for z in zone_rows) for code in codes}
    grand_total = sum(product_totals.values())

    # products with at least one offer, largest value first
    counts = group_and_count(offers, lambda o: settings.normalize_product(o.product_type), codes)
    distribution = [
        {
            "productType": code,
            "label": settings.product_label(code),
            "count": counts[code],
            "value": product_totals[code],
            "percentage": percentage(product_totals[code], grand_total),
        }
        for code in codes
        if counts[code]
    ]
    distribution.sort(key=lambda d: -d["value"])

    return {
        "year": inputs.year,
        "productTypes": settings.product_type_list(),
        "zones": zone_rows,
        "productTotals": product_totals,
        "grandTotal": grand_total,
        "distribution": distribution,
    }


# ═════════════════════════════════════════════════════════════════════════════
# 5. Person-wise performance (person × month × product)
# ═════════════════════════════════════════════════════════════════════════════


def _zone_leaderboard(inputs, offers, orders, zone_id=None) -> list[dict]:
    zones = _ordered_zones(inputs, zone_id)
    zone_ids = [z.id for z in zones]
    num_offers = group_and_count(offers, _by_zone, zone_ids)
    offers_value = group_and_sum(offers, _by_zone, _offer_value, zone_ids)
    num_orders = group_and_count(orders, _by_zone, zone_ids)
    orders_value = group_and_sum(orders, _by_zone, _po_value, zone_ids)
    return [
        {
            "zoneId": z.id,
            "zoneName": z.name,
            "numOffers": num_offers[z.id],
            "offersValue": offers_value[z.id],
            "ordersReceived": orders_value[z.id],
            "numOrders": num_orders[z.id],
            "hitRate": hit_rate(num_orders[z.id], num_offers[z.id]),
        }
        for z in zones
    ]


def build_person_performance(
    inputs: ReportInputs,
    zone_id: int | None = None,
    user_id: int | None = None,
    limit: int | None = None,
) -> dict:
    """
    Offer value per person, month and product type, plus order conversion.

    Persons are ranked by offer value; ``limit`` keeps the top N. Month and
    grand totals always cover every selected person.
    """
    year = inputs.year
    settings = inputs.settings
    codes = settings.product_codes_with_unknown
    zone_names = {z.id: z.name for z in inputs.zones}

    def selected(o):
        if zone_id is not None and o.zone_id != zone_id:
            return False
        return user_id is None or o.person_id == user_id

    offers = [o for o in _year_offers(inputs) if selected(o)]
    orders = [o for o in _year_orders(inputs) if selected(o)]

    def by_person(o):
        return (o.person_id,)

    num_offers = group_and_count(offers, by_person)
    offers_value = group_and_sum(offers, by_person, _offer_value)
    num_orders = group_and_count(orders, by_person)
    orders_value = group_and_sum(orders, by_person, _po_value)
    product_cells = group_and_sum(
        offers,
        lambda o: (o.person_id, settings.normalize_product(o.product_type)),
        _offer_value,
    )
    month_cells = group_and_sum(
        offers,
        lambda o: (
            o.person_id,
            month_in_year(activity_month(o), year),
            settings.normalize_product(o.product_type),
        ),
        _offer_value,
    )
    month_orders = group_and_sum(
        orders,
        lambda o: (o.person_id, month_in_year(order_month(o), year)),
        _po_value,
    )

    names = _person_names(offers + orders)
    home_zone: dict = {}
    for o in offers + orders:
        home_zone.setdefault(o.person_id, zone_names.get(o.zone_id, "Unknown"))

    persons = []
    for (person_id,) in {**num_offers, **num_orders}:
        months = []
        for m in MONTHS:
            products = {code: month_cells.get((person_id, m, code), 0.0) for code in codes}
            months.append({
                "month": m,
                "monthName": MONTH_NAMES[m - 1],
                "products": products,
                "total": sum(products.values()),
                "orders": month_orders.get((person_id, m), 0.0),
            })
        product_totals = {code: product_cells.get((person_id, code), 0.0) for code in codes}
        persons.append({
            "userId": person_id,
            "userName": names.get(person_id, UNASSIGNED_PERSON),
            "zoneName": home_zone.get(person_id, "Unknown"),
            "numOffers": num_offers.get((person_id,), 0),
            "offersValue": offers_value.get((person_id,), 0.0),
            "ordersReceived": orders_value.get((person_id,), 0.0),
            "numOrders": num_orders.get((person_id,), 0),
            "hitRate": hit_rate(num_orders.get((person_id,), 0), num_offers.get((person_id,), 0)),
            "months": months,
            "productTotals": product_totals,
            "total": sum(product_totals.values()),
        })
    persons.sort(key=lambda p: _person_sort_key(p, "offersValue"))
    for rank, person in enumerate(persons, start=1):
        person["rank"] = rank

    month_totals = [sum(p["months"][m - 1]["total"] for p in persons) for m in MONTHS]
    month_order_totals = [sum(p["months"][m - 1]["orders"] for p in persons) for m in MONTHS]
    return {
        "year": year,
        "productTypes": settings.product_type_list(),
        "persons": persons[:limit] if limit else persons,
        "totalPersons": len(persons),
        "monthTotals": month_totals,
        "monthOrderTotals": month_order_totals,
        "grandTotal": sum(p["total"] for p in persons),
        "zoneLeaderboard": _zone_leaderboard(inputs, offers, orders, zone_id),
    }


# ═════════════════════════════════════════════════════════════════════════════
# 6. Product forecast (zone × product × month)
# ═════════════════════════════════════════════════════════════════════════════


def build_product_forecast(inputs: ReportInputs) -> dict:
    """Forecast offer value per zone, product type and expected month."""
    year = inputs.year
    settings = inputs.settings
    zones = _ordered_zones(inputs)
    zone_ids = [z.id for z in zones]
    codes = settings.product_codes_with_unknown

    cells = group_and_sum(
        _year_offers(inputs),
        lambda o: (
            o.zone_id,
            settings.normalize_product(o.product_type),
            month_in_year(forecast_month(o), year),
        ),
        _offer_value,
        cube_keys(zone_ids, codes, MONTHS),
    )

    zone_rows = []
    for z in zones:
        products = []
        for code in codes:
            months = [cells[(z.id, code, m)] for m in MONTHS]
            if code == UNKNOWN_PRODUCT and not any(months):
                continue
            products.append({
                "productType": code,
                "label": settings.product_label(code),
                "months": months,
                "total": sum(months),
            })
        month_totals = [sum(p["months"][m - 1] for p in products) for m in MONTHS]
        zone_rows.append({
            "zoneId": z.id,
            "zoneName": z.name,
            "products": products,
            "monthTotals": month_totals,
            "total": sum(month_totals),
        })

    product_totals = {
        code: sum(cells[(zid, code, m)] for zid in zone_ids for m in MONTHS) for code in codes
    }
    month_totals = [sum(z["monthTotals"][m - 1] for z in zone_rows) for m in MONTHS]
    return {
        "year": year,
        "productTypes": settings.product_type_list(),
        "zones": zone_rows,
        "productTotals": product_totals,
        "monthTotals": month_totals,
        "grandTotal": sum(month_totals),
    }


# ═════════════════════════════════════════════════════════════════════════════
# 7. Complete report
# ═════════════════════════════════════════════════════════════════════════════


def build_complete_report(inputs: ReportInputs, generated_at: datetime | None = None) -> dict:
    """All six reports over one input load."""
    generated_at = generated_at or datetime.now(timezone.utc)
    return {
        "year": inputs.year,
        "generatedAt": generated_at.isoformat(),
        "highlights": build_highlights(inputs),
        "zoneMonthly": build_zone_monthly(inputs),
        "quarterly": build_quarterly(inputs),
        "productTypeSummary": build_product_type_summary(inputs),
        "personPerformance": build_person_performance(inputs),
        "productForecast": build_product_forecast(inputs),
    }


# ═════════════════════════════════════════════════════════════════════════════
# 8. Pipeline
# ═════════════════════════════════════════════════════════════════════════════


def _as_date(value) -> date | None:
    if value is None:
        return None
    return value.date() if isinstance(value, datetime) else value


def build_pipeline(
    year: int,
    offers: Sequence[OfferRecord],
    zones: Sequence[ZoneRecord],
    today: date | None = None,
) -> dict:
    """Stage distribution and conversion funnel of every offer created in the year."""
    today = today or date.today()
    zone_names = {z.id: z.name for z in zones}
    offers = [o for o in offers if o.created_at is not None and o.created_at.year == year]
    total = len(offers)

    counts = group_and_count(offers, lambda o: o.stage, PIPELINE_STAGES)
    values = group_and_sum(offers, lambda o: o.stage, _offer_value, PIPELINE_STAGES)
    stage_distribution = [
        {
            "stage": stage,
            "count": counts[stage],
            "value": values[stage],
            "percentage": percentage(counts[stage], total),
        }
        for stage in PIPELINE_STAGES
    ]

    funnel = []
    for label, stages in (
        ("All Offers", None),
        ("In Negotiation+", {"NEGOTIATION", "PO_RECEIVED", "WON"}),
        ("PO Received+", {"PO_RECEIVED", "WON"}),
        ("Won", {"WON"}),
    ):
        members = offers if stages is None else [o for o in offers if o.stage in stages]
        funnel.append({
            "stage": label,
            "count": len(members),
            "value": sum(_offer_value(o) for o in members),
            "rate": 100.0 if stages is None else percentage(len(members), total),
        })

    cutoff = today - timedelta(days=AT_RISK_DAYS)
    at_risk = [
        {
            "id": o.id,
            "referenceNumber": o.offer_reference_number,
            "customer": o.customer_name,
            "value": _offer_value(o),
            "daysSinceCreation": (today - _as_date(o.created_at)).days,
            "zone": zone_names.get(o.zone_id),
        }
        for o in offers
        if o.stage == "NEGOTIATION" and _as_date(o.created_at) < cutoff
    ][:10]

    won = [o for o in offers if o.stage == "WON"]
    recent_wins = [
        {
            "id": o.id,
            "referenceNumber": o.offer_reference_number,
            "customer": o.customer_name,
            "value": o.po_value or _offer_value(o),
            "zone": zone_names.get(o.zone_id),
        }
        for o in sorted(
            won,
            key=lambda o: _as_date(o.po_date or o.updated_at or o.created_at),
            reverse=True,
        )[:5]
    ]

    open_offers = [o for o in offers if o.stage not in CLOSED_STAGES]
    return {
        "year": year,
        "stageDistribution": stage_distribution,
        "funnel": funnel,
        "atRiskOffers": at_risk,
        "recentWins": recent_wins,
        "summary": {
            "totalOffers": total,
            "openPipeline": len(open_offers),
            "openValue": sum(_offer_value(o) for o in open_offers),
            "wonCount": len(won),
            "wonValue": sum(o.po_value or _offer_value(o) for o in won),
            "conversionRate": percentage(len(won), total),
        },
    }
