"""
FORST query layer.

Filtered reads of zones, offers, orders and zone targets for one report
year, converted into detached records so report builders never see ORM
objects. No pagination: the whole filtered set is loaded per request.
"""

from __future__ import annotations

import logging
from datetime import MAXYEAR, MINYEAR, datetime

from sqlalchemy import and_, false, or_
from sqlalchemy.orm import joinedload

from forst.models import db
from forst.models.sales import Offer, ServiceZone, User, ZoneTarget
from forst.services.forst_records import (
    OfferRecord,
    ReportInputs,
    ReportSettings,
    TargetKind,
    TargetRecord,
    TargetSet,
    ZoneRecord,
)

logger = logging.getLogger(__name__)


def _in_year(column, year: int, dates: bool = False):
    """``column`` falls inside ``year``; years outside the datetime range match nothing."""
    if not MINYEAR <= year <= MAXYEAR:
        return false()
    start, end = datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59, 999999)
    if dates:
        return column.between(start.date(), end.date())
    return column.between(start, end)


def _to_float(value) -> float:
    return float(value) if value is not None else 0.0


def _offer_record(offer: Offer) -> OfferRecord:
    return OfferRecord(
        id=offer.id,
        zone_id=offer.zone_id,
        offer_reference_number=offer.offer_reference_number,
        customer_name=offer.customer_name,
        product_type=offer.product_type,
        offer_value=_to_float(offer.offer_value),
        po_value=_to_float(offer.po_value),
        status=offer.status,
        stage=offer.stage,
        po_expected_month=offer.po_expected_month,
        offer_month=offer.offer_month,
        po_received_month=offer.po_received_month,
        po_date=offer.po_date,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
        assigned_to_id=offer.assigned_to_id,
        assigned_to_name=offer.assigned_to.name if offer.assigned_to else None,
        created_by_id=offer.created_by_id,
        created_by_name=offer.created_by.name if offer.created_by else None,
    )


def _scoped(query, zone_id: int | None, user_id: int | None):
    if zone_id is not None:
        query = query.filter(Offer.zone_id == zone_id)
    if user_id is not None:
        query = query.filter(or_(
            Offer.assigned_to_id == user_id,
            and_(Offer.assigned_to_id.is_(None), Offer.created_by_id == user_id),
        ))
    return query


def _offer_query():
    return Offer.query.options(
        joinedload(Offer.assigned_to),
        joinedload(Offer.created_by),
    )


# ── Fetchers ─────────────────────────────────────────────────────────────────


def fetch_zones() -> list[ZoneRecord]:
    """All service zones, name-ordered; display order is applied by reports."""
    zones = ServiceZone.query.order_by(ServiceZone.name).all()
    return [ZoneRecord(id=z.id, name=z.name, short_form=z.short_form) for z in zones]


def fetch_offers(
    year: int,
    settings: ReportSettings,
    zone_id: int | None = None,
    user_id: int | None = None,
) -> list[OfferRecord]:
    """Offers belonging to ``year`` by expected month, offer month or creation date."""
    prefix = f"{year}-"
    query = _offer_query().filter(
        or_(
            Offer.po_expected_month.startswith(prefix),
            Offer.offer_month.startswith(prefix),
            _in_year(Offer.created_at, year),
        ),
        or_(Offer.status.is_(None), Offer.status.notin_(sorted(settings.excluded_statuses))),
    )
    offers = _scoped(query, zone_id, user_id).order_by(Offer.id).all()
    return [_offer_record(o) for o in offers]


def fetch_orders(
    year: int,
    settings: ReportSettings,
    zone_id: int | None = None,
    user_id: int | None = None,
) -> list[OfferRecord]:
    """Offers in an order stage received in ``year`` (receipt month or PO date)."""
    query = _offer_query().filter(
        or_(
            Offer.po_received_month.startswith(f"{year}-"),
            _in_year(Offer.po_date, year, dates=True),
        ),
        Offer.stage.in_(sorted(settings.order_stages)),
    )
    orders = _scoped(query, zone_id, user_id).order_by(Offer.id).all()
    return [_offer_record(o) for o in orders]


def fetch_zone_targets(year: int) -> TargetSet:
    """Zone-level targets: YEARLY rows for the year, else that year's MONTHLY rows."""
    base = ZoneTarget.query.filter(ZoneTarget.product_type.is_(None))
    rows = base.filter(
        ZoneTarget.period_type == TargetKind.YEARLY.value,
        ZoneTarget.target_period == str(year),
    ).all()
    kind = TargetKind.YEARLY
    if not rows:
        rows = base.filter(
            ZoneTarget.period_type == TargetKind.MONTHLY.value,
            ZoneTarget.target_period.startswith(f"{year}-"),
        ).all()
        kind = TargetKind.MONTHLY

    records = tuple(
        TargetRecord(
            zone_id=t.service_zone_id,
            period_type=t.period_type,
            target_period=t.target_period,
            target_value=_to_float(t.target_value),
        )
        for t in rows
    )
    return TargetSet(kind=kind, records=records)


def fetch_pipeline_offers(year: int) -> list[OfferRecord]:
    """Every offer created in ``year`` regardless of status or stage."""
    offers = (
        _offer_query()
        .filter(_in_year(Offer.created_at, year))
        .order_by(Offer.created_at.desc())
        .all()
    )
    return [_offer_record(o) for o in offers]


def load_report_inputs(
    year: int,
    settings: ReportSettings,
    zone_id: int | None = None,
    user_id: int | None = None,
) -> ReportInputs:
    """Load zones, offers, orders and targets for one report request."""
    inputs = ReportInputs(
        year=year,
        zones=tuple(fetch_zones()),
        offers=tuple(fetch_offers(year, settings, zone_id, user_id)),
        orders=tuple(fetch_orders(year, settings, zone_id, user_id)),
        targets=fetch_zone_targets(year),
        settings=settings,
    )
    logger.debug(
        "Loaded FORST inputs year=%s zones=%d offers=%d orders=%d targets=%s/%d",
        year, len(inputs.zones), len(inputs.offers), len(inputs.orders),
        inputs.targets.kind.value, len(inputs.targets.records),
        extra={"year": year, "zone_id": zone_id},
    )
    return inputs


def count_rows() -> dict[str, int]:
    """Row counts of the FORST tables (used by scripts/db_status.py)."""
    return {
        "service_zones": db.session.query(ServiceZone).count(),
        "users": db.session.query(User).count(),
        "offers": db.session.query(Offer).count(),
        "zone_targets": db.session.query(ZoneTarget).count(),
    }
