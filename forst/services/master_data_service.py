"""
Master data service: zones, users, offers and zone targets.

The reports only read these rows; this module is the minimal write path so
the service can be populated and exercised on its own.

Functions:
    - list_zones / get_zone / create_zone
    - list_users / create_user
    - list_offers / get_offer / create_offer / update_offer / delete_offer
    - list_targets / upsert_target / delete_target

Services raise NotFoundError / ValidationError / ConflictError and leave
the commit to the blueprint (db_commit_or_error).
"""

import logging
import re
from decimal import Decimal, InvalidOperation

from forst.core.exceptions import ConflictError, NotFoundError, ValidationError
from forst.models import db
from forst.models.sales import (
    OFFER_STAGES,
    OFFER_STATUSES,
    PERIOD_TYPES,
    USER_ROLES,
    Offer,
    ServiceZone,
    User,
    ZoneTarget,
)
from forst.utils.helpers import parse_date

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_YEAR_RE = re.compile(r"^\d{4}$")

# camelCase request field → Offer column
_OFFER_FIELDS = {
    "offerReferenceNumber": "offer_reference_number",
    "customerName": "customer_name",
    "zoneId": "zone_id",
    "productType": "product_type",
    "offerValue": "offer_value",
    "poValue": "po_value",
    "status": "status",
    "stage": "stage",
    "poExpectedMonth": "po_expected_month",
    "offerMonth": "offer_month",
    "poReceivedMonth": "po_received_month",
    "poDate": "po_date",
    "probabilityPercentage": "probability_percentage",
    "assignedToId": "assigned_to_id",
    "createdById": "created_by_id",
}
_MONTH_FIELDS = ("poExpectedMonth", "offerMonth", "poReceivedMonth")
_MONEY_FIELDS = ("offerValue", "poValue")


# ── Field validation ─────────────────────────────────────────────────────────


def _money(field: str, value):
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", details={field: value})
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", details={field: value})
    if amount < 0:
        raise ValidationError(f"{field} must not be negative", details={field: value})
    return amount


def _month(field: str, value):
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not _MONTH_RE.match(value):
        raise ValidationError(f"{field} must be YYYY-MM", details={field: value})
    return value


def _choice(field: str, value, allowed):
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(allowed)}", details={field: value},
        )
    return value


def _int_or_none(field: str, value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer", details={field: value})


def _existing(model, pk, label):
    if pk is None:
        return None
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


# ── Zones ────────────────────────────────────────────────────────────────────


def list_zones() -> list[ServiceZone]:
    return ServiceZone.query.order_by(ServiceZone.name).all()


def get_zone(zone_id: int) -> ServiceZone:
    return _existing(ServiceZone, zone_id, "ServiceZone")


def create_zone(data: dict) -> ServiceZone:
    name = (data.get("name") or "").strip().upper()
    if not name:
        raise ValidationError("Zone name is required", details={"name": "required"})
    if ServiceZone.query.filter_by(name=name).first():
        raise ConflictError("ServiceZone", "name", name)
    zone = ServiceZone(
        name=name[:100],
        short_form=(data.get("shortForm") or "")[:20] or None,
        is_active=bool(data.get("isActive", True)),
    )
    db.session.add(zone)
    db.session.flush()
    logger.info("Zone created id=%s name=%s", zone.id, zone.name)
    return zone


# ── Users ────────────────────────────────────────────────────────────────────


def list_users(zone_id: int | None = None) -> list[User]:
    query = User.query
    if zone_id is not None:
        query = query.filter(User.zone_id == zone_id)
    return query.order_by(User.name).all()


def create_user(data: dict) -> User:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("User name is required", details={"name": "required"})
    email = (data.get("email") or "").strip().lower() or None
    if email and User.query.filter_by(email=email).first():
        raise ConflictError("User", "email", email)
    role = _choice("role", data.get("role") or "SERVICE_PERSON", USER_ROLES)
    zone_id = _int_or_none("zoneId", data.get("zoneId"))
    _existing(ServiceZone, zone_id, "ServiceZone")

    user = User(name=name[:200], email=email, role=role, zone_id=zone_id)
    db.session.add(user)
    db.session.flush()
    logger.info("User created id=%s role=%s", user.id, user.role)
    return user


# ── Offers ───────────────────────────────────────────────────────────────────


def list_offers(zone_id=None, status=None, stage=None):
    query = Offer.query
    if zone_id is not None:
        query = query.filter(Offer.zone_id == zone_id)
    if status:
        query = query.filter(Offer.status == status)
    if stage:
        query = query.filter(Offer.stage == stage)
    return query.order_by(Offer.id.desc())


def get_offer(offer_id: int) -> Offer:
    return _existing(Offer, offer_id, "Offer")


def _apply_offer_fields(offer: Offer, data: dict) -> None:
    for field, column in _OFFER_FIELDS.items():
        if field not in data:
            continue
        value = data[field]
        if field in _MONEY_FIELDS:
            value = _money(field, value)
        elif field in _MONTH_FIELDS:
            value = _month(field, value)
        elif field == "status":
            value = _choice(field, value, OFFER_STATUSES)
        elif field == "stage":
            value = _choice(field, value, OFFER_STAGES)
        elif field == "poDate":
            parsed = parse_date(value)
            if value and parsed is None:
                raise ValidationError("poDate must be a date (YYYY-MM-DD)", details={field: value})
            value = parsed
        elif field == "zoneId":
            value = _int_or_none(field, value)
            _existing(ServiceZone, value, "ServiceZone")
        elif field in ("assignedToId", "createdById"):
            value = _int_or_none(field, value)
            _existing(User, value, "User")
        elif field == "probabilityPercentage":
            value = _int_or_none(field, value)
            if value is not None and not 0 <= value <= 100:
                raise ValidationError(
                    "probabilityPercentage must be between 0 and 100", details={field: value},
                )
        elif field == "productType":
            value = (value or "").strip().upper() or None
        setattr(offer, column, value)


def create_offer(data: dict) -> Offer:
    if data.get("offerValue") in (None, ""):
        raise ValidationError("offerValue is required", details={"offerValue": "required"})
    offer = Offer(status="OPEN", stage="INITIAL")
    _apply_offer_fields(offer, data)
    db.session.add(offer)
    db.session.flush()
    logger.info("Offer created id=%s zone=%s value=%s", offer.id, offer.zone_id, offer.offer_value)
    return offer


def update_offer(offer_id: int, data: dict) -> Offer:
    offer = get_offer(offer_id)
    _apply_offer_fields(offer, data)
    db.session.flush()
    return offer


def delete_offer(offer_id: int) -> None:
    offer = get_offer(offer_id)
    db.session.delete(offer)
    logger.info("Offer deleted id=%s", offer_id)


# ── Targets ──────────────────────────────────────────────────────────────────


def list_targets(year: int | None = None, zone_id: int | None = None) -> list[ZoneTarget]:
    query = ZoneTarget.query
    if year is not None:
        query = query.filter(ZoneTarget.target_period.startswith(str(year)))
    if zone_id is not None:
        query = query.filter(ZoneTarget.service_zone_id == zone_id)
    return query.order_by(ZoneTarget.service_zone_id, ZoneTarget.target_period).all()


def upsert_target(data: dict) -> tuple[ZoneTarget, bool]:
    """Create or update the target on (zone, period type, period, product type).

    Returns (target, created).
    """
    zone_id = _int_or_none("serviceZoneId", data.get("serviceZoneId"))
    if zone_id is None:
        raise ValidationError("serviceZoneId is required", details={"serviceZoneId": "required"})
    _existing(ServiceZone, zone_id, "ServiceZone")

    period_type = _choice("periodType", data.get("periodType"), PERIOD_TYPES)
    period = data.get("targetPeriod") or ""
    pattern = _YEAR_RE if period_type == "YEARLY" else _MONTH_RE
    if not isinstance(period, str) or not pattern.match(period):
        expected = "YYYY" if period_type == "YEARLY" else "YYYY-MM"
        raise ValidationError(
            f"targetPeriod must be {expected} for {period_type}", details={"targetPeriod": period},
        )
    value = _money("targetValue", data.get("targetValue"))
    if value is None:
        raise ValidationError("targetValue is required", details={"targetValue": "required"})
    product_type = (data.get("productType") or "").strip().upper() or None

    target = ZoneTarget.query.filter_by(
        service_zone_id=zone_id,
        period_type=period_type,
        target_period=period,
        product_type=product_type,
    ).first()
    created = target is None
    if created:
        target = ZoneTarget(
            service_zone_id=zone_id,
            period_type=period_type,
            target_period=period,
            product_type=product_type,
        )
        db.session.add(target)
    target.target_value = value
    db.session.flush()
    logger.info(
        "Zone target %s zone=%s %s %s=%s",
        "created" if created else "updated", zone_id, period_type, period, value,
    )
    return target, created


def delete_target(target_id: int) -> None:
    target = _existing(ZoneTarget, target_id, "ZoneTarget")
    db.session.delete(target)
