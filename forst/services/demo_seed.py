"""
Demo data for the FORST reports (``flask seed-forst-demo``).

Seeds four zones, a few sales people per zone, offers spread across product
types, months and stages, and a yearly BU target per zone. Idempotent per
zone/user name and offer reference number.
"""

import logging
import random
from datetime import date, datetime, timezone
from decimal import Decimal

from forst.models import db
from forst.models.sales import Offer, ServiceZone, User, ZoneTarget

logger = logging.getLogger(__name__)

DEMO_ZONES = (
    ("WEST", "W"),
    ("SOUTH", "S"),
    ("NORTH", "N"),
    ("EAST", "E"),
)
DEMO_PEOPLE_PER_ZONE = 2
DEMO_OFFERS_PER_ZONE = 12
DEMO_PRODUCTS = (
    "CONTRACT", "BD_SPARE", "SPP", "RELOCATION", "SOFTWARE",
    "BD_CHARGES", "RETROFIT_KIT", "UPGRADE_KIT", "MIDLIFE_UPGRADE", "OTHERS",
)
DEMO_STAGES = ("INITIAL", "PROPOSAL_SENT", "NEGOTIATION", "PO_RECEIVED", "WON", "LOST")
DEMO_YEARLY_TARGET = Decimal("12000000")


def _get_or_create_zone(name: str, short_form: str) -> ServiceZone:
    zone = ServiceZone.query.filter_by(name=name).first()
    if zone is None:
        zone = ServiceZone(name=name, short_form=short_form)
        db.session.add(zone)
        db.session.flush()
    return zone


def _get_or_create_user(name: str, zone: ServiceZone) -> User:
    email = f"{name.lower().replace(' ', '.')}@forst.local"
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(name=name, email=email, role="SERVICE_PERSON", zone_id=zone.id)
        db.session.add(user)
        db.session.flush()
    return user


def seed_demo_data(year: int, seed: int = 42) -> dict:
    """Insert demo rows for ``year``. Returns counts of newly created rows.

    Caller commits.
    """
    rng = random.Random(seed)
    created = {"zones": 0, "users": 0, "offers": 0, "targets": 0}

    for zone_name, short_form in DEMO_ZONES:
        existed = ServiceZone.query.filter_by(name=zone_name).first() is not None
        zone = _get_or_create_zone(zone_name, short_form)
        created["zones"] += 0 if existed else 1

        people = []
        for idx in range(1, DEMO_PEOPLE_PER_ZONE + 1):
            name = f"{zone_name.title()} Sales {idx}"
            existed = User.query.filter_by(name=name).first() is not None
            people.append(_get_or_create_user(name, zone))
            created["users"] += 0 if existed else 1

        for idx in range(1, DEMO_OFFERS_PER_ZONE + 1):
            ref = f"FORST/{year}/{short_form}/{idx:03d}"
            if Offer.query.filter_by(offer_reference_number=ref).first():
                continue
            month = (idx - 1) % 12 + 1
            stage = rng.choice(DEMO_STAGES)
            value = Decimal(rng.randrange(100_000, 2_500_000, 50_000))
            is_order = stage in ("WON", "PO_RECEIVED")
            offer = Offer(
                offer_reference_number=ref,
                customer_name=f"{zone_name.title()} Customer {idx}",
                zone_id=zone.id,
                product_type=DEMO_PRODUCTS[(idx - 1) % len(DEMO_PRODUCTS)],
                offer_value=value,
                po_value=(value * Decimal("0.9")).quantize(Decimal("1")) if is_order else None,
                status="LOST" if stage == "LOST" else ("WON" if stage == "WON" else "OPEN"),
                stage=stage,
                po_expected_month=f"{year}-{month:02d}",
                offer_month=f"{year}-{max(1, month - 1):02d}",
                po_received_month=f"{year}-{month:02d}" if is_order else None,
                po_date=date(year, month, 15) if is_order else None,
                probability_percentage=rng.choice((10, 25, 50, 75, 90)),
                assigned_to_id=people[idx % len(people)].id,
                created_by_id=people[0].id,
                created_at=datetime(year, max(1, month - 1), 1, tzinfo=timezone.utc),
            )
            db.session.add(offer)
            created["offers"] += 1

        target = ZoneTarget.query.filter_by(
            service_zone_id=zone.id, period_type="YEARLY",
            target_period=str(year), product_type=None,
        ).first()
        if target is None:
            db.session.add(ZoneTarget(
                service_zone_id=zone.id,
                period_type="YEARLY",
                target_period=str(year),
                target_value=DEMO_YEARLY_TARGET,
            ))
            created["targets"] += 1

    db.session.flush()
    logger.info("FORST demo seed year=%s created=%s", year, created, extra={"year": year})
    return created
