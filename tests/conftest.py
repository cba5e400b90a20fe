"""
Shared pytest fixtures for the FORST reporting test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - zones: the four standard zones, created in non-display order
    - make_offer / make_target: row factories
"""

from decimal import Decimal

import pytest

from forst import create_app
from forst.models import db as _db
from forst.models.sales import Offer, ServiceZone, User, ZoneTarget


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def zones():
    """Create the four zones (alphabetical insert order) and return them by name."""
    created = {}
    for name, short in (("EAST", "E"), ("NORTH", "N"), ("SOUTH", "S"), ("WEST", "W")):
        zone = ServiceZone(name=name, short_form=short)
        _db.session.add(zone)
        created[name] = zone
    _db.session.commit()
    return created


@pytest.fixture()
def person(zones):
    user = User(name="Asha Patel", email="asha@forst.local", zone_id=zones["WEST"].id)
    _db.session.add(user)
    _db.session.commit()
    return user


@pytest.fixture()
def make_offer():
    """Factory: make_offer(zone, value, **fields) → committed Offer."""

    def _make(zone, value, **fields):
        fields.setdefault("status", "OPEN")
        fields.setdefault("stage", "INITIAL")
        fields.setdefault("product_type", "CONTRACT")
        created_at = fields.pop("created_at", None)
        offer = Offer(zone_id=zone.id if zone else None, offer_value=Decimal(str(value)), **fields)
        if created_at is not None:
            offer.created_at = created_at
        _db.session.add(offer)
        _db.session.commit()
        return offer

    return _make


@pytest.fixture()
def make_target():
    """Factory: make_target(zone, period, value, period_type=...) → committed ZoneTarget."""

    def _make(zone, period, value, period_type=None, product_type=None):
        target = ZoneTarget(
            service_zone_id=zone.id,
            period_type=period_type or ("YEARLY" if len(period) == 4 else "MONTHLY"),
            target_period=period,
            target_value=Decimal(str(value)),
            product_type=product_type,
        )
        _db.session.add(target)
        _db.session.commit()
        return target

    return _make
