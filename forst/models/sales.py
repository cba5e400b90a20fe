"""
FORST Reporting Service
Sales domain models: the rows the FORST reports read.

Models:
    - ServiceZone: geographic sales/service zone (WEST, SOUTH, NORTH, EAST)
    - User: sales / service person referenced as offer assignee or creator
    - Offer: sales proposal with value, product type, status and stage
    - ZoneTarget: monetary target (BU) for a zone and period
"""

from datetime import datetime, timezone

from forst.models import db

OFFER_STATUSES = ("OPEN", "ACTIVE", "ON_HOLD", "WON", "LOST", "CANCELLED")
OFFER_STAGES = ("INITIAL", "PROPOSAL_SENT", "NEGOTIATION", "PO_RECEIVED", "WON", "LOST")
PERIOD_TYPES = ("MONTHLY", "YEARLY")
USER_ROLES = ("ADMIN", "ZONE_MANAGER", "SERVICE_PERSON", "EXPERT_HELPDESK")


# ── ServiceZone ──────────────────────────────────────────────────────────────


class ServiceZone(db.Model):
    """A sales/service zone. Display order is configuration, not a column."""

    __tablename__ = "service_zones"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    short_form = db.Column(db.String(20), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    offers = db.relationship("Offer", backref="zone", lazy="dynamic")
    targets = db.relationship(
        "ZoneTarget", backref="zone", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "shortForm": self.short_form,
            "isActive": self.is_active,
        }

    def __repr__(self):
        return f"<ServiceZone {self.id}: {self.name}>"


# ── User ─────────────────────────────────────────────────────────────────────


class User(db.Model):
    """Sales or service person."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=True)
    role = db.Column(
        db.String(30),
        default="SERVICE_PERSON",
        comment="ADMIN | ZONE_MANAGER | SERVICE_PERSON | EXPERT_HELPDESK",
    )
    zone_id = db.Column(
        db.Integer, db.ForeignKey("service_zones.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "zoneId": self.zone_id,
            "isActive": self.is_active,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.name}>"


# ── Offer ────────────────────────────────────────────────────────────────────


class Offer(db.Model):
    """
    A sales proposal / quote.

    Three "YYYY-MM" month strings coexist; which one a report uses as its
    time axis is decided in forst.services.aggregation.
    """

    __tablename__ = "offers"

    id = db.Column(db.Integer, primary_key=True)
    offer_reference_number = db.Column(db.String(60), nullable=True, index=True)
    customer_name = db.Column(db.String(200), default="")
    zone_id = db.Column(
        db.Integer, db.ForeignKey("service_zones.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    product_type = db.Column(db.String(40), nullable=True, index=True)
    offer_value = db.Column(db.Numeric(15, 2), nullable=True)
    po_value = db.Column(db.Numeric(15, 2), nullable=True)
    status = db.Column(
        db.String(20),
        default="OPEN",
        index=True,
        comment="OPEN | ACTIVE | ON_HOLD | WON | LOST | CANCELLED",
    )
    stage = db.Column(
        db.String(20),
        default="INITIAL",
        index=True,
        comment="INITIAL | PROPOSAL_SENT | NEGOTIATION | PO_RECEIVED | WON | LOST",
    )
    po_expected_month = db.Column(db.String(7), nullable=True, comment="YYYY-MM")
    offer_month = db.Column(db.String(7), nullable=True, comment="YYYY-MM")
    po_received_month = db.Column(db.String(7), nullable=True, comment="YYYY-MM")
    po_date = db.Column(db.Date, nullable=True)
    probability_percentage = db.Column(db.Integer, nullable=True)

    assigned_to_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])

    def to_dict(self):
        return {
            "id": self.id,
            "offerReferenceNumber": self.offer_reference_number,
            "customerName": self.customer_name,
            "zoneId": self.zone_id,
            "productType": self.product_type,
            "offerValue": float(self.offer_value) if self.offer_value is not None else None,
            "poValue": float(self.po_value) if self.po_value is not None else None,
            "status": self.status,
            "stage": self.stage,
            "poExpectedMonth": self.po_expected_month,
            "offerMonth": self.offer_month,
            "poReceivedMonth": self.po_received_month,
            "poDate": self.po_date.isoformat() if self.po_date else None,
            "probabilityPercentage": self.probability_percentage,
            "assignedToId": self.assigned_to_id,
            "createdById": self.created_by_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Offer {self.id}: {self.offer_reference_number}>"


# ── ZoneTarget ───────────────────────────────────────────────────────────────


class ZoneTarget(db.Model):
    """Monetary target (BU) for a zone in one period."""

    __tablename__ = "zone_targets"
    __table_args__ = (
        db.UniqueConstraint(
            "service_zone_id", "period_type", "target_period", "product_type",
            name="uq_zone_target_period",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    service_zone_id = db.Column(
        db.Integer, db.ForeignKey("service_zones.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    period_type = db.Column(db.String(10), nullable=False, comment="MONTHLY | YEARLY")
    target_period = db.Column(db.String(7), nullable=False, comment="YYYY or YYYY-MM")
    target_value = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    product_type = db.Column(
        db.String(40), nullable=True,
        comment="NULL → zone-level target; non-NULL → per product type",
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "serviceZoneId": self.service_zone_id,
            "periodType": self.period_type,
            "targetPeriod": self.target_period,
            "targetValue": float(self.target_value or 0),
            "productType": self.product_type,
        }

    def __repr__(self):
        return f"<ZoneTarget {self.id}: zone={self.service_zone_id} {self.target_period}>"
