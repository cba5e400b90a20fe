"""
FORST report inputs: immutable records and settings.

The query layer converts ORM rows into these records; every report builder
is a pure function of (records, ReportSettings). Nothing in this module
touches the database.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

UNKNOWN_PRODUCT = "UNKNOWN"
UNKNOWN_PERSON = "Unknown"
UNASSIGNED_PERSON = "Unassigned"


class TargetKind(str, Enum):
    """Which target period set a report year resolved to."""
    YEARLY = "YEARLY"
    MONTHLY = "MONTHLY"


# ── Settings ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ReportSettings:
    """Report taxonomy: zone order, product types, status/stage policy."""

    zone_order: tuple[str, ...] = ("WEST", "SOUTH", "NORTH", "EAST")
    product_types: tuple[tuple[str, str], ...] = (
        ("CONTRACT", "Contract"),
        ("BD_SPARE", "BD Spare"),
        ("SPP", "SPP"),
        ("RELOCATION", "Relocation"),
        ("SOFTWARE", "Software"),
        ("BD_CHARGES", "BD Charges"),
        ("RETROFIT_KIT", "Retrofit Kit"),
        ("UPGRADE_KIT", "Upgrade Kit"),
        ("MIDLIFE_UPGRADE", "Midlife Upgrade"),
        ("OTHERS", "Others"),
    )
    excluded_statuses: frozenset[str] = frozenset({"CANCELLED", "LOST"})
    order_stages: frozenset[str] = frozenset({"WON", "PO_RECEIVED"})
    lakh_divisor: int = 100000

    @classmethod
    def from_config(cls, mapping: Mapping) -> ReportSettings:
        """Build settings from a Flask config (or any mapping of FORST_* keys)."""
        defaults = cls()
        product_types = mapping.get("FORST_PRODUCT_TYPES")
        return cls(
            zone_order=tuple(mapping.get("FORST_ZONE_ORDER") or defaults.zone_order),
            product_types=(
                tuple((str(code), str(label)) for code, label in product_types)
                if product_types else defaults.product_types
            ),
            excluded_statuses=frozenset(
                mapping.get("FORST_EXCLUDED_STATUSES") or defaults.excluded_statuses
            ),
            order_stages=frozenset(mapping.get("FORST_ORDER_STAGES") or defaults.order_stages),
            lakh_divisor=int(mapping.get("FORST_LAKH_DIVISOR") or defaults.lakh_divisor),
        )

    @property
    def product_codes(self) -> tuple[str, ...]:
        return tuple(code for code, _ in self.product_types)

    @property
    def product_codes_with_unknown(self) -> tuple[str, ...]:
        return self.product_codes + (UNKNOWN_PRODUCT,)

    def product_label(self, code: str) -> str:
        for known, label in self.product_types:
            if known == code:
                return label
        return "Unknown" if code == UNKNOWN_PRODUCT else code

    def product_type_list(self) -> list[dict]:
        return [{"code": code, "label": label} for code, label in self.product_types]

    def normalize_product(self, code: str | None) -> str:
        return code if code in self.product_codes else UNKNOWN_PRODUCT


# ── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ZoneRecord:
    id: int
    name: str
    short_form: str | None = None


@dataclass(frozen=True)
class OfferRecord:
    """Flat, detached view of one Offer row."""

    id: int
    zone_id: int | None
    offer_reference_number: str | None = None
    customer_name: str | None = None
    product_type: str | None = None
    offer_value: float = 0.0
    po_value: float = 0.0
    status: str | None = None
    stage: str | None = None
    po_expected_month: str | None = None
    offer_month: str | None = None
    po_received_month: str | None = None
    po_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    assigned_to_id: int | None = None
    assigned_to_name: str | None = None
    created_by_id: int | None = None
    created_by_name: str | None = None

    @property
    def person_id(self) -> int | None:
        """Assignee, else creator."""
        return self.assigned_to_id or self.created_by_id

    @property
    def person_name(self) -> str:
        return self.assigned_to_name or self.created_by_name or UNKNOWN_PERSON


@dataclass(frozen=True)
class TargetRecord:
    zone_id: int
    period_type: str
    target_period: str
    target_value: float


@dataclass(frozen=True)
class TargetSet:
    """Zone-level targets for one year plus the period kind they came from."""

    kind: TargetKind
    records: tuple[TargetRecord, ...] = ()


@dataclass(frozen=True)
class ReportInputs:
    """Everything one report year needs, loaded once per request."""

    year: int
    zones: tuple[ZoneRecord, ...]
    offers: tuple[OfferRecord, ...]
    orders: tuple[OfferRecord, ...]
    targets: TargetSet
    settings: ReportSettings = field(default_factory=ReportSettings)
