"""
Startup diagnostics: one banner at app start describing the database and
the report taxonomy in effect. Skipped under TESTING.
"""

import logging
import sys

from flask import Flask
from sqlalchemy import inspect as sa_inspect

from forst.models import db

logger = logging.getLogger(__name__)

_EXPECTED_TABLES = ("service_zones", "users", "offers", "zone_targets")


def _database_summary(app: Flask, issues: list[str]) -> tuple[str, str]:
    uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
    kind = "PostgreSQL" if uri.startswith("postgresql") else "SQLite" if uri.startswith("sqlite") else "unknown"
    try:
        db.session.execute(db.text("SELECT 1"))
        present = set(sa_inspect(db.engine).get_table_names())
    except Exception as exc:
        issues.append(f"Database unreachable: {exc}")
        return f"{kind} (FAILED)", "?"

    missing = [t for t in _EXPECTED_TABLES if t not in present]
    if missing:
        issues.append(f"Missing tables: {', '.join(missing)}")
    return f"{kind} (ok)", f"{len(_EXPECTED_TABLES) - len(missing)}/{len(_EXPECTED_TABLES)} FORST"


def run_startup_diagnostics(app: Flask):
    """Log the startup banner plus a warning per detected issue."""
    if app.config.get("TESTING"):
        return

    issues: list[str] = []
    with app.app_context():
        database, tables = _database_summary(app, issues)

    zone_order = list(app.config.get("FORST_ZONE_ORDER") or [])
    product_types = list(app.config.get("FORST_PRODUCT_TYPES") or [])
    if not product_types:
        issues.append("FORST_PRODUCT_TYPES is empty; product reports will have no columns")
    if not zone_order:
        issues.append("FORST_ZONE_ORDER is empty; zones will be listed alphabetically")

    rows = [
        ("Python", ".".join(str(v) for v in sys.version_info[:3])),
        ("Debug", str(app.debug)),
        ("Database", database),
        ("Tables", tables),
        ("Zone order", ", ".join(zone_order) or "-"),
        ("Products", str(len(product_types))),
        ("Export limit", str(app.config.get("FORST_EXPORT_RATE_LIMIT", "-"))),
    ]
    width = 62
    lines = ["", "╔" + "═" * width + "╗", f"║  {'FORST Reporting Service: startup':<{width - 2}}║", "╠" + "═" * width + "╣"]
    lines += [f"║  {label:<12}: {value[:width - 17]:<{width - 17}}║" for label, value in rows]
    lines.append("╚" + "═" * width + "╝")
    logger.info("\n".join(lines))

    for issue in issues:
        logger.warning("Startup issue: %s", issue)
    if not issues:
        logger.info("All startup checks passed")
