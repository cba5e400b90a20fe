"""
FORST reporting endpoints.

    GET /api/v1/forst/highlights              (alias /offers-highlights)
    GET /api/v1/forst/zone-monthly[/<zoneId>]
    GET /api/v1/forst/quarterly               (alias /forecast-quarterly)
    GET /api/v1/forst/product-type-summary
    GET /api/v1/forst/person-performance      (alias /person-wise)
    GET /api/v1/forst/product-forecast
    GET /api/v1/forst/complete-report
    GET /api/v1/forst/export                  → FORST_Report_{year}.xlsx
    GET /api/v1/forst/pipeline

Query params: year (default current year), zoneId, userId; limit on person-performance.
A malformed zoneId/userId yields empty results, not a 400.
Success: {"success": true, "data": {...}}; any failure: 500 with a fixed message.
"""

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from forst.services.forst_export import export_filename, render_complete_report_xlsx
from forst.services.forst_queries import fetch_pipeline_offers, fetch_zones, load_report_inputs
from forst.services.forst_records import ReportSettings
from forst.services.forst_reports import (
    build_complete_report,
    build_highlights,
    build_person_performance,
    build_pipeline,
    build_product_forecast,
    build_product_type_summary,
    build_quarterly,
    build_zone_monthly,
)
from forst.utils.errors import E, api_error
from forst.utils.helpers import parse_limit, parse_optional_id, parse_year

logger = logging.getLogger(__name__)

forst_bp = Blueprint("forst", __name__, url_prefix="/api/v1/forst")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _settings() -> ReportSettings:
    return ReportSettings.from_config(current_app.config)


def _filters():
    """(year, zone_id, user_id) from the query string."""
    return (
        parse_year(request.args.get("year")),
        parse_optional_id(request.args.get("zoneId")),
        parse_optional_id(request.args.get("userId")),
    )


def _ok(data):
    return jsonify({"success": True, "data": data}), 200


def _failed(report: str, message: str, year=None, zone_id=None, user_id=None):
    logger.exception(
        "FORST %s failed year=%s zone=%s user=%s", report, year, zone_id, user_id,
        extra={"report": report, "year": year, "zone_id": zone_id, "user_id": user_id},
    )
    return api_error(E.INTERNAL, message)


# ── Reports ──────────────────────────────────────────────────────────────────


@forst_bp.route("/highlights", methods=["GET"])
@forst_bp.route("/offers-highlights", methods=["GET"])
def highlights():
    """Zone rollup: offers, orders, open funnel, booking, BU, deviation, hit rate."""
    year, zone_id, user_id = _filters()
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_highlights(inputs))
    except Exception:
        return _failed("highlights", "Failed to fetch offers highlights", year, zone_id, user_id)


@forst_bp.route("/zone-monthly", methods=["GET"])
@forst_bp.route("/zone-monthly/<zone_id>", methods=["GET"])
def zone_monthly(zone_id=None):
    """Twelve month rows per zone with month-over-month deviations."""
    year, query_zone_id, user_id = _filters()
    zone_id = parse_optional_id(zone_id) if zone_id is not None else query_zone_id
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_zone_monthly(inputs, zone_id))
    except Exception:
        return _failed("zone-monthly", "Failed to fetch zone-wise monthly data", year, zone_id, user_id)


@forst_bp.route("/quarterly", methods=["GET"])
@forst_bp.route("/forecast-quarterly", methods=["GET"])
def quarterly():
    """Monthly forecast by zone rolled into quarters against BU ÷ 4."""
    year, zone_id, user_id = _filters()
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_quarterly(inputs))
    except Exception:
        return _failed("quarterly", "Failed to fetch quarterly forecast", year, zone_id, user_id)


@forst_bp.route("/product-type-summary", methods=["GET"])
def product_type_summary():
    """Zone × person × product-type value matrix."""
    year, zone_id, user_id = _filters()
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_product_type_summary(inputs, zone_id))
    except Exception:
        return _failed("product-type-summary", "Failed to fetch product type summary", year, zone_id, user_id)


@forst_bp.route("/person-performance", methods=["GET"])
@forst_bp.route("/person-wise", methods=["GET"])
def person_performance():
    """Person × month × product-type cube, ranked; ``limit`` keeps the top N persons."""
    year, zone_id, user_id = _filters()
    limit = parse_limit(request.args.get("limit"))
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_person_performance(inputs, zone_id, user_id, limit))
    except Exception:
        return _failed("person-performance", "Failed to fetch person-wise performance", year, zone_id, user_id)


@forst_bp.route("/product-forecast", methods=["GET"])
def product_forecast():
    """Zone × product-type × month forecast cube."""
    year, zone_id, user_id = _filters()
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_product_forecast(inputs))
    except Exception:
        return _failed("product-forecast", "Failed to fetch product forecast", year, zone_id, user_id)


@forst_bp.route("/complete-report", methods=["GET"])
def complete_report():
    """All six reports for the year in one envelope."""
    year, zone_id, user_id = _filters()
    try:
        inputs = load_report_inputs(year, _settings(), zone_id, user_id)
        return _ok(build_complete_report(inputs))
    except Exception:
        return _failed("complete-report", "Failed to generate complete report", year, zone_id, user_id)


@forst_bp.route("/pipeline", methods=["GET"])
def pipeline():
    """Stage distribution and conversion funnel of offers created in the year."""
    year = parse_year(request.args.get("year"))
    try:
        return _ok(build_pipeline(year, fetch_pipeline_offers(year), fetch_zones()))
    except Exception:
        return _failed("pipeline", "Failed to fetch pipeline analysis", year)


# ── Export ───────────────────────────────────────────────────────────────────


@forst_bp.route("/export", methods=["GET"])
def export_report():
    """Complete report as a single-sheet .xlsx download."""
    year, zone_id, user_id = _filters()
    try:
        settings = _settings()
        report = build_complete_report(load_report_inputs(year, settings, zone_id, user_id))
        content = render_complete_report_xlsx(report, settings)
        return Response(
            content,
            mimetype=XLSX_MIMETYPE,
            headers={"Content-Disposition": f"attachment; filename={export_filename(year)}"},
        )
    except Exception:
        return _failed("export", "Failed to export FORST report", year, zone_id, user_id)
