"""
API tests for the FORST report endpoints.

Covers:
  - success envelope {"success": true, "data": ...} on every report route
  - route aliases (offers-highlights, forecast-quarterly, person-wise)
  - malformed year falls back to the current year
  - malformed zoneId yields empty results, not a 400
  - zone-monthly path parameter
  - any failure → 500 with fixed message and ERR_INTERNAL
  - export: xlsx content type and attachment filename
  - request timing headers, in-memory request metrics and /api/v1/metrics
  - year=0 falls back, year=9999 / 10000 give empty data (no 500)
  - person-performance limit keeps the top N, totals cover everyone
"""

from datetime import date, datetime

import pytest

import forst.blueprints.forst_bp as forst_bp_module
from forst.middleware.timing import get_recent_metrics, reset_metrics

BASE = "/api/v1/forst"


# ── Helpers ─────────────────────────────────────────────────────────────────


@pytest.fixture()
def west_data(zones, make_offer, make_target):
    """Two WEST offers for 2024 (one cancelled) plus a yearly target."""
    west = zones["WEST"]
    make_offer(west, 500000, po_expected_month="2024-03", status="OPEN")
    make_offer(west, 300000, po_expected_month="2024-03", status="CANCELLED")
    make_target(west, "2024", 1200000)
    return west


def _data(res):
    assert res.status_code == 200, res.get_json()
    body = res.get_json()
    assert body["success"] is True
    return body["data"]


# ── Envelope & aliases ──────────────────────────────────────────────────────


@pytest.mark.parametrize("path", [
    "/highlights",
    "/offers-highlights",
    "/zone-monthly",
    "/quarterly",
    "/forecast-quarterly",
    "/product-type-summary",
    "/person-performance",
    "/person-wise",
    "/product-forecast",
    "/complete-report",
    "/pipeline",
])
def test_report_routes_return_envelope(client, west_data, path):
    data = _data(client.get(f"{BASE}{path}?year=2024"))
    assert data["year"] == 2024


def test_highlights_scenario(client, west_data):
    data = _data(client.get(f"{BASE}/highlights?year=2024"))
    assert [z["zoneName"] for z in data["zones"]] == ["WEST", "SOUTH", "NORTH", "EAST"]
    west = data["zones"][0]
    assert west["numOffers"] == 1
    assert west["offersValue"] == 500000
    assert west["bu"] == 1200000
    assert west["devPercent"] == -100


def test_zone_monthly_path_parameter(client, zones, west_data):
    data = _data(client.get(f"{BASE}/zone-monthly/{west_data.id}?year=2024"))
    assert [z["zoneName"] for z in data["zones"]] == ["WEST"]
    assert data["zones"][0]["months"][2]["offersValue"] == 500000


def test_bad_year_falls_back_to_current_year(client, zones):
    data = _data(client.get(f"{BASE}/highlights?year=abc"))
    assert data["year"] == date.today().year


@pytest.mark.parametrize("path", ["/highlights", "/complete-report", "/pipeline", "/export"])
def test_year_zero_falls_back_to_current_year(client, zones, path):
    res = client.get(f"{BASE}{path}?year=0")
    assert res.status_code == 200
    if path != "/export":
        assert res.get_json()["data"]["year"] == date.today().year


@pytest.mark.parametrize("path", ["/highlights", "/complete-report", "/pipeline", "/export"])
def test_last_calendar_year_gives_empty_results(client, west_data, path):
    res = client.get(f"{BASE}{path}?year=9999")
    assert res.status_code == 200
    if path == "/highlights":
        data = res.get_json()["data"]
        assert data["year"] == 9999
        assert data["totals"]["numOffers"] == 0


def test_year_beyond_calendar_range_gives_empty_results(client, west_data):
    data = _data(client.get(f"{BASE}/highlights?year=10000"))
    assert data["year"] == 10000
    assert data["totals"]["offersValue"] == 0


def test_bad_zone_id_gives_empty_results(client, west_data):
    data = _data(client.get(f"{BASE}/highlights?year=2024&zoneId=west"))
    assert data["totals"]["numOffers"] == 0
    assert data["totals"]["offersValue"] == 0

    data = _data(client.get(f"{BASE}/zone-monthly/west?year=2024"))
    assert data["zones"] == []


def test_user_filter(client, zones, person, make_offer):
    make_offer(zones["WEST"], 100, offer_month="2024-02", assigned_to_id=person.id)
    make_offer(zones["WEST"], 900, offer_month="2024-02")
    data = _data(client.get(f"{BASE}/person-performance?year=2024&userId={person.id}"))
    assert [p["userName"] for p in data["persons"]] == ["Asha Patel"]
    assert data["grandTotal"] == 100


def test_pipeline_counts_created_in_year(client, zones, make_offer):
    make_offer(zones["WEST"], 10, stage="WON", created_at=datetime(2024, 2, 1))
    make_offer(zones["WEST"], 20, created_at=datetime(2023, 2, 1))
    data = _data(client.get(f"{BASE}/pipeline?year=2024"))
    assert data["summary"]["totalOffers"] == 1
    assert data["summary"]["wonCount"] == 1


# ── Failure path ────────────────────────────────────────────────────────────


@pytest.mark.parametrize("path,message", [
    ("/highlights", "Failed to fetch offers highlights"),
    ("/zone-monthly", "Failed to fetch zone-wise monthly data"),
    ("/quarterly", "Failed to fetch quarterly forecast"),
    ("/product-type-summary", "Failed to fetch product type summary"),
    ("/person-performance", "Failed to fetch person-wise performance"),
    ("/product-forecast", "Failed to fetch product forecast"),
    ("/complete-report", "Failed to generate complete report"),
    ("/export", "Failed to export FORST report"),
])
def test_failure_returns_500_with_fixed_message(client, monkeypatch, path, message):
    def _boom(*args, **kwargs):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(forst_bp_module, "load_report_inputs", _boom)
    res = client.get(f"{BASE}{path}?year=2024")
    assert res.status_code == 500
    body = res.get_json()
    assert body == {"error": message, "code": "ERR_INTERNAL"}


def test_pipeline_failure(client, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(forst_bp_module, "fetch_pipeline_offers", _boom)
    res = client.get(f"{BASE}/pipeline")
    assert res.status_code == 500
    assert res.get_json()["error"] == "Failed to fetch pipeline analysis"


# ── Export ──────────────────────────────────────────────────────────────────


def test_export_headers(client, west_data):
    res = client.get(f"{BASE}/export?year=2024")
    assert res.status_code == 200
    assert res.mimetype == forst_bp_module.XLSX_MIMETYPE
    assert res.headers["Content-Disposition"] == "attachment; filename=FORST_Report_2024.xlsx"
    assert res.data[:2] == b"PK"


# ── Middleware ──────────────────────────────────────────────────────────────


def test_timing_headers(client, zones):
    res = client.get(f"{BASE}/highlights?year=2024")
    assert "X-Request-Duration-Ms" in res.headers
    assert res.headers.get("X-Request-ID")


def test_unknown_api_route_is_json_404(client):
    res = client.get("/api/v1/forst/nope")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Not found"


def test_request_metrics_record_report_scope(client, zones):
    reset_metrics()
    client.get(f"{BASE}/zone-monthly/{zones['WEST'].id}?year=2024")
    metrics = get_recent_metrics()
    assert len(metrics) == 1
    assert metrics[0]["status"] == 200
    assert metrics[0]["year"] == 2024
    assert metrics[0]["zone_id"] == zones["WEST"].id


def test_person_performance_limit(client, zones, person, make_offer):
    make_offer(zones["WEST"], 900, offer_month="2024-02", assigned_to_id=person.id)
    make_offer(zones["WEST"], 100, offer_month="2024-02")
    data = _data(client.get(f"{BASE}/person-performance?year=2024&limit=1"))
    assert [(p["rank"], p["userName"]) for p in data["persons"]] == [(1, "Asha Patel")]
    assert data["totalPersons"] == 2
    assert data["grandTotal"] == 1000

    data = _data(client.get(f"{BASE}/person-performance?year=2024&limit=abc"))
    assert len(data["persons"]) == 2


# ── Metrics endpoints ───────────────────────────────────────────────────────


def test_metrics_requests_summarises_buffer(client, zones):
    reset_metrics()
    client.get(f"{BASE}/highlights?year=2024")
    client.get(f"{BASE}/nope")
    body = client.get("/api/v1/metrics/requests").get_json()
    assert body["total_requests"] == 2
    assert body["status_distribution"] == {"200": 1, "404": 1}


def test_metrics_reports_groups_by_report_path(client, zones):
    reset_metrics()
    client.get(f"{BASE}/highlights?year=2024")
    client.get(f"{BASE}/highlights?year=2023")
    client.get("/api/v1/zones")
    reports = client.get("/api/v1/metrics/reports").get_json()["reports"]
    assert [r["path"] for r in reports] == [f"{BASE}/highlights"]
    assert reports[0]["count"] == 2
    assert reports[0]["years"] == [2023, 2024]
    assert reports[0]["errors"] == 0


def test_metrics_empty_window(client):
    reset_metrics()
    body = client.get("/api/v1/metrics/requests").get_json()
    assert body["total_requests"] == 0
    assert body["max_latency_ms"] == 0
    assert body["status_distribution"] == {}
