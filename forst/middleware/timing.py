"""
Request timing middleware.

Every response gets X-Request-Duration-Ms and X-Request-ID headers. Each
request is also appended to an in-memory buffer tagged with the report
scope (year, zone) so slow reports can be spotted per filter.
"""

import logging
import time
import uuid
from collections import deque

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_THRESHOLD_MS = 1000
_QUIET_PATHS = frozenset({"/api/v1/health", "/api/v1/health/ready", "/api/v1/health/live"})

_metrics: deque = deque(maxlen=10_000)


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_timer(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"
        response.headers["X-Request-ID"] = g.request_id

        year, zone_id = _extract_report_scope()
        _metrics.append({
            "ts": time.time(),
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "ms": round(elapsed_ms, 1),
            "year": year,
            "zone_id": zone_id,
        })

        if request.path not in _QUIET_PATHS:
            _log_request(response.status_code, elapsed_ms, year, zone_id)
        return response


def _log_request(status: int, elapsed_ms: float, year, zone_id):
    if elapsed_ms > SLOW_THRESHOLD_MS:
        level = logging.WARNING
    elif status >= 500:
        level = logging.ERROR
    else:
        level = logging.DEBUG
    logger.log(
        level, "%s %s %d (%.0fms)", request.method, request.path, status, elapsed_ms,
        extra={
            "method": request.method,
            "path": request.path,
            "status": status,
            "duration_ms": elapsed_ms,
            "remote_addr": request.remote_addr,
            "request_id": g.request_id,
            "year": year,
            "zone_id": zone_id,
        },
    )


def _extract_report_scope() -> tuple[int | None, int | None]:
    """(year, zoneId) of the request when present and numeric."""
    year = request.args.get("year", type=int)
    zone_id = request.args.get("zoneId", type=int)
    path_zone = (request.view_args or {}).get("zone_id")
    if path_zone is not None and str(path_zone).isdigit():
        zone_id = int(path_zone)
    return year, zone_id


def get_recent_metrics(seconds: int = 3600) -> list[dict]:
    """Request metrics from the last ``seconds``."""
    cutoff = time.time() - seconds
    return [m for m in _metrics if m["ts"] >= cutoff]


def reset_metrics():
    _metrics.clear()
