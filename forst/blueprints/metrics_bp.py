"""
In-memory request metrics from the timing middleware buffer.

    GET /api/v1/metrics/requests   request stats (default window: last hour)
    GET /api/v1/metrics/reports    latency per FORST report path and year
"""

import logging
from collections import Counter, defaultdict

from flask import Blueprint, jsonify, request

from forst.middleware.timing import get_recent_metrics

logger = logging.getLogger(__name__)

metrics_bp = Blueprint("metrics", __name__, url_prefix="/api/v1/metrics")

REPORT_PREFIX = "/api/v1/forst/"


def _window():
    return request.args.get("window", 3600, type=int)


@metrics_bp.route("/requests", methods=["GET"])
def request_stats():
    """Request count, latency and status distribution over the window."""
    window = _window()
    recent = get_recent_metrics(seconds=window)
    if not recent:
        return jsonify({
            "window_seconds": window,
            "total_requests": 0,
            "avg_latency_ms": 0,
            "p95_latency_ms": 0,
            "max_latency_ms": 0,
            "status_distribution": {},
        })

    latencies = sorted(m["ms"] for m in recent)
    p95_idx = max(0, int(len(latencies) * 0.95) - 1)
    statuses = Counter(str(m["status"]) for m in recent)

    return jsonify({
        "window_seconds": window,
        "total_requests": len(recent),
        "avg_latency_ms": round(sum(latencies) / len(latencies), 1),
        "p95_latency_ms": latencies[p95_idx],
        "max_latency_ms": latencies[-1],
        "status_distribution": dict(statuses),
    })


@metrics_bp.route("/reports", methods=["GET"])
def report_stats():
    """Per report path: calls, errors, avg/max latency and the years requested."""
    window = _window()
    by_path: defaultdict = defaultdict(list)
    for m in get_recent_metrics(seconds=window):
        if m["path"].startswith(REPORT_PREFIX):
            by_path[m["path"]].append(m)

    reports = []
    for path, calls in sorted(by_path.items(), key=lambda item: -max(c["ms"] for c in item[1])):
        durations = [c["ms"] for c in calls]
        reports.append({
            "path": path,
            "count": len(calls),
            "errors": sum(1 for c in calls if c["status"] >= 500),
            "avg_ms": round(sum(durations) / len(durations), 1),
            "max_ms": max(durations),
            "years": sorted({c["year"] for c in calls if c["year"] is not None}),
        })

    return jsonify({"window_seconds": window, "reports": reports})
