"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter in forst/__init__.py has no default limits; this module attaches
limits once the blueprints are registered.

Usage:
    from forst.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# blueprint name → limit (per remote address)
BLUEPRINT_LIMITS = {
    "forst": "200/minute",
    "master_data": "60/minute",
    "metrics": "60/minute",
}
EXEMPT_BLUEPRINTS = ("health",)
EXPORT_VIEW = "forst.export_report"


def init_rate_limits(app, limiter):
    """
    Attach limits to the registered blueprints.

    The workbook export additionally gets FORST_EXPORT_RATE_LIMIT, health
    probes are exempt, and nothing is applied when TESTING is set.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    export_limit = app.config.get("FORST_EXPORT_RATE_LIMIT", "20/minute")
    if EXPORT_VIEW in app.view_functions:
        limiter.limit(export_limit)(app.view_functions[EXPORT_VIEW])

    for name, limit in BLUEPRINT_LIMITS.items():
        if name in app.blueprints:
            limiter.limit(limit)(app.blueprints[name])
    for name in EXEMPT_BLUEPRINTS:
        if name in app.blueprints:
            limiter.exempt(app.blueprints[name])

    app.logger.info(
        "Rate limiter configured: export %s, %s",
        export_limit, ", ".join(f"{k} {v}" for k, v in BLUEPRINT_LIMITS.items()),
    )
