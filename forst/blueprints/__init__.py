"""
FORST Reporting Service
HTTP blueprints: forst (reports + export), master_data, health.
"""

from flask import request


def paginate_query(query, default_limit=200, max_limit=1000):
    """Slice ``query`` by the ``limit`` / ``offset`` query params.

    Bad or missing values fall back to the defaults; ``limit`` is clamped to
    ``1..max_limit`` and ``offset`` to ``>= 0``. Returns ``(items, total)``
    where ``total`` ignores the slice.
    """
    limit = request.args.get("limit", default_limit, type=int)
    offset = request.args.get("offset", 0, type=int)
    limit = max(1, min(limit, max_limit))
    offset = max(offset, 0)
    return query.limit(limit).offset(offset).all(), query.count()
