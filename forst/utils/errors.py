"""JSON error bodies shared by every blueprint.

    from forst.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Offer not found")
    return api_error(E.VALIDATION_INVALID, "Invalid month", details={"offerMonth": "2025-13"})

Body shape: ``{"error": <message>, "code": <E.*>, "details": {...}?}``.
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes returned in the ``code`` field of an error body."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"

    STATUS = {
        VALIDATION_REQUIRED: 400,
        VALIDATION_INVALID: 400,
        NOT_FOUND: 404,
        CONFLICT_DUPLICATE: 409,
        DATABASE: 500,
        INTERNAL: 500,
    }


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for ``code``.

    ``status`` overrides the code's usual HTTP status; unknown codes map to 400.
    ``details`` is attached only when non-empty.
    """
    body = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or E.STATUS.get(code, 400)
