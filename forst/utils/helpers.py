"""Request parsing and commit helpers shared by the blueprints.

parse_year:          report ``year`` query param, current year on bad or non-positive input
parse_optional_id:   ``zoneId`` / ``userId`` filters (malformed → match nothing)
parse_limit:         optional ``limit`` query param, None unless a positive int
parse_date:          ``poDate`` payload values, None on bad input
db_commit_or_error:  commit, or roll back and return an api_error response
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from forst.models import db
from forst.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Sentinel id for a filter value that could not be parsed; no row has id -1.
NO_MATCH_ID = -1

_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%d.%m.%Y")


def _to_int(value):
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_year(value, today=None):
    """``value`` as an int, else the current year (missing, malformed or below 1)."""
    year = _to_int(value) if value not in (None, "") else None
    return year if year is not None and year >= 1 else (today or date.today()).year


def parse_optional_id(value):
    """None when absent; the int when well-formed; NO_MATCH_ID otherwise."""
    if value in (None, ""):
        return None
    parsed = _to_int(value)
    return NO_MATCH_ID if parsed is None else parsed


def parse_limit(value):
    """A positive int, else None (no limit)."""
    parsed = _to_int(value) if value not in (None, "") else None
    return parsed if parsed is not None and parsed > 0 else None


def parse_date(value):
    """Date from a ``date``, ``YYYY-MM-DD[THH:MM:SS]`` or ``DD.MM.YYYY`` value."""
    if not value:
        return None
    if isinstance(value, date):
        return value
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(str(value), fmt).date()
        except ValueError:
            continue
    return None


def db_commit_or_error():
    """Commit the session. Returns None, or an error response ready to ``return``.

        err = db_commit_or_error()
        if err:
            return err

    Unique / FK violations answer 409, any other database failure 500.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Commit rejected by constraint: %s", exc.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Commit failed")
        return api_error(E.DATABASE, "Database error")
    return None
