"""
Master data endpoints: the rows the FORST reports read.

    GET/POST          /api/v1/zones
    GET               /api/v1/zones/<id>
    GET/POST          /api/v1/users
    GET/POST          /api/v1/offers          (filters: zoneId, status, stage; limit/offset)
    GET/PUT/DELETE    /api/v1/offers/<id>
    GET/PUT           /api/v1/targets         (GET filters: year, zoneId; PUT upserts)
    DELETE            /api/v1/targets/<id>

Service layer validates and raises; this blueprint maps exceptions to
status codes and commits via db_commit_or_error().
"""

import logging

from flask import Blueprint, jsonify, request

import forst.services.master_data_service as mds
from forst.blueprints import paginate_query
from forst.core.exceptions import ConflictError, NotFoundError, ServiceError, ValidationError
from forst.models import db
from forst.utils.errors import E, api_error
from forst.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

master_data_bp = Blueprint("master_data", __name__, url_prefix="/api/v1")


# ── Error handlers ────────────────────────────────────────────────────────────


_ERROR_CODES = (
    (NotFoundError, E.NOT_FOUND),
    (ConflictError, E.CONFLICT_DUPLICATE),
    (ValidationError, E.VALIDATION_INVALID),
)


@master_data_bp.errorhandler(ServiceError)
def _handle_service_error(error: ServiceError):
    # discard half-applied field changes
    db.session.rollback()
    code = next((c for cls, c in _ERROR_CODES if isinstance(error, cls)), E.VALIDATION_INVALID)
    if isinstance(error, NotFoundError):
        return api_error(code, f"{error.resource} not found")
    return api_error(code, str(error), details=error.details)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body is required")
    return data


# ═════════════════════════════════════════════════════════════════════════
# Zones
# ═════════════════════════════════════════════════════════════════════════


@master_data_bp.route("/zones", methods=["GET"])
def list_zones():
    return jsonify([z.to_dict() for z in mds.list_zones()]), 200


@master_data_bp.route("/zones/<int:zone_id>", methods=["GET"])
def get_zone(zone_id):
    return jsonify(mds.get_zone(zone_id).to_dict()), 200


@master_data_bp.route("/zones", methods=["POST"])
def create_zone():
    zone = mds.create_zone(_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(zone.to_dict()), 201


# ═════════════════════════════════════════════════════════════════════════
# Users
# ═════════════════════════════════════════════════════════════════════════


@master_data_bp.route("/users", methods=["GET"])
def list_users():
    users = mds.list_users(zone_id=request.args.get("zoneId", type=int))
    return jsonify([u.to_dict() for u in users]), 200


@master_data_bp.route("/users", methods=["POST"])
def create_user():
    user = mds.create_user(_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(user.to_dict()), 201


# ═════════════════════════════════════════════════════════════════════════
# Offers
# ═════════════════════════════════════════════════════════════════════════


@master_data_bp.route("/offers", methods=["GET"])
def list_offers():
    query = mds.list_offers(
        zone_id=request.args.get("zoneId", type=int),
        status=request.args.get("status"),
        stage=request.args.get("stage"),
    )
    items, total = paginate_query(query)
    return jsonify({"items": [o.to_dict() for o in items], "total": total}), 200


@master_data_bp.route("/offers/<int:offer_id>", methods=["GET"])
def get_offer(offer_id):
    return jsonify(mds.get_offer(offer_id).to_dict()), 200


@master_data_bp.route("/offers", methods=["POST"])
def create_offer():
    offer = mds.create_offer(_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(offer.to_dict()), 201


@master_data_bp.route("/offers/<int:offer_id>", methods=["PUT"])
def update_offer(offer_id):
    offer = mds.update_offer(offer_id, _json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(offer.to_dict()), 200


@master_data_bp.route("/offers/<int:offer_id>", methods=["DELETE"])
def delete_offer(offer_id):
    mds.delete_offer(offer_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Offer deleted"}), 200


# ═════════════════════════════════════════════════════════════════════════
# Zone targets
# ═════════════════════════════════════════════════════════════════════════


@master_data_bp.route("/targets", methods=["GET"])
def list_targets():
    targets = mds.list_targets(
        year=request.args.get("year", type=int),
        zone_id=request.args.get("zoneId", type=int),
    )
    return jsonify([t.to_dict() for t in targets]), 200


@master_data_bp.route("/targets", methods=["PUT"])
def upsert_target():
    target, created = mds.upsert_target(_json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(target.to_dict()), 201 if created else 200


@master_data_bp.route("/targets/<int:target_id>", methods=["DELETE"])
def delete_target(target_id):
    mds.delete_target(target_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Target deleted"}), 200
