from flask import Blueprint, jsonify, request

from ..services import notifications

bp = Blueprint("notifications", __name__)


@bp.route("/api/notifications", methods=["GET"])
def unread():
    rows = notifications.list_unread(candidate_id=request.args.get("candidate_id"),
                                     limit=request.args.get("limit", 50, type=int))
    return jsonify([n.to_dict() for n in rows])


@bp.route("/api/notifications/<int:notification_id>/read", methods=["POST"])
def mark_read(notification_id):
    return jsonify(notifications.mark_read(notification_id).to_dict())


@bp.route("/api/notifications/read-all", methods=["POST"])
def mark_all_read():
    payload = request.get_json(silent=True) or {}
    count = notifications.mark_all_read(candidate_id=payload.get("candidate_id"))
    return jsonify({"marked": count})
