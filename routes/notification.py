from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from dao import notification as notify_dao

notification_bp = Blueprint("notification_web", __name__, url_prefix="/notifications")


@notification_bp.route("")
@login_required
def notification_list():
    rows = notify_dao.list_for_user(current_user.id)
    return jsonify(
        {
            "unread": notify_dao.unread_count(current_user.id),
            "items": [n.to_dict() for n in rows],
        }
    )


@notification_bp.route("/<int:notification_id>/read", methods=["POST"])
@login_required
def notification_read(notification_id: int):
    return jsonify(notify_dao.mark_read(notification_id, current_user.id).to_dict())


@notification_bp.route("/read-all", methods=["POST"])
@login_required
def notification_read_all():
    return jsonify({"updated": notify_dao.mark_all_read(current_user.id)})
