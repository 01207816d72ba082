from flask import Blueprint, jsonify, request
from flask_login import login_required
from dao import qc as qc_dao
from db.models.user import UserRole
from utils.auth import actor_id, roles_required
from utils.forms import payload

qc_bp = Blueprint("qc_web", __name__, url_prefix="/quality-control")


@qc_bp.route("")
@login_required
def qc_list():
    records = qc_dao.list_records(request.args.get("status"))
    return jsonify([r.to_dict() for r in records])


@qc_bp.route("/counts")
@login_required
def qc_counts():
    return jsonify(qc_dao.counts())


@qc_bp.route("/<int:qc_id>")
@login_required
def qc_detail(qc_id: int):
    return jsonify(qc_dao.get_qc(qc_id).to_dict())


@qc_bp.route("/<int:qc_id>/accept", methods=["POST"])
@login_required
@roles_required(UserRole.ADMIN, UserRole.MANUFACTURE_MANAGER)
def qc_accept(qc_id: int):
    qc = qc_dao.accept(qc_id, actor_id(), notes=payload().get("notes"))
    return jsonify(qc.to_dict())


@qc_bp.route("/<int:qc_id>/reject", methods=["POST"])
@login_required
@roles_required(UserRole.ADMIN, UserRole.MANUFACTURE_MANAGER)
def qc_reject(qc_id: int):
    qc = qc_dao.reject(qc_id, actor_id(), payload().get("reason"))
    return jsonify(qc.to_dict())


@qc_bp.route("/<int:qc_id>/inspector", methods=["POST"])
@login_required
@roles_required(UserRole.ADMIN, UserRole.MANUFACTURE_MANAGER)
def qc_assign(qc_id: int):
    qc = qc_dao.assign_inspector(qc_id, payload().get("inspector_id"))
    return jsonify(qc.to_dict())
