from flask import Blueprint, jsonify, request
from flask_login import login_required
from dao import manufacturing as mo_dao, bom as bom_dao
from db.models.user import UserRole
from utils.auth import actor_id, roles_required
from utils.forms import payload, parse_datetime

mo_bp = Blueprint("mo_web", __name__, url_prefix="/manufacturing-orders")


@mo_bp.route("")
@login_required
def mo_list():
    mos = mo_dao.list_mos(request.args.get("status"))
    return jsonify([m.to_dict() for m in mos])


@mo_bp.route("", methods=["POST"])
@login_required
def mo_add():
    data = payload()
    mo = mo_dao.create_mo(
        data.get("product_id"),
        data.get("quantity"),
        priority=data.get("priority") or "normal",
        planned_start=parse_datetime(data.get("planned_start")),
        planned_end=parse_datetime(data.get("planned_end")),
        sales_order_id=data.get("sales_order_id"),
        quotation_id=data.get("quotation_id"),
        notes=data.get("notes"),
        items=data.get("items"),
        actor_id=actor_id(),
    )
    return jsonify(mo.to_dict()), 201


@mo_bp.route("/<int:mo_id>")
@login_required
def mo_detail(mo_id: int):
    return jsonify(mo_dao.get_mo(mo_id).to_dict())


@mo_bp.route("/<int:mo_id>/availability")
@login_required
def mo_availability(mo_id: int):
    mo = mo_dao.get_mo(mo_id)
    return jsonify(bom_dao.check_availability(mo.product_id, mo.quantity))


@mo_bp.route("/<int:mo_id>/qc-progress")
@login_required
def mo_qc_progress(mo_id: int):
    return jsonify(mo_dao.qc_progress(mo_id))


@mo_bp.route("/<int:mo_id>/items", methods=["POST"])
@login_required
def mo_add_items(mo_id: int):
    items = payload().get("items") or []
    return jsonify(mo_dao.add_items(mo_id, items).to_dict())


@mo_bp.route("/items/<int:item_id>/status", methods=["POST"])
@login_required
def mo_item_status(item_id: int):
    item = mo_dao.update_item_status(item_id, payload().get("status"))
    return jsonify({"id": item.id, "status": item.status.value})


@mo_bp.route("/items/delete/<int:item_id>", methods=["POST"])
@login_required
def mo_item_delete(item_id: int):
    mo_dao.remove_item(item_id)
    return jsonify({"deleted": item_id})


@mo_bp.route("/<int:mo_id>/start", methods=["POST"])
@login_required
def mo_start(mo_id: int):
    return jsonify(mo_dao.start_mo(mo_id, actor_id=actor_id()).to_dict())


@mo_bp.route("/<int:mo_id>/complete", methods=["POST"])
@login_required
def mo_complete(mo_id: int):
    return jsonify(mo_dao.complete_mo(mo_id).to_dict())


@mo_bp.route("/<int:mo_id>/cancel", methods=["POST"])
@login_required
def mo_cancel(mo_id: int):
    return jsonify(mo_dao.cancel_mo(mo_id, actor_id=actor_id()).to_dict())


@mo_bp.route("/delete/<int:mo_id>", methods=["POST"])
@login_required
@roles_required(UserRole.ADMIN, UserRole.MANUFACTURE_MANAGER)
def mo_delete(mo_id: int):
    audit = mo_dao.delete_mo(mo_id, actor_id(), reason=payload().get("reason"))
    return jsonify(audit.to_dict())


@mo_bp.route("/deletion-audits")
@login_required
@roles_required(UserRole.ADMIN)
def mo_deletion_audits():
    return jsonify([a.to_dict() for a in mo_dao.list_deletion_audits()])
