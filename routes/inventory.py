from flask import Blueprint, jsonify, request
from flask_login import login_required
from dao import inventory as inv_dao, reservation as rsv_dao, bom as bom_dao
from db.models.user import UserRole
from utils.auth import actor_id, roles_required
from utils.forms import payload

inventory_bp = Blueprint("inventory_web", __name__, url_prefix="/inventory")


def _ids():
    return (
        request.args.get("raw_material_id", type=int),
        request.args.get("product_id", type=int),
    )


@inventory_bp.route("/products/<int:product_id>/bom")
@login_required
def product_bom(product_id: int):
    return jsonify([ln.to_dict() for ln in bom_dao.list_bom(product_id)])


@inventory_bp.route("/products/<int:product_id>/availability")
@login_required
def product_availability(product_id: int):
    quantity = request.args.get("quantity", "1")
    return jsonify(bom_dao.check_availability(product_id, quantity))


@inventory_bp.route("/products/<int:product_id>/reservations")
@login_required
def product_reservations(product_id: int):
    rows = rsv_dao.list_for_product(product_id)
    return jsonify(
        {
            "product_id": product_id,
            "available_to_promise": rsv_dao.available_to_promise(product_id),
            "reservations": [a.to_dict() for a in rows],
        }
    )


@inventory_bp.route("/products/<int:product_id>/recompute", methods=["POST"])
@login_required
def product_recompute(product_id: int):
    return jsonify({"product_id": product_id, "assigned_quantity": rsv_dao.recompute(product_id)})


@inventory_bp.route("/reservations", methods=["POST"])
@login_required
def reservation_add():
    data = payload()
    a = rsv_dao.create(
        data.get("product_id"),
        data.get("quantity"),
        quotation_id=data.get("quotation_id"),
        mo_id=data.get("mo_id"),
    )
    return jsonify(a.to_dict()), 201


@inventory_bp.route("/reservations/<int:assignment_id>/status", methods=["POST"])
@login_required
def reservation_status(assignment_id: int):
    a = rsv_dao.set_status(assignment_id, payload().get("status"))
    return jsonify(a.to_dict())


@inventory_bp.route("/quotations/<int:quotation_id>/release", methods=["POST"])
@login_required
def reservation_release(quotation_id: int):
    return jsonify({"products": rsv_dao.release_all_for_quotation(quotation_id)})


@inventory_bp.route("/transactions")
@login_required
def transaction_list():
    raw_material_id, product_id = _ids()
    rows = inv_dao.list_transactions(raw_material_id, product_id)
    return jsonify([t.to_dict() for t in rows])


@inventory_bp.route("/adjustments", methods=["POST"])
@login_required
@roles_required(UserRole.ADMIN, UserRole.INVENTORY_MANAGER)
def adjustment_add():
    data = payload()
    mv = inv_dao.adjust(
        data.get("delta"),
        raw_material_id=data.get("raw_material_id"),
        product_id=data.get("product_id"),
        note=data.get("note"),
        actor_id=actor_id(),
    )
    return jsonify(mv.to_dict()), 201


@inventory_bp.route("/alerts")
@login_required
def alerts():
    return jsonify(inv_dao.stock_alerts())


@inventory_bp.route("/reconcile")
@login_required
def reconcile():
    raw_material_id, product_id = _ids()
    if (raw_material_id is None) == (product_id is None):
        raise ValueError("Pass exactly one of raw_material_id / product_id.")
    return jsonify(inv_dao.reconcile(raw_material_id, product_id))
