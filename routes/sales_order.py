from flask import Blueprint, jsonify, request
from flask_login import login_required
from dao import sales_order as so_dao
from utils.auth import actor_id
from utils.forms import payload

so_bp = Blueprint("so_web", __name__, url_prefix="/sales-orders")


@so_bp.route("")
@login_required
def so_list():
    orders = so_dao.list_sales_orders(request.args.get("status"))
    return jsonify([so.to_dict() for so in orders])


@so_bp.route("/<int:so_id>")
@login_required
def so_detail(so_id: int):
    return jsonify(so_dao.get_sales_order(so_id).to_dict())


@so_bp.route("/<int:so_id>/status", methods=["POST"])
@login_required
def so_status(so_id: int):
    so = so_dao.set_status(so_id, payload().get("status"), actor_id=actor_id())
    return jsonify(so.to_dict())


@so_bp.route("/<int:so_id>/ship", methods=["POST"])
@login_required
def so_ship(so_id: int):
    return jsonify(so_dao.on_shipment(so_id, actor_id=actor_id()).to_dict())
