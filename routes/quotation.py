from flask import Blueprint, jsonify, request
from flask_login import login_required
from dao import quotation as quotation_dao, bom as bom_dao
from utils.auth import actor_id
from utils.forms import payload, parse_date, to_bool

quotation_bp = Blueprint("quotation_web", __name__, url_prefix="/quotations")

_DATE_FIELDS = ("valid_from", "valid_until")


@quotation_bp.route("")
@login_required
def quotation_list():
    qs = quotation_dao.list_quotations(request.args.get("status"))
    return jsonify([q.to_dict() for q in qs])


@quotation_bp.route("", methods=["POST"])
@login_required
def quotation_add():
    data = payload()
    q = quotation_dao.create_quotation(
        data.get("customer_name"),
        data.get("items") or [],
        valid_from=parse_date(data.get("valid_from")),
        valid_until=parse_date(data.get("valid_until")),
        customer_email=data.get("customer_email"),
        customer_phone=data.get("customer_phone"),
        discount_percent=data.get("discount_percent") or 0,
        tax_percent=data.get("tax_percent") or 0,
        notes=data.get("notes"),
        actor_id=actor_id(),
    )
    return jsonify(q.to_dict()), 201


@quotation_bp.route("/<int:quotation_id>")
@login_required
def quotation_detail(quotation_id: int):
    return jsonify(quotation_dao.get_quotation(quotation_id).to_dict())


@quotation_bp.route("/edit/<int:quotation_id>", methods=["POST"])
@login_required
def quotation_edit(quotation_id: int):
    data = dict(payload())
    items = data.pop("items", None)
    for k in _DATE_FIELDS:
        if k in data:
            data[k] = parse_date(data[k])
    q = quotation_dao.update_quotation(
        quotation_id, items=items, actor_id=actor_id(), **data
    )
    return jsonify(q.to_dict())


@quotation_bp.route("/<int:quotation_id>/history")
@login_required
def quotation_history(quotation_id: int):
    rows = quotation_dao.list_edit_history(quotation_id)
    return jsonify([h.to_dict() for h in rows])


@quotation_bp.route("/<int:quotation_id>/availability")
@login_required
def quotation_availability(quotation_id: int):
    return jsonify(bom_dao.check_quotation_availability(quotation_id))


@quotation_bp.route("/<int:quotation_id>/status", methods=["POST"])
@login_required
def quotation_status(quotation_id: int):
    q = quotation_dao.set_status(quotation_id, payload().get("status"))
    return jsonify(q.to_dict())


@quotation_bp.route("/<int:quotation_id>/accept", methods=["POST"])
@login_required
def quotation_accept(quotation_id: int):
    q, mos = quotation_dao.accept(
        quotation_id,
        create_mo=to_bool(payload().get("create_mo")),
        actor_id=actor_id(),
    )
    return jsonify({"quotation": q.to_dict(), "manufacturing_orders": [m.to_dict() for m in mos]})


@quotation_bp.route("/<int:quotation_id>/convert", methods=["POST"])
@login_required
def quotation_convert(quotation_id: int):
    so = quotation_dao.convert_to_sales_order(
        quotation_id,
        actor_id=actor_id(),
        due_date=parse_date(payload().get("due_date")),
    )
    return jsonify(so.to_dict()), 201


@quotation_bp.route("/delete/<int:quotation_id>", methods=["POST"])
@login_required
def quotation_delete(quotation_id: int):
    quotation_dao.delete_quotation(quotation_id)
    return jsonify({"deleted": quotation_id})
