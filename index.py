# index.py
from flask import Blueprint, jsonify
from flask_login import login_required
from sqlalchemy import func
from configs import db
from db.models.manufacturing import ManufacturingOrder
from dao import inventory as inv_dao, qc as qc_dao

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
@login_required
def home():
    mo_counts = dict(
        db.session.query(ManufacturingOrder.status, func.count(ManufacturingOrder.id))
        .group_by(ManufacturingOrder.status)
        .all()
    )
    return jsonify(
        {
            "manufacturing_orders": {s.value: n for s, n in mo_counts.items()},
            "quality_control": qc_dao.counts(),
            "stock_alerts": len(inv_dao.stock_alerts()),
        }
    )


@main_bp.route("/health")
def health():
    return jsonify({"status": "ok"})
