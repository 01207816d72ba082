# dao/manufacturing.py
"""Manufacturing order state machine.

    planned -> in_progress -> under_qc -> closed | qc_rejected
    planned | in_progress -> cancelled

under_qc -> closed / qc_rejected are driven by dao.qc.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from flask import current_app
from sqlalchemy.orm import joinedload
from configs import db, MO_DELETE_BLOCKED_STATUSES
from db.models.manufacturing import (
    ManufacturingOrder,
    MoItem,
    MoItemStatus,
    MoDeletionAudit,
    MOStatus,
    MOPriority,
)
from db.models.product import Product
from db.models.qc import QualityControlRecord, QCStatus
from db.models.reservation import AssignmentStatus
from dao import bom as bom_dao
from dao import inventory as inv_dao
from dao import notification as notify_dao
from dao import reservation as rsv_dao
from dao import tx
from dao.errors import InvalidTransition, DeletionBlocked

logger = logging.getLogger(__name__)

REF_MO = "manufacturing_order"

CANCELLABLE = (MOStatus.PLANNED, MOStatus.IN_PROGRESS)


# ---------- helpers ----------
def _dec(x) -> Decimal:
    return tx.dec(x)


def _now():
    return datetime.now(timezone.utc)


def _to_priority(value) -> MOPriority:
    if isinstance(value, MOPriority):
        return value
    try:
        return MOPriority((value or "normal").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown priority: {value!r}")


def _to_status(value) -> MOStatus:
    if isinstance(value, MOStatus):
        return value
    try:
        return MOStatus((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown MO status: {value!r}")


def _lock(mo_id: int) -> ManufacturingOrder:
    return tx.lock(ManufacturingOrder, mo_id, "ManufacturingOrder")


def _require(mo: ManufacturingOrder, requested: MOStatus, *allowed: MOStatus) -> None:
    if mo.status not in allowed:
        raise InvalidTransition("ManufacturingOrder", mo.id, mo.status, requested)


def _normalize_items(items) -> List[Dict]:
    out = []
    for idx, it in enumerate(items or [], 1):
        try:
            product_id = int(it["product_id"])
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Item {idx}: product_id is missing or invalid.")
        qty = _dec(it.get("quantity"))
        if qty <= 0:
            raise ValueError(f"Item {idx}: quantity must be > 0.")
        tx.get(Product, product_id, "Product")
        out.append({"product_id": product_id, "quantity": qty, "notes": it.get("notes")})
    return out


def _new_mo(
    product_id: int,
    quantity,
    priority="normal",
    planned_start=None,
    planned_end=None,
    sales_order_id: Optional[int] = None,
    quotation_id: Optional[int] = None,
    notes: Optional[str] = None,
    items=None,
    actor_id: Optional[int] = None,
) -> ManufacturingOrder:
    """Insert a planned MO (and its co-produced items). Flush only."""
    if product_id in (None, ""):
        raise ValueError("product_id is required.")
    product = tx.get(Product, product_id, "Product")
    qty = _dec(quantity)
    if qty <= 0:
        raise ValueError("MO quantity must be > 0.")

    mo = ManufacturingOrder(
        mo_number=tx.next_number(ManufacturingOrder.mo_number, "MO"),
        product_id=product.id,
        quantity=qty,
        status=MOStatus.PLANNED,
        priority=_to_priority(priority),
        planned_start=planned_start,
        planned_end=planned_end,
        sales_order_id=sales_order_id,
        quotation_id=quotation_id,
        notes=notes,
        created_by=actor_id,
    )
    for it in _normalize_items(items):
        mo.items.append(MoItem(**it))
    db.session.add(mo)
    db.session.flush()
    return mo


def _demand(mo: ManufacturingOrder):
    return [(mo.product_id, mo.quantity)] + [
        (it.product_id, it.quantity) for it in mo.items
    ]


def notify_shortages(mo: ManufacturingOrder) -> int:
    """Alert planners if raw material is short for this MO. Never raises."""
    try:
        short = bom_dao.shortages(bom_dao.material_requirements(_demand(mo)))
    except Exception:
        logger.exception("Shortage check for %s failed", mo.mo_number)
        return 0
    if not short:
        return 0
    listing = "; ".join(
        f"{s['name']}: need {s['required']}, have {s['available']}" for s in short
    )
    return notify_dao.dispatch(
        notify_dao.MATERIAL_SHORTAGE,
        title=f"Material Shortage Alert - {mo.mo_number}",
        message=f"Manufacturing order {mo.mo_number} has material shortages: {listing}",
        severity="warning",
        reference_type=REF_MO,
        reference_id=mo.id,
    )


# =========================
#          Queries
# =========================
def get_mo(mo_id: int) -> ManufacturingOrder:
    return tx.get(ManufacturingOrder, mo_id, "ManufacturingOrder")


def list_mos(status=None) -> List[ManufacturingOrder]:
    q = ManufacturingOrder.query.options(
        joinedload(ManufacturingOrder.product), joinedload(ManufacturingOrder.items)
    )
    if status:
        q = q.filter(ManufacturingOrder.status == _to_status(status))
    return q.order_by(ManufacturingOrder.id.desc()).all()


def qc_progress(mo_id: int) -> Dict:
    mo = get_mo(mo_id)
    records = mo.qc_records
    by_status = {s: 0 for s in QCStatus}
    for r in records:
        by_status[r.status] += 1
    return {
        "mo_id": mo.id,
        "status": mo.status.value,
        "total": len(records),
        "under_review": by_status[QCStatus.UNDER_REVIEW],
        "accepted": by_status[QCStatus.ACCEPTED],
        "rejected": by_status[QCStatus.REJECTED],
        "partially_accepted": 0 < by_status[QCStatus.ACCEPTED] < len(records),
    }


def list_deletion_audits() -> List[MoDeletionAudit]:
    return MoDeletionAudit.query.order_by(MoDeletionAudit.id.desc()).all()


# =========================
#         Mutations
# =========================
def create_mo(
    product_id: int,
    quantity,
    priority="normal",
    planned_start=None,
    planned_end=None,
    sales_order_id: Optional[int] = None,
    quotation_id: Optional[int] = None,
    notes: Optional[str] = None,
    items=None,
    actor_id: Optional[int] = None,
) -> ManufacturingOrder:
    with tx.atomic("ManufacturingOrder"):
        mo = _new_mo(
            product_id,
            quantity,
            priority=priority,
            planned_start=planned_start,
            planned_end=planned_end,
            sales_order_id=sales_order_id,
            quotation_id=quotation_id,
            notes=notes,
            items=items,
            actor_id=actor_id,
        )
    logger.info("Created %s for product #%s x %s", mo.mo_number, mo.product_id, mo.quantity)
    notify_shortages(mo)
    return mo


def add_items(mo_id: int, items) -> ManufacturingOrder:
    with tx.atomic("ManufacturingOrder", mo_id):
        mo = _lock(mo_id)
        if mo.status != MOStatus.PLANNED:
            raise ValueError(f"{mo.mo_number}: items can only change while planned.")
        for it in _normalize_items(items):
            mo.items.append(MoItem(**it))
        mo.updated_at = datetime.utcnow()
    return mo


def update_item_status(item_id: int, status) -> MoItem:
    try:
        new_status = MoItemStatus((status or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown item status: {status!r}")
    with tx.atomic("MoItem", item_id):
        item = tx.lock(MoItem, item_id, "MoItem")
        if item.mo.status != MOStatus.IN_PROGRESS:
            raise InvalidTransition("MoItem", item.id, item.status, new_status)
        item.status = new_status
    return item


def remove_item(item_id: int) -> None:
    with tx.atomic("MoItem", item_id):
        item = tx.lock(MoItem, item_id, "MoItem")
        if item.mo.status != MOStatus.PLANNED:
            raise ValueError(f"{item.mo.mo_number}: items can only change while planned.")
        db.session.delete(item)


def start_mo(mo_id: int, actor_id: Optional[int] = None) -> ManufacturingOrder:
    """planned -> in_progress; consumes BOM material exactly once."""
    with tx.atomic("ManufacturingOrder", mo_id):
        mo = _lock(mo_id)
        _require(mo, MOStatus.IN_PROGRESS, MOStatus.PLANNED)

        mo.status = MOStatus.IN_PROGRESS
        mo.actual_start = _now()

        requirements = bom_dao.material_requirements(_demand(mo))
        for material_id, required in sorted(requirements.items()):
            if required > 0:
                inv_dao.deduct(
                    material_id,
                    required,
                    reference_type=REF_MO,
                    reference_id=mo.id,
                    note=f"Material consumption for {mo.mo_number}",
                    actor_id=actor_id,
                )
        for it in mo.items:
            it.status = MoItemStatus.IN_PROGRESS

        rsv_dao._set_status_for_mo(mo.id, AssignmentStatus.IN_PRODUCTION)
    logger.info("%s started, %d materials consumed", mo.mo_number, len(requirements))
    return mo


def complete_mo(mo_id: int) -> ManufacturingOrder:
    """in_progress -> under_qc; one QC record per produced product."""
    with tx.atomic("ManufacturingOrder", mo_id):
        mo = _lock(mo_id)
        _require(mo, MOStatus.UNDER_QC, MOStatus.IN_PROGRESS)

        mo.status = MOStatus.UNDER_QC
        mo.actual_end = _now()

        mo.qc_records.append(
            QualityControlRecord(product_id=mo.product_id, quantity=mo.quantity)
        )
        for it in mo.items:
            it.status = MoItemStatus.COMPLETED
            mo.qc_records.append(
                QualityControlRecord(product_id=it.product_id, quantity=it.quantity)
            )
    logger.info("%s sent to QC (%d records)", mo.mo_number, len(mo.qc_records))
    return mo


def cancel_mo(mo_id: int, actor_id: Optional[int] = None) -> ManufacturingOrder:
    """Consumed material is not returned to stock."""
    with tx.atomic("ManufacturingOrder", mo_id):
        mo = _lock(mo_id)
        _require(mo, MOStatus.CANCELLED, *CANCELLABLE)
        mo.status = MOStatus.CANCELLED
        rsv_dao._set_status_for_mo(mo.id, AssignmentStatus.PENDING)
    logger.info("%s cancelled by user #%s", mo.mo_number, actor_id)
    return mo


def delete_mo(
    mo_id: int, actor_id: Optional[int], reason: Optional[str] = None
) -> MoDeletionAudit:
    """Audit first, then delete, in one transaction."""
    with tx.atomic("ManufacturingOrder", mo_id):
        mo = _lock(mo_id)
        blocked = current_app.config.get(
            "MO_DELETE_BLOCKED_STATUSES", MO_DELETE_BLOCKED_STATUSES
        )
        if mo.status.value in blocked:
            raise DeletionBlocked("ManufacturingOrder", mo.id, mo.status)

        audit = MoDeletionAudit(
            mo_id=mo.id,
            mo_number=mo.mo_number,
            snapshot=mo.snapshot(),
            deleted_by=actor_id,
            reason=(reason or "").strip() or None,
        )
        db.session.add(audit)
        db.session.flush()

        rsv_dao._detach_from_mo(mo.id)
        db.session.delete(mo)
    logger.info("%s deleted by user #%s", audit.mo_number, actor_id)
    return audit
