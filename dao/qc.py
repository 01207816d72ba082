# dao/qc.py
"""Quality control gate between production and finished-goods stock."""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import joinedload
from configs import db
from db.models.qc import QualityControlRecord as QC, QCStatus
from db.models.manufacturing import ManufacturingOrder, MOStatus
from db.models.reservation import AssignmentStatus
from db.models.user import User
from dao import inventory as inv_dao
from dao import notification as notify_dao
from dao import reservation as rsv_dao
from dao import tx
from dao.errors import InvalidTransition

logger = logging.getLogger(__name__)

REF_QC = "quality_control"


# ---------- helpers ----------
def _to_qc_status(value) -> Optional[QCStatus]:
    if not value:
        return None
    if isinstance(value, QCStatus):
        return value
    try:
        return QCStatus(value.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown QC status: {value!r}")


def _lock_open(qc_id: int, requested: QCStatus) -> QC:
    qc = tx.lock(QC, qc_id, "QualityControlRecord")
    if qc.status != QCStatus.UNDER_REVIEW:
        raise InvalidTransition("QualityControlRecord", qc.id, qc.status, requested)
    return qc


def _stamp(qc: QC, actor_id: Optional[int]) -> None:
    qc.inspector_id = actor_id or qc.inspector_id
    qc.inspected_at = datetime.now(timezone.utc)


# =========================
#          Queries
# =========================
def list_records(status=None) -> List[QC]:
    q = QC.query.options(joinedload(QC.mo), joinedload(QC.product))
    st = _to_qc_status(status)
    if st:
        q = q.filter(QC.status == st)
    return q.order_by(QC.created_at.desc(), QC.id.desc()).all()


def list_for_mo(mo_id: int) -> List[QC]:
    return QC.query.filter_by(mo_id=int(mo_id)).order_by(QC.id.asc()).all()


def get_qc(qc_id: int) -> QC:
    return tx.get(QC, qc_id, "QualityControlRecord")


def counts() -> Dict[str, int]:
    rows = db.session.query(QC.status, func.count(QC.id)).group_by(QC.status).all()
    out = {s.value: 0 for s in QCStatus}
    for status, n in rows:
        out[status.value] = n
    out["total"] = sum(out.values())
    return out


# =========================
#         Decisions
# =========================
def accept(qc_id: int, actor_id: Optional[int], notes: Optional[str] = None) -> QC:
    """Accept one QC record.

    Build-to-stock output (MO without sales order) goes into inventory right
    away. The MO closes once every one of its records is accepted; at that
    point reservations tied to the MO are fulfilled.
    """
    with tx.atomic("QualityControlRecord", qc_id):
        qc = _lock_open(qc_id, QCStatus.ACCEPTED)
        mo = tx.lock(ManufacturingOrder, qc.mo_id, "ManufacturingOrder")

        qc.status = QCStatus.ACCEPTED
        _stamp(qc, actor_id)
        if notes is not None:
            qc.notes = notes

        if not mo.sales_order_id:
            inv_dao.replenish(
                qc.product_id,
                qc.quantity,
                reference_type=REF_QC,
                reference_id=qc.id,
                note=f"QC Accepted for MO {mo.mo_number}",
                actor_id=actor_id,
            )

        db.session.flush()
        all_accepted = all(r.status == QCStatus.ACCEPTED for r in mo.qc_records)
        if mo.status == MOStatus.UNDER_QC and all_accepted:
            mo.status = MOStatus.CLOSED
            if mo.quotation_id:
                rsv_dao._set_status_for_mo(mo.id, AssignmentStatus.COMPLETED)
            logger.info("%s closed after QC", mo.mo_number)
        else:
            # partial acceptance: MO stays under_qc (or qc_rejected)
            mo.updated_at = datetime.utcnow()
    return qc


def reject(qc_id: int, actor_id: Optional[int], reason: str) -> QC:
    """Reject one QC record. Stock and reservations are left untouched."""
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("Rejection reason is required.")

    with tx.atomic("QualityControlRecord", qc_id):
        qc = _lock_open(qc_id, QCStatus.REJECTED)
        mo = tx.lock(ManufacturingOrder, qc.mo_id, "ManufacturingOrder")

        qc.status = QCStatus.REJECTED
        qc.rejection_reason = reason
        _stamp(qc, actor_id)

        if mo.status == MOStatus.UNDER_QC:
            mo.status = MOStatus.QC_REJECTED
        mo_number = mo.mo_number

    logger.info("QC #%s rejected for %s: %s", qc_id, mo_number, reason)
    notify_dao.dispatch(
        notify_dao.QC_REJECTED,
        title="Quality Control Rejected",
        message=f"MO {mo_number} failed quality control: {reason}",
        severity="error",
        reference_type=REF_QC,
        reference_id=int(qc_id),
    )
    return qc


def assign_inspector(qc_id: int, inspector_id: int) -> QC:
    with tx.atomic("QualityControlRecord", qc_id):
        qc = _lock_open(qc_id, QCStatus.UNDER_REVIEW)
        qc.inspector_id = tx.get(User, inspector_id, "User").id
    return qc
