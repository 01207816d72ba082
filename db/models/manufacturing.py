# db/models/manufacturing.py
from configs import db
from datetime import datetime
from sqlalchemy.dialects.postgresql import JSONB
import enum


class MOStatus(enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    UNDER_QC = "under_qc"
    COMPLETED = "completed"  # legacy/transient, never entered by the engine
    QC_REJECTED = "qc_rejected"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class MOPriority(enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class MoItemStatus(enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ManufacturingOrder(db.Model):
    __tablename__ = "manufacturing_order"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    mo_number = db.Column(db.String(30), unique=True, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False)
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    status = db.Column(
        db.Enum(MOStatus, name="mostatus"),
        default=MOStatus.PLANNED,
        nullable=False,
        index=True,
    )
    priority = db.Column(
        db.Enum(MOPriority, name="mopriority"), default=MOPriority.NORMAL, nullable=False
    )
    sales_order_id = db.Column(
        db.Integer, db.ForeignKey("sales_order.id", ondelete="SET NULL")
    )
    quotation_id = db.Column(
        db.Integer, db.ForeignKey("quotation.id", ondelete="SET NULL"), index=True
    )
    planned_start = db.Column(db.DateTime)
    planned_end = db.Column(db.DateTime)
    actual_start = db.Column(db.DateTime(timezone=True))
    actual_end = db.Column(db.DateTime(timezone=True))
    notes = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # optimistic concurrency: stale writes raise StaleDataError
    version = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}

    product = db.relationship("Product")
    items = db.relationship(
        "MoItem",
        back_populates="mo",
        cascade="all, delete-orphan",
        order_by="MoItem.id",
    )
    qc_records = db.relationship(
        "QualityControlRecord",
        back_populates="mo",
        cascade="all, delete-orphan",
        order_by="QualityControlRecord.id",
    )

    def snapshot(self) -> dict:
        """Full row + items, used by the deletion audit."""
        return {
            "id": self.id,
            "mo_number": self.mo_number,
            "product_id": self.product_id,
            "quantity": str(self.quantity),
            "status": self.status.value,
            "priority": self.priority.value,
            "sales_order_id": self.sales_order_id,
            "quotation_id": self.quotation_id,
            "planned_start": _iso(self.planned_start),
            "planned_end": _iso(self.planned_end),
            "actual_start": _iso(self.actual_start),
            "actual_end": _iso(self.actual_end),
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "items": [
                {
                    "id": it.id,
                    "product_id": it.product_id,
                    "quantity": str(it.quantity),
                    "status": it.status.value,
                    "notes": it.notes,
                }
                for it in self.items
            ],
        }

    def to_dict(self):
        data = self.snapshot()
        data["quantity"] = float(self.quantity)
        for it in data["items"]:
            it["quantity"] = float(it["quantity"])
        return data


class MoItem(db.Model):
    """Co-produced product sharing the order with the primary product."""

    __tablename__ = "mo_item"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    mo_id = db.Column(
        db.Integer,
        db.ForeignKey("manufacturing_order.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False)
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    status = db.Column(
        db.Enum(MoItemStatus, name="moitemstatus"),
        default=MoItemStatus.PENDING,
        nullable=False,
    )
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    mo = db.relationship("ManufacturingOrder", back_populates="items")
    product = db.relationship("Product")


class MoDeletionAudit(db.Model):
    __tablename__ = "mo_deletion_audit"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    mo_id = db.Column(db.Integer, nullable=False, index=True)  # no FK: row is gone
    mo_number = db.Column(db.String(30), nullable=False)
    snapshot = db.Column(db.JSON().with_variant(JSONB, "postgresql"), nullable=False)
    deleted_by = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    reason = db.Column(db.Text)
    deleted_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "mo_id": self.mo_id,
            "mo_number": self.mo_number,
            "snapshot": self.snapshot,
            "deleted_by": self.deleted_by,
            "reason": self.reason,
            "deleted_at": _iso(self.deleted_at),
        }


def _iso(value):
    return value.isoformat() if value else None
