# db/models/qc.py
from sqlalchemy import DateTime
from configs import db
from datetime import datetime
import enum


class QCStatus(enum.Enum):
    UNDER_REVIEW = "under_review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class QualityControlRecord(db.Model):
    __tablename__ = "quality_control_record"

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
        db.Enum(QCStatus, name="qcstatus"), default=QCStatus.UNDER_REVIEW, nullable=False
    )  # under_review/accepted/rejected
    inspector_id = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    inspected_at = db.Column(DateTime(timezone=True), nullable=True, index=True)
    rejection_reason = db.Column(db.Text)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    mo = db.relationship("ManufacturingOrder", back_populates="qc_records")
    product = db.relationship("Product")
    inspector = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "mo_id": self.mo_id,
            "product_id": self.product_id,
            "quantity": float(self.quantity),
            "status": self.status.value,
            "inspector_id": self.inspector_id,
            "inspected_at": self.inspected_at.isoformat() if self.inspected_at else None,
            "rejection_reason": self.rejection_reason,
            "notes": self.notes,
        }
