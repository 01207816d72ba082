# db/models/reservation.py
from configs import db
from datetime import datetime
import enum


class AssignmentStatus(enum.Enum):
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"


# counted towards Product.assigned_quantity
ACTIVE_ASSIGNMENT_STATUSES = (AssignmentStatus.PENDING, AssignmentStatus.IN_PRODUCTION)


class ProductAssignment(db.Model):
    """A reservation (claim) against a product's current or future stock."""

    __tablename__ = "product_assignment"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("product.id"), nullable=False, index=True
    )
    quotation_id = db.Column(
        db.Integer, db.ForeignKey("quotation.id", ondelete="SET NULL"), index=True
    )
    mo_id = db.Column(
        db.Integer,
        db.ForeignKey("manufacturing_order.id", ondelete="SET NULL"),
        index=True,
    )
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    status = db.Column(
        db.Enum(AssignmentStatus, name="assignment_status"),
        default=AssignmentStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = db.relationship("Product")
    quotation = db.relationship("Quotation")
    manufacturing_order = db.relationship("ManufacturingOrder")

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quotation_id": self.quotation_id,
            "mo_id": self.mo_id,
            "quantity": float(self.quantity),
            "status": self.status.value,
        }
