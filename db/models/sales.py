# db/models/sales.py
from configs import db
from datetime import datetime, date
from sqlalchemy.dialects.postgresql import JSONB
import enum


class QuotationStatus(enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED = "converted"


class SOStatus(enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Quotation(db.Model):
    __tablename__ = "quotation"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quotation_number = db.Column(db.String(30), unique=True, nullable=False)
    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255))
    customer_phone = db.Column(db.String(50))
    valid_from = db.Column(db.Date, default=date.today)
    valid_until = db.Column(db.Date)
    status = db.Column(
        db.Enum(QuotationStatus, name="quotationstatus"),
        default=QuotationStatus.DRAFT,
        nullable=False,
    )
    subtotal = db.Column(db.Numeric(18, 2), default=0)
    discount_percent = db.Column(db.Numeric(5, 2), default=0)
    tax_percent = db.Column(db.Numeric(5, 2), default=0)
    total = db.Column(db.Numeric(18, 2), default=0)
    notes = db.Column(db.Text)
    edit_count = db.Column(db.Integer, default=0, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "quotation_number": self.quotation_number,
            "customer_name": self.customer_name,
            "status": self.status.value,
            "subtotal": float(self.subtotal or 0),
            "discount_percent": float(self.discount_percent or 0),
            "tax_percent": float(self.tax_percent or 0),
            "total": float(self.total or 0),
            "edit_count": self.edit_count,
            "items": [it.to_dict() for it in self.items],
        }


class QuotationItem(db.Model):
    __tablename__ = "quotation_item"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quotation_id = db.Column(
        db.Integer, db.ForeignKey("quotation.id", ondelete="CASCADE"), nullable=False
    )
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"))  # free-text lines allowed
    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    unit_price = db.Column(db.Numeric(18, 2), default=0)
    total = db.Column(db.Numeric(18, 2), default=0)

    quotation = db.relationship("Quotation", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "description": self.description,
            "quantity": float(self.quantity),
            "unit_price": float(self.unit_price or 0),
            "total": float(self.total or 0),
        }


class QuotationEditHistory(db.Model):
    __tablename__ = "quotation_edit_history"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    quotation_id = db.Column(
        db.Integer, db.ForeignKey("quotation.id", ondelete="CASCADE"), nullable=False
    )
    changes = db.Column(db.JSON().with_variant(JSONB, "postgresql"), default=dict)
    previous_values = db.Column(db.JSON().with_variant(JSONB, "postgresql"), default=dict)
    edited_by = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    edited_at = db.Column(db.DateTime, default=datetime.utcnow)

    quotation = db.relationship(
        "Quotation", backref=db.backref("edit_history", cascade="all, delete-orphan")
    )

    def to_dict(self):
        return {
            "id": self.id,
            "quotation_id": self.quotation_id,
            "changes": self.changes,
            "previous_values": self.previous_values,
            "edited_by": self.edited_by,
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
        }


class SalesOrder(db.Model):
    __tablename__ = "sales_order"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    order_number = db.Column(db.String(30), unique=True, nullable=False)
    quotation_id = db.Column(db.Integer, db.ForeignKey("quotation.id"), index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    order_date = db.Column(db.Date, default=date.today)
    due_date = db.Column(db.Date)
    status = db.Column(
        db.Enum(SOStatus, name="sostatus"), default=SOStatus.PENDING, nullable=False
    )
    subtotal = db.Column(db.Numeric(18, 2), default=0)
    discount_percent = db.Column(db.Numeric(5, 2), default=0)
    tax_percent = db.Column(db.Numeric(5, 2), default=0)
    total = db.Column(db.Numeric(18, 2), default=0)
    notes = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    quotation = db.relationship("Quotation")

    def to_dict(self):
        return {
            "id": self.id,
            "order_number": self.order_number,
            "quotation_id": self.quotation_id,
            "customer_name": self.customer_name,
            "status": self.status.value,
            "subtotal": float(self.subtotal or 0),
            "total": float(self.total or 0),
        }
