# db/models/inventory.py
from configs import db
from datetime import datetime
import enum


class TransactionType(enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"  # quantity is signed


class InventoryTransaction(db.Model):
    """Append-only ledger row. Never updated or deleted."""

    __tablename__ = "inventory_transaction"
    __table_args__ = (
        db.CheckConstraint(
            "(raw_material_id IS NULL) <> (product_id IS NULL)",
            name="ck_inventory_transaction_one_item",
        ),
        db.Index("ix_inventory_transaction_ref", "reference_type", "reference_id"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    transaction_type = db.Column(
        db.Enum(TransactionType, name="inventory_transaction_type"), nullable=False
    )
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    raw_material_id = db.Column(
        db.Integer, db.ForeignKey("raw_material.id"), index=True
    )
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), index=True)
    reference_type = db.Column(db.String(40))  # manufacturing_order/quality_control/...
    reference_id = db.Column(db.Integer)
    notes = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey("user_account.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    raw_material = db.relationship("RawMaterial")
    product = db.relationship("Product")

    def to_dict(self):
        return {
            "id": self.id,
            "transaction_type": self.transaction_type.value,
            "quantity": float(self.quantity),
            "raw_material_id": self.raw_material_id,
            "product_id": self.product_id,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
