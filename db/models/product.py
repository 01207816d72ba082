# db/models/product.py
from datetime import datetime
from decimal import Decimal
from configs import db


class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    sku = db.Column(db.String(60), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(16), default="pcs", nullable=False)
    selling_price = db.Column(db.Numeric(18, 3), default=0)
    cost_price = db.Column(db.Numeric(18, 3), default=0)

    # written only by dao.inventory
    current_stock = db.Column(db.Numeric(18, 3), default=0, nullable=False)
    minimum_stock = db.Column(db.Numeric(18, 3), default=0, nullable=False)
    # derived: written only by dao.reservation.recompute
    assigned_quantity = db.Column(db.Numeric(18, 3), default=0, nullable=False)

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    bom_lines = db.relationship(
        "BomLine", back_populates="product", cascade="all, delete-orphan"
    )

    @property
    def available_to_promise(self) -> Decimal:
        # negative = over-committed, surfaced as a warning
        return Decimal(self.current_stock or 0) - Decimal(self.assigned_quantity or 0)

    def __str__(self):
        return f"{self.sku} - {self.name}"

    def to_dict(self):
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "unit": self.unit,
            "current_stock": float(self.current_stock or 0),
            "minimum_stock": float(self.minimum_stock or 0),
            "assigned_quantity": float(self.assigned_quantity or 0),
            "available_to_promise": float(self.available_to_promise),
        }


class BomLine(db.Model):
    __tablename__ = "bom_line"
    __table_args__ = (
        db.UniqueConstraint("product_id", "raw_material_id", name="uq_bom_line"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("product.id", ondelete="CASCADE"), nullable=False
    )
    raw_material_id = db.Column(
        db.Integer, db.ForeignKey("raw_material.id"), nullable=False
    )
    quantity_per_unit = db.Column(db.Numeric(18, 3), nullable=False, default=1)
    notes = db.Column(db.Text)

    product = db.relationship("Product", back_populates="bom_lines")
    raw_material = db.relationship("RawMaterial")

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "raw_material_id": self.raw_material_id,
            "quantity_per_unit": float(self.quantity_per_unit or 0),
            "notes": self.notes,
        }
