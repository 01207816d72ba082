# db/models/material.py
from datetime import datetime
from configs import db


class RawMaterial(db.Model):
    __tablename__ = "raw_material"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    sku = db.Column(db.String(60), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(16), default="pcs", nullable=False)
    cost_per_unit = db.Column(db.Numeric(18, 3), default=0)

    # written only by dao.inventory
    current_stock = db.Column(db.Numeric(18, 3), default=0, nullable=False)
    reorder_point = db.Column(db.Numeric(18, 3), default=0, nullable=False)

    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __str__(self):
        return f"{self.sku} - {self.name}"

    def to_dict(self):
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "unit": self.unit,
            "current_stock": float(self.current_stock or 0),
            "reorder_point": float(self.reorder_point or 0),
        }
