# seed.py
from decimal import Decimal
from configs import db
from db.models.material import RawMaterial
from db.models.product import Product, BomLine
from app import app  # Flask app


# -------- Raw materials --------
def seed_materials():
    materials = [
        # sku, name, unit, cost, stock, reorder point
        ("MAT-FLOUR", "Premium wheat flour", "kg", 18000, 500, 100),
        ("MAT-SUGAR", "Refined sugar", "kg", 22000, 300, 80),
        ("MAT-LOTUS", "Lotus seed paste", "kg", 95000, 120, 40),
        ("MAT-EGG", "Salted egg yolk", "pcs", 4500, 2000, 500),
        ("MAT-OIL", "Vegetable oil", "l", 38000, 150, 30),
        ("MAT-BOX4", "Gift box (4 cakes)", "pcs", 12000, 400, 100),
    ]
    for sku, name, unit, cost, stock, reorder in materials:
        m = RawMaterial.query.filter_by(sku=sku).first()
        if not m:
            db.session.add(
                RawMaterial(
                    sku=sku,
                    name=name,
                    unit=unit,
                    cost_per_unit=cost,
                    current_stock=stock,
                    reorder_point=reorder,
                )
            )
        else:
            m.name = name
            m.unit = unit
            m.cost_per_unit = cost
            m.reorder_point = reorder
    db.session.commit()
    print("Raw materials seeded/updated")


# -------- Products --------
def seed_products():
    products = [
        # sku, name, price, minimum stock
        ("FG-MC-LOTUS", "Mooncake lotus seed 150g", 65000, 50),
        ("FG-MC-EGG", "Mooncake lotus & salted egg 150g", 75000, 50),
        ("FG-MC-BOX", "Mooncake gift box 4 x 150g", 320000, 20),
    ]
    for sku, name, price, minimum in products:
        p = Product.query.filter_by(sku=sku).first()
        if not p:
            db.session.add(
                Product(sku=sku, name=name, selling_price=price, minimum_stock=minimum)
            )
        else:
            p.name = name
            p.selling_price = price
            p.minimum_stock = minimum
    db.session.commit()
    print("Products seeded/updated")


def _id(model, sku: str) -> int:
    row = model.query.filter_by(sku=sku).first()
    if not row:
        raise RuntimeError(f"'{sku}' is missing. Run seed_materials()/seed_products() first.")
    return row.id


# -------- BOM --------
def seed_bom():
    bom = {
        "FG-MC-LOTUS": [("MAT-FLOUR", "0.05"), ("MAT-SUGAR", "0.02"), ("MAT-LOTUS", "0.09"), ("MAT-OIL", "0.01")],
        "FG-MC-EGG": [
            ("MAT-FLOUR", "0.05"),
            ("MAT-SUGAR", "0.02"),
            ("MAT-LOTUS", "0.07"),
            ("MAT-EGG", "1"),
            ("MAT-OIL", "0.01"),
        ],
        "FG-MC-BOX": [
            ("MAT-FLOUR", "0.2"),
            ("MAT-SUGAR", "0.08"),
            ("MAT-LOTUS", "0.32"),
            ("MAT-EGG", "2"),
            ("MAT-OIL", "0.04"),
            ("MAT-BOX4", "1"),
        ],
    }
    for product_sku, lines in bom.items():
        product_id = _id(Product, product_sku)
        for material_sku, qty in lines:
            material_id = _id(RawMaterial, material_sku)
            ln = BomLine.query.filter_by(product_id=product_id, raw_material_id=material_id).first()
            if not ln:
                db.session.add(
                    BomLine(
                        product_id=product_id,
                        raw_material_id=material_id,
                        quantity_per_unit=Decimal(qty),
                    )
                )
            else:
                ln.quantity_per_unit = Decimal(qty)
    db.session.commit()
    print("BOM seeded/updated")


if __name__ == "__main__":
    with app.app_context():
        db.create_all()
        seed_materials()
        seed_products()
        seed_bom()
