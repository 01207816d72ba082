from configs import db
from admin.setup import ProductView, RawMaterialView
from db.models.material import RawMaterial
from db.models.product import Product


def _fields(view):
    return {f.name for f in view.create_form()}


def test_stock_is_not_editable_from_admin(app):
    with app.test_request_context("/admin/"):
        product_fields = _fields(ProductView(Product, db.session, endpoint="stock_product"))
        material_fields = _fields(RawMaterialView(RawMaterial, db.session, endpoint="stock_material"))

    assert "current_stock" not in product_fields
    assert "assigned_quantity" not in product_fields
    assert "minimum_stock" in product_fields
    assert "current_stock" not in material_fields
    assert "reorder_point" in material_fields
