import pytest
from decimal import Decimal
from app import create_app
from configs import db
from db.models.material import RawMaterial
from db.models.product import Product, BomLine
from db.models.user import UserRole
from dao import user as user_dao


@pytest.fixture
def app():
    app = create_app(
        {
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "TESTING": True,
            "LOGIN_DISABLED": True,
            "MO_DELETE_BLOCKED_STATUSES": [],
        }
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


class Factory:
    def __init__(self):
        self._n = 0

    def _sku(self, prefix):
        self._n += 1
        return f"{prefix}-{self._n:03d}"

    def material(self, stock=0, reorder_point=0, name=None):
        m = RawMaterial(
            sku=self._sku("MAT"),
            name=name or "Material",
            current_stock=Decimal(str(stock)),
            reorder_point=Decimal(str(reorder_point)),
        )
        db.session.add(m)
        db.session.commit()
        return m

    def product(self, stock=0, minimum_stock=0, name=None):
        p = Product(
            sku=self._sku("FG"),
            name=name or "Product",
            current_stock=Decimal(str(stock)),
            minimum_stock=Decimal(str(minimum_stock)),
        )
        db.session.add(p)
        db.session.commit()
        return p

    def bom(self, product, material, per_unit):
        ln = BomLine(
            product_id=product.id,
            raw_material_id=material.id,
            quantity_per_unit=Decimal(str(per_unit)),
        )
        db.session.add(ln)
        db.session.commit()
        return ln

    def user(self, username, *roles, is_active=True):
        return user_dao.create_user(
            username, "secret", full_name=username.title(), roles=roles, is_active=is_active
        )

    def staff(self):
        """One user per notification-relevant role."""
        return {
            "admin": self.user("admin", UserRole.ADMIN),
            "planner": self.user("planner", UserRole.MANUFACTURE_MANAGER),
            "warehouse": self.user("warehouse", UserRole.INVENTORY_MANAGER),
            "buyer": self.user("buyer", UserRole.PURCHASING),
            "hr": self.user("hr", UserRole.HR),
        }


@pytest.fixture
def factory(app):
    return Factory()
