# admin/setup.py
from flask import abort, redirect, url_for
from flask_login import current_user, logout_user
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_admin.menu import MenuLink
from flask_admin.theme import Bootstrap4Theme
from configs import db
from db.models.user import UserRole


def _is_admin():
    return current_user.is_authenticated and current_user.has_role(UserRole.ADMIN)


def _deny():
    abort(403 if current_user.is_authenticated else 401)


class MyAdminIndex(AdminIndexView):
    @expose("/logout")
    def admin_logout(self):
        if current_user.is_authenticated:
            logout_user()
        return redirect(url_for("admin.index"))

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        _deny()


class SecureModelView(ModelView):
    can_view_details = True
    can_export = True

    def is_accessible(self):
        return _is_admin()

    def inaccessible_callback(self, name, **kwargs):
        _deny()


class ReadOnlyView(SecureModelView):
    can_create = False
    can_edit = False
    can_delete = False


class UserView(SecureModelView):
    column_searchable_list = ["username", "full_name"]
    column_list = ["id", "username", "full_name", "is_active"]
    form_excluded_columns = ["password_hash", "grants"]


class ProductView(SecureModelView):
    column_searchable_list = ["sku", "name"]
    column_list = ["id", "sku", "name", "current_stock", "minimum_stock", "assigned_quantity", "is_active"]
    # stock moves only through the ledger; assigned_quantity is derived from reservations
    form_excluded_columns = ["current_stock", "assigned_quantity", "bom_lines"]


class RawMaterialView(SecureModelView):
    column_searchable_list = ["sku", "name"]
    column_list = ["id", "sku", "name", "unit", "current_stock", "reorder_point", "is_active"]
    form_excluded_columns = ["current_stock"]


class ManufacturingOrderView(ReadOnlyView):
    column_searchable_list = ["mo_number"]
    column_filters = ["status", "priority", "product_id"]
    column_list = ["id", "mo_number", "product", "quantity", "status", "priority", "planned_start"]


def init_admin(app):

    admin = Admin(
        app,
        name="Kido MRP Admin",
        theme=Bootstrap4Theme(),
        index_view=MyAdminIndex(url="/manage"),
        url="/manage",
    )
    # models imported late to avoid circular import
    from db.models.user import User, UserRoleGrant
    from db.models.material import RawMaterial
    from db.models.product import Product, BomLine
    from db.models.manufacturing import ManufacturingOrder, MoDeletionAudit
    from db.models.inventory import InventoryTransaction

    views = [
        (UserView, User, "System", "admin_user", "Users"),
        (SecureModelView, UserRoleGrant, "System", "admin_user_role", "Role Grants"),
        (RawMaterialView, RawMaterial, "Master Data", "admin_raw_material", "Raw Materials"),
        (ProductView, Product, "Master Data", "admin_product", "Products"),
        (SecureModelView, BomLine, "Master Data", "admin_bom_line", "BOM Lines"),
        (ManufacturingOrderView, ManufacturingOrder, "Production", "admin_mo", "Manufacturing Orders"),
        (ReadOnlyView, MoDeletionAudit, "Production", "admin_mo_deletion", "MO Deletion Audit"),
        (ReadOnlyView, InventoryTransaction, "Inventory", "admin_inventory_tx", "Inventory Ledger"),
    ]
    for view_cls, model, category, endpoint, name in views:
        admin.add_view(
            view_cls(model, db.session, category=category, endpoint=endpoint, name=name)
        )
    admin.add_link(
        MenuLink(
            name="Logout",
            category="System",
            endpoint="admin.admin_logout",
        )
    )
    return admin
