from decimal import Decimal
import pytest
from configs import db
from dao import quotation as quotation_dao
from dao import manufacturing as mo_dao
from db.models.manufacturing import ManufacturingOrder
from db.models.product import Product
from db.models.reservation import ProductAssignment, AssignmentStatus
from db.models.sales import QuotationStatus, SalesOrder
from dao.errors import InvalidTransition


def _quote(factory, qty=10, **kw):
    p = factory.product(stock=0)
    q = quotation_dao.create_quotation(
        "Acme Bakery",
        [{"product_id": p.id, "quantity": qty, "unit_price": "12.50"}],
        **kw,
    )
    return p, q


def test_totals_apply_discount_then_tax():
    items = [
        {"quantity": 2, "unit_price": "100"},
        {"quantity": 1, "unit_price": "50.005"},
    ]
    totals = quotation_dao.compute_totals(items, discount_percent=10, tax_percent=8)
    assert totals["subtotal"] == Decimal("250.01")
    assert totals["total"] == Decimal("243.00")


def test_create_numbers_and_prices(factory):
    p, q = _quote(factory, discount_percent=0, tax_percent=10)
    assert q.quotation_number == "QT-00001"
    assert q.status == QuotationStatus.DRAFT
    assert q.subtotal == Decimal("125.00")
    assert q.total == Decimal("137.50")
    assert q.items[0].description == p.name

    _, q2 = _quote(factory)
    assert q2.quotation_number == "QT-00002"


def test_create_requires_items_and_customer(factory):
    with pytest.raises(ValueError):
        quotation_dao.create_quotation("Acme", [])
    with pytest.raises(ValueError):
        quotation_dao.create_quotation(" ", [{"description": "x", "quantity": 1, "unit_price": 1}])
    with pytest.raises(ValueError):
        quotation_dao.create_quotation("Acme", [{"description": "x", "quantity": 0, "unit_price": 1}])


def test_accept_with_mo_reserves_and_plans(factory):
    p, q = _quote(factory)

    q, mos = quotation_dao.accept(q.id, create_mo=True)

    assert q.status == QuotationStatus.ACCEPTED
    assert len(mos) == 1
    assert mos[0].quantity == Decimal("10")
    assert mos[0].quotation_id == q.id
    a = ProductAssignment.query.filter_by(product_id=p.id).one()
    assert (a.quantity, a.status, a.mo_id) == (Decimal("10"), AssignmentStatus.PENDING, mos[0].id)
    assert db.session.get(Product, p.id).assigned_quantity == Decimal("10")


def test_accept_without_mo_only_reserves(factory):
    p, q = _quote(factory, qty=4)
    _, mos = quotation_dao.accept(q.id)
    assert mos == []
    assert ManufacturingOrder.query.count() == 0
    assert db.session.get(Product, p.id).assigned_quantity == Decimal("4")
    with pytest.raises(InvalidTransition):
        quotation_dao.accept(q.id)


def test_update_records_history(factory):
    _, q = _quote(factory)

    quotation_dao.update_quotation(q.id, customer_name="Acme Foods", tax_percent=10)

    q = quotation_dao.get_quotation(q.id)
    assert q.edit_count == 1
    assert q.total == Decimal("137.50")
    (h,) = quotation_dao.list_edit_history(q.id)
    assert h.changes["customer_name"] == "Acme Foods"
    assert h.previous_values["customer_name"] == "Acme Bakery"
    assert h.changes["total"] == 137.5
    assert h.previous_values["total"] == 125.0


def test_update_rejected_after_accept(factory):
    _, q = _quote(factory)
    quotation_dao.accept(q.id)
    with pytest.raises(ValueError):
        quotation_dao.update_quotation(q.id, notes="late change")
    with pytest.raises(ValueError):
        quotation_dao.update_quotation(q.id, colour="red")


def test_reject_releases_reservations(factory):
    p, q = _quote(factory)
    quotation_dao.accept(q.id)

    quotation_dao.set_status(q.id, "rejected")

    assert db.session.get(Product, p.id).assigned_quantity == Decimal("0")
    a = ProductAssignment.query.filter_by(quotation_id=q.id).one()
    assert a.status == AssignmentStatus.COMPLETED


def test_convert_creates_sales_order_and_links_mos(factory):
    _, q = _quote(factory)
    with pytest.raises(InvalidTransition):
        quotation_dao.convert_to_sales_order(q.id)

    _, (mo,) = quotation_dao.accept(q.id, create_mo=True)
    so = quotation_dao.convert_to_sales_order(q.id)

    assert so.order_number == "SO-00001"
    assert so.quotation_id == q.id
    assert so.total == quotation_dao.get_quotation(q.id).total
    assert quotation_dao.get_quotation(q.id).status == QuotationStatus.CONVERTED
    assert mo_dao.get_mo(mo.id).sales_order_id == so.id


def test_delete_refused_once_converted(factory):
    _, q = _quote(factory)
    quotation_dao.accept(q.id)
    quotation_dao.convert_to_sales_order(q.id)
    with pytest.raises(ValueError):
        quotation_dao.delete_quotation(q.id)
    assert SalesOrder.query.count() == 1

    _, q2 = _quote(factory)
    quotation_dao.delete_quotation(q2.id)
    assert quotation_dao.list_quotations() == [quotation_dao.get_quotation(q.id)]
