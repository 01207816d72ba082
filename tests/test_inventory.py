from decimal import Decimal
import pytest
from configs import db
from dao import inventory as inv_dao
from dao import tx
from db.models.inventory import InventoryTransaction, TransactionType


def test_deduct_writes_counter_and_ledger(factory):
    m = factory.material(stock=150)
    with tx.atomic():
        inv_dao.deduct(m.id, 120, "manufacturing_order", 1, note="run 1")

    assert db.session.get(type(m), m.id).current_stock == Decimal("30")
    rows = inv_dao.list_transactions(raw_material_id=m.id)
    assert len(rows) == 1
    assert rows[0].transaction_type == TransactionType.OUT
    assert rows[0].quantity == Decimal("120")
    assert (rows[0].reference_type, rows[0].reference_id) == ("manufacturing_order", 1)


def test_deduct_is_idempotent_per_reference(factory):
    m = factory.material(stock=50)
    with tx.atomic():
        first = inv_dao.deduct(m.id, 10, "manufacturing_order", 7)
    with tx.atomic():
        again = inv_dao.deduct(m.id, 10, "manufacturing_order", 7)

    assert again.id == first.id
    assert db.session.get(type(m), m.id).current_stock == Decimal("40")
    assert InventoryTransaction.query.count() == 1


def test_deduct_clamps_at_zero(factory):
    m = factory.material(stock=5)
    with tx.atomic():
        mv = inv_dao.deduct(m.id, 8, "manufacturing_order", 3)
    assert db.session.get(type(m), m.id).current_stock == Decimal("0")
    # ledger keeps the requested quantity
    assert mv.quantity == Decimal("8")


def test_replenish_and_balance(factory):
    p = factory.product(stock=0)
    with tx.atomic():
        inv_dao.replenish(p.id, 10, "quality_control", 1)
        inv_dao.replenish(p.id, 10, "quality_control", 1)
        inv_dao.replenish(p.id, 5, "quality_control", 2)

    assert db.session.get(type(p), p.id).current_stock == Decimal("15")
    assert inv_dao.ledger_balance(product_id=p.id) == Decimal("15")


def test_adjust_is_signed_and_committed(factory):
    m = factory.material(stock=10)
    inv_dao.adjust(-4, raw_material_id=m.id, note="stock count")

    assert db.session.get(type(m), m.id).current_stock == Decimal("6")
    report = inv_dao.reconcile(raw_material_id=m.id)
    # opening balance of 10 was never posted
    assert report["ledger_balance"] == Decimal("-4")
    assert report["difference"] == Decimal("10")


def test_adjust_requires_exactly_one_target(factory):
    m = factory.material()
    p = factory.product()
    with pytest.raises(ValueError):
        inv_dao.adjust(1)
    with pytest.raises(ValueError):
        inv_dao.adjust(1, raw_material_id=m.id, product_id=p.id)
    with pytest.raises(ValueError):
        inv_dao.adjust(0, raw_material_id=m.id)


def test_stock_alerts(factory):
    factory.product(stock=2, minimum_stock=5, name="Low cake")
    factory.product(stock=50, minimum_stock=5, name="Plenty cake")
    factory.material(stock=1, reorder_point=10, name="Low flour")

    alerts = inv_dao.stock_alerts()

    assert {(a["type"], a["name"]) for a in alerts} == {
        ("product", "Low cake"),
        ("raw_material", "Low flour"),
    }
