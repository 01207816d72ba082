from decimal import Decimal
import pytest
from configs import db
from dao import manufacturing as mo_dao
from dao import reservation as rsv_dao
from db.models.manufacturing import ManufacturingOrder, MoDeletionAudit, MOStatus, MoItemStatus
from db.models.material import RawMaterial
from db.models.product import Product
from db.models.inventory import InventoryTransaction, TransactionType
from db.models.reservation import AssignmentStatus
from dao.errors import InvalidTransition, DeletionBlocked, RecordNotFound


def _stock(model, pk):
    return db.session.get(model, pk).current_stock


def test_numbering_continues_past_five_digits(factory):
    p = factory.product()
    mo = mo_dao.create_mo(p.id, 1)
    mo.mo_number = "MO-99999"
    db.session.commit()

    assert mo_dao.create_mo(p.id, 1).mo_number == "MO-100000"
    assert mo_dao.create_mo(p.id, 1).mo_number == "MO-100001"


def test_create_requires_product(factory):
    with pytest.raises(ValueError, match="product_id"):
        mo_dao.create_mo(None, 1)
    with pytest.raises(ValueError, match="Invalid number"):
        mo_dao.create_mo(factory.product().id, "ten")
    assert ManufacturingOrder.query.count() == 0


def test_start_deducts_bom_once(factory):
    p = factory.product(stock=100)
    m = factory.material(stock=150)
    factory.bom(p, m, 2)

    mo = mo_dao.create_mo(p.id, 60)
    assert mo.mo_number == "MO-00001"
    assert mo.status == MOStatus.PLANNED

    mo_dao.start_mo(mo.id)

    assert _stock(RawMaterial, m.id) == Decimal("30")
    outs = InventoryTransaction.query.filter_by(transaction_type=TransactionType.OUT).all()
    assert len(outs) == 1
    assert outs[0].quantity == Decimal("120")
    assert (outs[0].reference_type, outs[0].reference_id) == ("manufacturing_order", mo.id)
    mo = mo_dao.get_mo(mo.id)
    assert mo.status == MOStatus.IN_PROGRESS
    assert mo.actual_start is not None


def test_retried_start_is_rejected_without_second_deduction(factory):
    p = factory.product()
    m = factory.material(stock=150)
    factory.bom(p, m, 2)
    mo = mo_dao.create_mo(p.id, 10)
    mo_dao.start_mo(mo.id)

    with pytest.raises(InvalidTransition) as ei:
        mo_dao.start_mo(mo.id)

    assert ei.value.current == "in_progress"
    assert _stock(RawMaterial, m.id) == Decimal("130")
    assert InventoryTransaction.query.count() == 1


def test_co_produced_items_share_one_out_per_material(factory):
    main, side = factory.product(), factory.product()
    flour = factory.material(stock=100)
    egg = factory.material(stock=100)
    factory.bom(main, flour, 1)
    factory.bom(side, flour, 2)
    factory.bom(side, egg, 1)

    mo = mo_dao.create_mo(main.id, 10, items=[{"product_id": side.id, "quantity": 5}])
    mo_dao.start_mo(mo.id)

    assert _stock(RawMaterial, flour.id) == Decimal("80")
    assert _stock(RawMaterial, egg.id) == Decimal("95")
    assert InventoryTransaction.query.count() == 2
    assert all(it.status == MoItemStatus.IN_PROGRESS for it in mo_dao.get_mo(mo.id).items)


def test_complete_opens_one_qc_record_per_product(factory):
    main, side = factory.product(), factory.product()
    mo = mo_dao.create_mo(main.id, 10, items=[{"product_id": side.id, "quantity": 4}])

    with pytest.raises(InvalidTransition):
        mo_dao.complete_mo(mo.id)

    mo_dao.start_mo(mo.id)
    mo = mo_dao.complete_mo(mo.id)

    assert mo.status == MOStatus.UNDER_QC
    assert mo.actual_end is not None
    assert [(r.product_id, r.quantity) for r in mo.qc_records] == [
        (main.id, Decimal("10")),
        (side.id, Decimal("4")),
    ]
    progress = mo_dao.qc_progress(mo.id)
    assert progress["total"] == 2
    assert progress["under_review"] == 2
    assert progress["partially_accepted"] is False


def test_cancel_returns_reservations_to_pending(factory):
    p = factory.product()
    mo = mo_dao.create_mo(p.id, 5)
    a = rsv_dao.create(p.id, 5, mo_id=mo.id)
    mo_dao.start_mo(mo.id)
    assert db.session.get(type(a), a.id).status == AssignmentStatus.IN_PRODUCTION

    mo = mo_dao.cancel_mo(mo.id)

    assert mo.status == MOStatus.CANCELLED
    assert db.session.get(type(a), a.id).status == AssignmentStatus.PENDING
    assert db.session.get(Product, p.id).assigned_quantity == Decimal("5")
    with pytest.raises(InvalidTransition):
        mo_dao.cancel_mo(mo.id)


@pytest.mark.parametrize("advance", [0, 1, 2])
def test_delete_writes_audit_in_any_status(factory, advance):
    p = factory.product()
    mo = mo_dao.create_mo(p.id, 3, notes="rush order")
    if advance >= 1:
        mo_dao.start_mo(mo.id)
    if advance >= 2:
        mo_dao.complete_mo(mo.id)
    status_before = mo_dao.get_mo(mo.id).status.value

    audit = mo_dao.delete_mo(mo.id, actor_id=None, reason="duplicate")

    assert MoDeletionAudit.query.count() == 1
    assert audit.mo_number == "MO-00001"
    assert audit.reason == "duplicate"
    assert audit.snapshot["status"] == status_before
    assert audit.snapshot["notes"] == "rush order"
    assert db.session.get(ManufacturingOrder, mo.id) is None
    with pytest.raises(RecordNotFound):
        mo_dao.get_mo(mo.id)


def test_delete_detaches_reservations(factory):
    p = factory.product()
    mo = mo_dao.create_mo(p.id, 2)
    a = rsv_dao.create(p.id, 2, mo_id=mo.id)
    mo_dao.start_mo(mo.id)

    mo_dao.delete_mo(mo.id, actor_id=None)

    a = db.session.get(type(a), a.id)
    assert a.mo_id is None
    assert a.status == AssignmentStatus.PENDING
    assert db.session.get(Product, p.id).assigned_quantity == Decimal("2")


def test_blocked_delete_leaves_no_audit(app, factory):
    app.config["MO_DELETE_BLOCKED_STATUSES"] = ["in_progress"]
    p = factory.product()
    mo = mo_dao.create_mo(p.id, 2)
    mo_dao.start_mo(mo.id)

    with pytest.raises(DeletionBlocked):
        mo_dao.delete_mo(mo.id, actor_id=None)

    assert MoDeletionAudit.query.count() == 0
    assert mo_dao.get_mo(mo.id).status == MOStatus.IN_PROGRESS


def test_failed_delete_rolls_back_audit(factory, monkeypatch):
    p = factory.product()
    mo = mo_dao.create_mo(p.id, 2)

    def boom(mo_id):
        raise RuntimeError("lost connection")

    monkeypatch.setattr(mo_dao.rsv_dao, "_detach_from_mo", boom)
    with pytest.raises(RuntimeError):
        mo_dao.delete_mo(mo.id, actor_id=None)

    assert MoDeletionAudit.query.count() == 0
    assert mo_dao.get_mo(mo.id).mo_number == "MO-00001"


def test_items_only_change_while_planned(factory):
    p, side = factory.product(), factory.product()
    mo = mo_dao.create_mo(p.id, 1)
    mo = mo_dao.add_items(mo.id, [{"product_id": side.id, "quantity": 2}])
    assert len(mo.items) == 1

    mo_dao.start_mo(mo.id)
    with pytest.raises(ValueError):
        mo_dao.add_items(mo.id, [{"product_id": side.id, "quantity": 1}])
    with pytest.raises(ValueError):
        mo_dao.remove_item(mo.items[0].id)


def test_create_validates_input(factory):
    p = factory.product()
    with pytest.raises(ValueError):
        mo_dao.create_mo(p.id, 0)
    with pytest.raises(RecordNotFound):
        mo_dao.create_mo(12345, 1)
    with pytest.raises(ValueError):
        mo_dao.create_mo(p.id, 1, priority="asap")
    assert ManufacturingOrder.query.count() == 0
