from decimal import Decimal
import pytest
from configs import db
from dao import reservation as rsv_dao
from db.models.product import Product
from db.models.reservation import (
    ProductAssignment,
    AssignmentStatus,
    ACTIVE_ASSIGNMENT_STATUSES,
)


def assert_assigned_matches_reservations(product_id):
    p = db.session.get(Product, product_id)
    expected = sum(
        (a.quantity for a in ProductAssignment.query.filter_by(product_id=product_id)
         if a.status in ACTIVE_ASSIGNMENT_STATUSES),
        Decimal(0),
    )
    assert p.assigned_quantity == expected


def test_create_counts_towards_assigned(factory):
    p = factory.product(stock=100)
    rsv_dao.create(p.id, 10)
    rsv_dao.create(p.id, "2.5")

    assert db.session.get(Product, p.id).assigned_quantity == Decimal("12.5")
    assert rsv_dao.available_to_promise(p.id) == Decimal("87.5")
    assert_assigned_matches_reservations(p.id)


def test_completed_reservations_stop_counting(factory):
    p = factory.product()
    a = rsv_dao.create(p.id, 10)
    b = rsv_dao.create(p.id, 4)

    rsv_dao.set_status(a.id, "in_production")
    assert db.session.get(Product, p.id).assigned_quantity == Decimal("14")

    rsv_dao.set_status(b.id, AssignmentStatus.COMPLETED)
    assert db.session.get(Product, p.id).assigned_quantity == Decimal("10")
    assert_assigned_matches_reservations(p.id)


def test_recompute_repairs_drift_and_is_idempotent(factory):
    p = factory.product()
    rsv_dao.create(p.id, 7)
    p = db.session.get(Product, p.id)
    p.assigned_quantity = Decimal("999")
    db.session.commit()

    first = rsv_dao.recompute(p.id)
    second = rsv_dao.recompute(p.id)

    assert first == second == Decimal("7")
    assert_assigned_matches_reservations(p.id)


def test_release_for_quotation_returns_touched_products(factory):
    from dao import quotation as quotation_dao

    p1, p2 = factory.product(), factory.product()
    q = quotation_dao.create_quotation(
        "Acme",
        [
            {"product_id": p1.id, "quantity": 3, "unit_price": 1},
            {"product_id": p2.id, "quantity": 5, "unit_price": 1},
        ],
    )
    quotation_dao.accept(q.id)

    touched = rsv_dao.release_all_for_quotation(q.id)

    assert touched == sorted([p1.id, p2.id])
    for pid in touched:
        assert db.session.get(Product, pid).assigned_quantity == Decimal("0")
        assert_assigned_matches_reservations(pid)


def test_invalid_reservation_input(factory):
    p = factory.product()
    with pytest.raises(ValueError):
        rsv_dao.create(p.id, 0)
    a = rsv_dao.create(p.id, 1)
    with pytest.raises(ValueError):
        rsv_dao.set_status(a.id, "shipped")
