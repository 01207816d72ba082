# dao/reservation.py
"""Reservation manager (product assignments).

recompute() is the single writer of Product.assigned_quantity. Every path
that creates a reservation or changes its status ends by recomputing the
products it touched, inside the same transaction.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Set
from sqlalchemy import func
from configs import db
from db.models.product import Product
from db.models.reservation import (
    ProductAssignment,
    AssignmentStatus,
    ACTIVE_ASSIGNMENT_STATUSES,
)
from db.models.sales import SalesOrder
from dao import tx

logger = logging.getLogger(__name__)


def _dec(x) -> Decimal:
    return tx.dec(x)


def _to_status(value) -> AssignmentStatus:
    if isinstance(value, AssignmentStatus):
        return value
    try:
        return AssignmentStatus((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown reservation status: {value!r}")


# =========================
#       Derived counter
# =========================
def _recompute(product_id: int) -> Decimal:
    # product row lock serializes concurrent recomputes of the same product
    p = tx.lock(Product, product_id, "Product")
    total = (
        db.session.query(func.coalesce(func.sum(ProductAssignment.quantity), 0))
        .filter(
            ProductAssignment.product_id == p.id,
            ProductAssignment.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
        )
        .scalar()
    )
    p.assigned_quantity = _dec(total)
    db.session.flush()
    return p.assigned_quantity


def _recompute_many(product_ids: Iterable[int]) -> None:
    # sorted: consistent lock order across transactions
    for pid in sorted({int(x) for x in product_ids if x is not None}):
        _recompute(pid)


def recompute(product_id: int) -> Decimal:
    total = _recompute(product_id)
    tx.commit("Product", product_id)
    return total


# =========================
#   Non-committing helpers
# =========================
def _add(
    product_id: int,
    quantity,
    quotation_id: Optional[int] = None,
    mo_id: Optional[int] = None,
) -> ProductAssignment:
    qty = _dec(quantity)
    if qty <= 0:
        raise ValueError("Reservation quantity must be > 0.")
    tx.get(Product, product_id, "Product")
    a = ProductAssignment(
        product_id=int(product_id),
        quotation_id=quotation_id,
        mo_id=mo_id,
        quantity=qty,
        status=AssignmentStatus.PENDING,
    )
    db.session.add(a)
    db.session.flush()
    return a


def _move(assignments: List[ProductAssignment], status: AssignmentStatus) -> Set[int]:
    touched = set()
    for a in assignments:
        if a.status != status:
            a.status = status
            touched.add(a.product_id)
    db.session.flush()
    _recompute_many(touched)
    return touched


def _active_for_mo(mo_id: int) -> List[ProductAssignment]:
    return ProductAssignment.query.filter(
        ProductAssignment.mo_id == mo_id,
        ProductAssignment.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
    ).all()


def _set_status_for_mo(mo_id: int, status: AssignmentStatus) -> Set[int]:
    return _move(_active_for_mo(mo_id), status)


def _detach_from_mo(mo_id: int) -> Set[int]:
    """MO is going away: its open reservations fall back to plain demand."""
    rows = _active_for_mo(mo_id)
    for a in rows:
        a.mo_id = None
    return _move(rows, AssignmentStatus.PENDING) | {a.product_id for a in rows}


def _release_for_quotation(quotation_id: int) -> Set[int]:
    rows = ProductAssignment.query.filter(
        ProductAssignment.quotation_id == quotation_id,
        ProductAssignment.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
    ).all()
    return _move(rows, AssignmentStatus.COMPLETED)


# =========================
#       Public API
# =========================
def create(
    product_id: int,
    quantity,
    quotation_id: Optional[int] = None,
    mo_id: Optional[int] = None,
) -> ProductAssignment:
    a = _add(product_id, quantity, quotation_id=quotation_id, mo_id=mo_id)
    _recompute(a.product_id)
    tx.commit("ProductAssignment")
    return a


def set_status(assignment_id: int, status) -> ProductAssignment:
    new_status = _to_status(status)
    a = tx.lock(ProductAssignment, assignment_id, "ProductAssignment")
    _move([a], new_status)
    tx.commit("ProductAssignment", a.id)
    return a


def release_all_for_quotation(quotation_id: int) -> List[int]:
    touched = _release_for_quotation(int(quotation_id))
    tx.commit("Quotation", quotation_id)
    logger.info(
        "Released reservations of quotation #%s (products %s)",
        quotation_id, sorted(touched),
    )
    return sorted(touched)


def release_all_for_sales_order(sales_order_id: int) -> List[int]:
    so = tx.get(SalesOrder, sales_order_id, "SalesOrder")
    if not so.quotation_id:
        return []
    return release_all_for_quotation(so.quotation_id)


def list_for_product(product_id: int) -> List[ProductAssignment]:
    return (
        ProductAssignment.query.filter_by(product_id=int(product_id))
        .order_by(ProductAssignment.created_at.desc(), ProductAssignment.id.desc())
        .all()
    )


def available_to_promise(product_id: int) -> Decimal:
    return tx.get(Product, product_id, "Product").available_to_promise
