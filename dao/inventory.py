# dao/inventory.py
"""Inventory ledger: the only writer of current_stock.

Primitives lock the stock row, write the counter and append one
InventoryTransaction. They flush but never commit; the calling transition
owns the transaction.
"""
import logging
from decimal import Decimal
from typing import Optional, List, Dict
from sqlalchemy import func, case
from configs import db
from db.models.inventory import InventoryTransaction, TransactionType
from db.models.material import RawMaterial
from db.models.product import Product
from dao import tx

logger = logging.getLogger(__name__)


def _dec(x) -> Decimal:
    return tx.dec(x)


def _find_posted(
    ttype: TransactionType,
    reference_type: str,
    reference_id: int,
    raw_material_id: Optional[int] = None,
    product_id: Optional[int] = None,
) -> Optional[InventoryTransaction]:
    q = InventoryTransaction.query.filter_by(
        transaction_type=ttype,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    if raw_material_id is not None:
        q = q.filter(InventoryTransaction.raw_material_id == raw_material_id)
    else:
        q = q.filter(InventoryTransaction.product_id == product_id)
    return q.first()


# =========================
#        Primitives
# =========================
def deduct(
    raw_material_id: int,
    quantity,
    reference_type: str,
    reference_id: int,
    note: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> InventoryTransaction:
    """Take raw material out of stock, clamped at zero.

    Shortages are reported by the BOM resolver, not enforced here.
    Idempotent per (reference, material).
    """
    qty = _dec(quantity)
    if qty <= 0:
        raise ValueError("Deduction quantity must be > 0.")

    mat = tx.lock(RawMaterial, raw_material_id, "RawMaterial")
    posted = _find_posted(
        TransactionType.OUT, reference_type, reference_id, raw_material_id=mat.id
    )
    if posted:
        logger.warning(
            "Skip duplicate deduction of %s for %s #%s",
            mat.sku, reference_type, reference_id,
        )
        return posted

    mat.current_stock = max(Decimal(0), _dec(mat.current_stock) - qty)
    mv = InventoryTransaction(
        transaction_type=TransactionType.OUT,
        quantity=qty,
        raw_material_id=mat.id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=note,
        created_by=actor_id,
    )
    db.session.add(mv)
    db.session.flush()
    return mv


def replenish(
    product_id: int,
    quantity,
    reference_type: str,
    reference_id: int,
    note: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> InventoryTransaction:
    """Put finished goods into stock. Idempotent per (reference, product)."""
    qty = _dec(quantity)
    if qty <= 0:
        raise ValueError("Replenish quantity must be > 0.")

    p = tx.lock(Product, product_id, "Product")
    posted = _find_posted(
        TransactionType.IN, reference_type, reference_id, product_id=p.id
    )
    if posted:
        logger.warning(
            "Skip duplicate replenish of %s for %s #%s",
            p.sku, reference_type, reference_id,
        )
        return posted

    p.current_stock = _dec(p.current_stock) + qty
    mv = InventoryTransaction(
        transaction_type=TransactionType.IN,
        quantity=qty,
        product_id=p.id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=note,
        created_by=actor_id,
    )
    db.session.add(mv)
    db.session.flush()
    return mv


def adjust(
    delta,
    raw_material_id: Optional[int] = None,
    product_id: Optional[int] = None,
    note: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> InventoryTransaction:
    """Stock-count correction. Signed delta, not clamped, committed."""
    if (raw_material_id is None) == (product_id is None):
        raise ValueError("Adjust exactly one of raw_material_id / product_id.")
    delta = _dec(delta)
    if delta == 0:
        raise ValueError("Adjustment must not be zero.")

    if raw_material_id is not None:
        row = tx.lock(RawMaterial, raw_material_id, "RawMaterial")
    else:
        row = tx.lock(Product, product_id, "Product")
    row.current_stock = _dec(row.current_stock) + delta

    mv = InventoryTransaction(
        transaction_type=TransactionType.ADJUSTMENT,
        quantity=delta,
        raw_material_id=raw_material_id,
        product_id=product_id,
        reference_type="adjustment",
        notes=note,
        created_by=actor_id,
    )
    db.session.add(mv)
    tx.commit("InventoryTransaction")
    logger.info("Stock adjusted %s for %s", delta, row.sku)
    return mv


# =========================
#          Queries
# =========================
def list_transactions(
    raw_material_id: Optional[int] = None, product_id: Optional[int] = None
) -> List[InventoryTransaction]:
    q = InventoryTransaction.query
    if raw_material_id is not None:
        q = q.filter(InventoryTransaction.raw_material_id == int(raw_material_id))
    if product_id is not None:
        q = q.filter(InventoryTransaction.product_id == int(product_id))
    return q.order_by(
        InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc()
    ).all()


def ledger_balance(
    raw_material_id: Optional[int] = None, product_id: Optional[int] = None
) -> Decimal:
    """in - out + adjustment (adjustments are stored signed)."""
    signed = case(
        (InventoryTransaction.transaction_type == TransactionType.OUT,
         -InventoryTransaction.quantity),
        else_=InventoryTransaction.quantity,
    )
    q = db.session.query(func.coalesce(func.sum(signed), 0))
    if raw_material_id is not None:
        q = q.filter(InventoryTransaction.raw_material_id == int(raw_material_id))
    else:
        q = q.filter(InventoryTransaction.product_id == int(product_id))
    return _dec(q.scalar())


def reconcile(
    raw_material_id: Optional[int] = None, product_id: Optional[int] = None
) -> Dict:
    """Compare the counter with the ledger.

    The counter can legitimately differ: opening balances are not posted and
    deduct() clamps at zero.
    """
    if raw_material_id is not None:
        row = tx.get(RawMaterial, raw_material_id, "RawMaterial")
    else:
        row = tx.get(Product, product_id, "Product")
    balance = ledger_balance(raw_material_id, product_id)
    current = _dec(row.current_stock)
    return {
        "sku": row.sku,
        "current_stock": current,
        "ledger_balance": balance,
        "difference": current - balance,
    }


def stock_alerts() -> List[Dict]:
    alerts = []
    for p in Product.query.filter(
        Product.is_active.is_(True), Product.current_stock <= Product.minimum_stock
    ).order_by(Product.sku):
        alerts.append(
            {
                "type": "product",
                "id": p.id,
                "sku": p.sku,
                "name": p.name,
                "current_stock": _dec(p.current_stock),
                "threshold": _dec(p.minimum_stock),
            }
        )
    for m in RawMaterial.query.filter(
        RawMaterial.is_active.is_(True),
        RawMaterial.current_stock <= RawMaterial.reorder_point,
    ).order_by(RawMaterial.sku):
        alerts.append(
            {
                "type": "raw_material",
                "id": m.id,
                "sku": m.sku,
                "name": m.name,
                "current_stock": _dec(m.current_stock),
                "threshold": _dec(m.reorder_point),
            }
        )
    return alerts
