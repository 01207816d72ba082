# dao/bom.py
"""Bill-of-materials resolver. Read-only: never flushes or commits."""
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple
from sqlalchemy.orm import joinedload
from db.models.product import Product, BomLine
from db.models.material import RawMaterial
from db.models.sales import Quotation
from dao import tx


def _dec(x) -> Decimal:
    return tx.dec(x)


def list_bom(product_id: int) -> List[BomLine]:
    return (
        BomLine.query.options(joinedload(BomLine.raw_material))
        .filter(BomLine.product_id == int(product_id))
        .order_by(BomLine.id.asc())
        .all()
    )


def check_availability(product_id: int, quantity) -> Dict:
    """Required vs. on-hand raw material for `quantity` units of a product.

    A product without BOM lines has nothing to block production and is
    reported fully available.
    """
    product = tx.get(Product, product_id, "Product")
    qty = _dec(quantity)
    if qty <= 0:
        raise ValueError("Quantity must be > 0.")

    lines = []
    for bl in list_bom(product.id):
        required = _dec(bl.quantity_per_unit) * qty
        available = _dec(bl.raw_material.current_stock)
        shortage = max(Decimal(0), required - available)
        lines.append(
            {
                "raw_material_id": bl.raw_material_id,
                "name": bl.raw_material.name,
                "required": required,
                "available": available,
                "shortage": shortage,
                "is_available": shortage == 0,
            }
        )

    return {
        "product_id": product.id,
        "product_name": product.name,
        "quantity": qty,
        "has_bom": bool(lines),
        "lines": lines,
        "fully_available": all(ln["is_available"] for ln in lines),
    }


def material_requirements(demand: Iterable[Tuple[int, object]]) -> Dict[int, Decimal]:
    """{raw_material_id: required} for a list of (product_id, quantity)."""
    demand = [(int(pid), _dec(q)) for pid, q in demand]
    if not demand:
        return {}

    bom = defaultdict(list)
    for bl in BomLine.query.filter(
        BomLine.product_id.in_(list({pid for pid, _ in demand}))
    ).all():
        bom[bl.product_id].append(bl)

    totals: Dict[int, Decimal] = defaultdict(Decimal)
    for pid, qty in demand:
        for bl in bom.get(pid, []):
            totals[bl.raw_material_id] += _dec(bl.quantity_per_unit) * qty
    return dict(totals)


def shortages(requirements: Dict[int, Decimal]) -> List[Dict]:
    if not requirements:
        return []
    mats = {
        m.id: m
        for m in RawMaterial.query.filter(RawMaterial.id.in_(list(requirements))).all()
    }
    out = []
    for mid, required in sorted(requirements.items()):
        m = mats[mid]
        available = _dec(m.current_stock)
        if required > available:
            out.append(
                {
                    "raw_material_id": mid,
                    "name": m.name,
                    "required": required,
                    "available": available,
                }
            )
    return out


def check_quotation_availability(quotation_id: int) -> List[Dict]:
    """Per quotation item: can it ship from stock, and if not, can it be built."""
    q = tx.get(Quotation, quotation_id, "Quotation")
    rows = []
    for it in q.items:
        if not it.product_id:
            continue
        p = it.product
        requested = _dec(it.quantity)
        atp = p.available_to_promise
        row = {
            "item_id": it.id,
            "product_id": p.id,
            "product_name": p.name,
            "requested": requested,
            "current_stock": _dec(p.current_stock),
            "assigned_quantity": _dec(p.assigned_quantity),
            "available_to_promise": atp,
            "can_fulfil": atp >= requested,
            "production": None,
        }
        if not row["can_fulfil"]:
            row["production"] = check_availability(p.id, requested - max(atp, Decimal(0)))
        rows.append(row)
    return rows
