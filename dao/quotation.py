# dao/quotation.py
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple
import logging
from sqlalchemy.orm import joinedload
from configs import db
from db.models.sales import (
    Quotation,
    QuotationItem,
    QuotationEditHistory,
    QuotationStatus,
    SalesOrder,
)
from db.models.manufacturing import ManufacturingOrder, MOStatus
from db.models.product import Product
from dao import manufacturing as mo_dao
from dao import reservation as rsv_dao
from dao import tx
from dao.errors import InvalidTransition

logger = logging.getLogger(__name__)

EDITABLE = (QuotationStatus.DRAFT, QuotationStatus.SENT)

# manual status changes; accept/convert have their own operations
_TRANSITIONS = {
    QuotationStatus.DRAFT: {
        QuotationStatus.SENT,
        QuotationStatus.REJECTED,
        QuotationStatus.EXPIRED,
    },
    QuotationStatus.SENT: {
        QuotationStatus.DRAFT,
        QuotationStatus.REJECTED,
        QuotationStatus.EXPIRED,
    },
    QuotationStatus.ACCEPTED: {QuotationStatus.REJECTED},  # customer cancels
}

_RELEASING = (QuotationStatus.REJECTED, QuotationStatus.EXPIRED)

CENT = Decimal("0.01")


# ---------- helpers ----------
def _dec(x) -> Decimal:
    return tx.dec(x)


def _to_status(value) -> QuotationStatus:
    if isinstance(value, QuotationStatus):
        return value
    try:
        return QuotationStatus((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown quotation status: {value!r}")


def _normalize_items(items: List[Dict]) -> List[Dict]:
    if not items:
        raise ValueError("A quotation needs at least 1 item.")
    out = []
    for idx, ln in enumerate(items, 1):
        qty = _dec(ln.get("quantity"))
        if qty <= 0:
            raise ValueError(f"Line {idx}: quantity must be > 0.")
        price = _dec(ln.get("unit_price"))
        if price < 0:
            raise ValueError(f"Line {idx}: unit price must be >= 0.")
        product_id = ln.get("product_id")
        description = (ln.get("description") or "").strip()
        if product_id:
            p = tx.get(Product, product_id, "Product")
            product_id = p.id
            description = description or p.name
        if not description:
            raise ValueError(f"Line {idx}: description is required.")
        out.append(
            {
                "product_id": product_id or None,
                "description": description,
                "quantity": qty,
                "unit_price": price,
                "total": (qty * price).quantize(CENT, ROUND_HALF_UP),
            }
        )
    return out


def compute_totals(items: List[Dict], discount_percent=0, tax_percent=0) -> Dict:
    subtotal = sum((_dec(i["quantity"]) * _dec(i["unit_price"]) for i in items), Decimal(0))
    discount = subtotal * _dec(discount_percent) / 100
    taxable = subtotal - discount
    tax = taxable * _dec(tax_percent) / 100
    return {
        "subtotal": subtotal.quantize(CENT, ROUND_HALF_UP),
        "total": (taxable + tax).quantize(CENT, ROUND_HALF_UP),
    }


def _replace_items(q: Quotation, lines: List[Dict]) -> None:
    q.items.clear()
    db.session.flush()
    for ln in lines:
        q.items.append(QuotationItem(**ln))


# =========================
#          Queries
# =========================
def list_quotations(status=None) -> List[Quotation]:
    qry = Quotation.query.options(joinedload(Quotation.items))
    if status:
        qry = qry.filter(Quotation.status == _to_status(status))
    return qry.order_by(Quotation.id.desc()).all()


def get_quotation(quotation_id: int) -> Quotation:
    return tx.get(Quotation, quotation_id, "Quotation")


def list_edit_history(quotation_id: int) -> List[QuotationEditHistory]:
    return (
        QuotationEditHistory.query.filter_by(quotation_id=int(quotation_id))
        .order_by(QuotationEditHistory.edited_at.desc(), QuotationEditHistory.id.desc())
        .all()
    )


# =========================
#         Mutations
# =========================
def create_quotation(
    customer_name: str,
    items: List[Dict],
    valid_from: Optional[date] = None,
    valid_until: Optional[date] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    discount_percent=0,
    tax_percent=0,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> Quotation:
    if not (customer_name or "").strip():
        raise ValueError("Customer name is required.")
    with tx.atomic("Quotation"):
        lines = _normalize_items(items)
        q = Quotation(
            quotation_number=tx.next_number(Quotation.quotation_number, "QT"),
            customer_name=customer_name.strip(),
            customer_email=customer_email,
            customer_phone=customer_phone,
            valid_from=valid_from or date.today(),
            valid_until=valid_until,
            discount_percent=_dec(discount_percent),
            tax_percent=_dec(tax_percent),
            notes=notes,
            created_by=actor_id,
            **compute_totals(lines, discount_percent, tax_percent),
        )
        db.session.add(q)
        for ln in lines:
            q.items.append(QuotationItem(**ln))
    return q


_TRACKED = ("customer_name", "customer_email", "customer_phone", "valid_from",
            "valid_until", "discount_percent", "tax_percent", "notes")


def _jsonable(v):
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, date):
        return v.isoformat()
    return v


def update_quotation(
    quotation_id: int,
    items: Optional[List[Dict]] = None,
    actor_id: Optional[int] = None,
    **fields,
) -> Quotation:
    unknown = set(fields) - set(_TRACKED)
    if unknown:
        raise ValueError(f"Unknown quotation fields: {', '.join(sorted(unknown))}")

    with tx.atomic("Quotation", quotation_id):
        q = tx.lock(Quotation, quotation_id, "Quotation")
        if q.status not in EDITABLE:
            raise ValueError(
                f"{q.quotation_number} is {q.status.value}, only draft/sent can be edited."
            )

        changes, previous = {}, {}
        for k, v in fields.items():
            if k in ("discount_percent", "tax_percent"):
                v = _dec(v)
            old = getattr(q, k)
            if old != v:
                changes[k] = _jsonable(v)
                previous[k] = _jsonable(old)
                setattr(q, k, v)

        if items is not None:
            _replace_items(q, _normalize_items(items))

        totals = compute_totals(
            [{"quantity": i.quantity, "unit_price": i.unit_price} for i in q.items],
            q.discount_percent,
            q.tax_percent,
        )
        if _dec(q.total) != totals["total"]:
            changes["total"] = float(totals["total"])
            previous["total"] = float(_dec(q.total))
        q.subtotal, q.total = totals["subtotal"], totals["total"]
        q.edit_count = (q.edit_count or 0) + 1

        if changes:
            db.session.add(
                QuotationEditHistory(
                    quotation_id=q.id,
                    changes=changes,
                    previous_values=previous,
                    edited_by=actor_id,
                )
            )
    return q


def set_status(quotation_id: int, status) -> Quotation:
    """Manual status change (send, reject, expire, back to draft)."""
    new_status = _to_status(status)
    with tx.atomic("Quotation", quotation_id):
        q = tx.lock(Quotation, quotation_id, "Quotation")
        if new_status not in _TRANSITIONS.get(q.status, set()):
            raise InvalidTransition("Quotation", q.id, q.status, new_status)
        q.status = new_status
        if new_status in _RELEASING:
            rsv_dao._release_for_quotation(q.id)
    logger.info("Quotation #%s -> %s", quotation_id, new_status.value)
    return q


def accept(
    quotation_id: int, create_mo: bool = False, actor_id: Optional[int] = None
) -> Tuple[Quotation, List[ManufacturingOrder]]:
    """Reserve every product line; optionally open one MO per line."""
    mos: List[ManufacturingOrder] = []
    with tx.atomic("Quotation", quotation_id):
        q = tx.lock(Quotation, quotation_id, "Quotation")
        if q.status not in EDITABLE:
            raise InvalidTransition("Quotation", q.id, q.status, QuotationStatus.ACCEPTED)
        q.status = QuotationStatus.ACCEPTED

        touched = set()
        for it in q.items:
            if not it.product_id:
                continue
            mo_id = None
            if create_mo:
                mo = mo_dao._new_mo(
                    it.product_id,
                    it.quantity,
                    quotation_id=q.id,
                    notes=f"Auto-created from quotation {q.quotation_number}",
                    actor_id=actor_id,
                )
                mos.append(mo)
                mo_id = mo.id
            rsv_dao._add(it.product_id, it.quantity, quotation_id=q.id, mo_id=mo_id)
            touched.add(it.product_id)
        rsv_dao._recompute_many(touched)

    logger.info("%s accepted, %d MOs created", q.quotation_number, len(mos))
    for mo in mos:
        mo_dao.notify_shortages(mo)
    return q, mos


def convert_to_sales_order(
    quotation_id: int, actor_id: Optional[int] = None, due_date: Optional[date] = None
) -> SalesOrder:
    with tx.atomic("Quotation", quotation_id):
        q = tx.lock(Quotation, quotation_id, "Quotation")
        if q.status != QuotationStatus.ACCEPTED:
            raise InvalidTransition("Quotation", q.id, q.status, QuotationStatus.CONVERTED)

        so = SalesOrder(
            order_number=tx.next_number(SalesOrder.order_number, "SO"),
            quotation_id=q.id,
            customer_name=q.customer_name,
            due_date=due_date,
            subtotal=q.subtotal,
            discount_percent=q.discount_percent,
            tax_percent=q.tax_percent,
            total=q.total,
            notes=q.notes,
            created_by=actor_id,
        )
        db.session.add(so)
        db.session.flush()
        q.status = QuotationStatus.CONVERTED

        # production for this quotation is now earmarked for delivery
        open_mos = ManufacturingOrder.query.filter(
            ManufacturingOrder.quotation_id == q.id,
            ManufacturingOrder.sales_order_id.is_(None),
            ManufacturingOrder.status.notin_([MOStatus.CLOSED, MOStatus.CANCELLED]),
        ).all()
        for mo in open_mos:
            mo.sales_order_id = so.id
    logger.info("%s converted to %s", q.quotation_number, so.order_number)
    return so


def delete_quotation(quotation_id: int) -> None:
    with tx.atomic("Quotation", quotation_id):
        q = tx.lock(Quotation, quotation_id, "Quotation")
        so = SalesOrder.query.filter_by(quotation_id=q.id).first()
        if so:
            raise ValueError(
                f"Cannot delete: {q.quotation_number} has been converted to sales "
                f"order {so.order_number}. Delete the sales order first."
            )
        rsv_dao._release_for_quotation(q.id)
        db.session.delete(q)
