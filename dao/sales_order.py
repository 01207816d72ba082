# dao/sales_order.py
import logging
from typing import List, Optional
from db.models.sales import SalesOrder, SOStatus, QuotationItem
from dao import notification as notify_dao
from dao import reservation as rsv_dao
from dao import tx
from dao.errors import InvalidTransition

logger = logging.getLogger(__name__)

REF_SO = "sales_order"

_TRANSITIONS = {
    SOStatus.PENDING: {SOStatus.PROCESSING, SOStatus.CANCELLED},
    SOStatus.PROCESSING: {SOStatus.SHIPPED, SOStatus.CANCELLED},
    SOStatus.SHIPPED: {SOStatus.DELIVERED},
}

# demand is fulfilled or gone: reservations of the quotation are released
_RELEASING = (SOStatus.SHIPPED, SOStatus.DELIVERED, SOStatus.CANCELLED)


def _to_status(value) -> SOStatus:
    if isinstance(value, SOStatus):
        return value
    try:
        return SOStatus((value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown sales order status: {value!r}")


def list_sales_orders(status=None) -> List[SalesOrder]:
    q = SalesOrder.query
    if status:
        q = q.filter(SalesOrder.status == _to_status(status))
    return q.order_by(SalesOrder.id.desc()).all()


def get_sales_order(sales_order_id: int) -> SalesOrder:
    return tx.get(SalesOrder, sales_order_id, "SalesOrder")


def set_status(sales_order_id: int, status, actor_id: Optional[int] = None) -> SalesOrder:
    new_status = _to_status(status)
    with tx.atomic("SalesOrder", sales_order_id):
        so = tx.lock(SalesOrder, sales_order_id, "SalesOrder")
        if new_status not in _TRANSITIONS.get(so.status, set()):
            raise InvalidTransition("SalesOrder", so.id, so.status, new_status)
        so.status = new_status
        if new_status in _RELEASING and so.quotation_id:
            rsv_dao._release_for_quotation(so.quotation_id)
    logger.info("%s -> %s (user #%s)", so.order_number, new_status.value, actor_id)

    if new_status == SOStatus.SHIPPED:
        _notify_shipment(so)
    return so


def on_shipment(sales_order_id: int, actor_id: Optional[int] = None) -> SalesOrder:
    return set_status(sales_order_id, SOStatus.SHIPPED, actor_id=actor_id)


def _notify_shipment(so: SalesOrder) -> int:
    if not so.quotation_id:
        return 0
    items = (
        QuotationItem.query.filter(
            QuotationItem.quotation_id == so.quotation_id,
            QuotationItem.product_id.isnot(None),
        )
        .order_by(QuotationItem.id)
        .all()
    )
    if not items:
        return 0
    listing = "; ".join(f"{i.description}: {i.quantity.normalize():f} pcs" for i in items)
    return notify_dao.dispatch(
        notify_dao.ORDER_SHIPPED,
        title=f"Order Shipped - {so.order_number}",
        message=(
            f"Sales order {so.order_number} has been shipped. "
            f"Items: {listing}."
        ),
        severity="info",
        reference_type=REF_SO,
        reference_id=so.id,
    )
