from .user import User, UserRoleGrant
from .material import RawMaterial
from .product import Product, BomLine

from .inventory import InventoryTransaction
from .reservation import ProductAssignment
from .manufacturing import ManufacturingOrder, MoItem, MoDeletionAudit
from .qc import QualityControlRecord
from .sales import Quotation, QuotationItem, QuotationEditHistory, SalesOrder
from .notification import Notification

__all__ = [n for n in dir() if n[:1].isupper()]
