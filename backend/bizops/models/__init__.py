from .users import User, SessionToken
from .catalog import Product
from .ledger import Customer, Vendor, Payment
from .orders import SalesOrder, SalesOrderItem, PurchaseOrder, PurchaseOrderItem
from .insights import AiInsight, Notification

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Customer', 'Vendor', 'Payment',
    'SalesOrder', 'SalesOrderItem', 'PurchaseOrder', 'PurchaseOrderItem',
    'AiInsight', 'Notification',
]
