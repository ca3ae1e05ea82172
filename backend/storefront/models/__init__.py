from .tenancy import Vendor, Branch
from .users import User
from .catalog import Product, ProductVariant
from .customers import Address, CartItem
from .promotions import Offer, Promocode
from .orders import Order, OrderItem, OrderDiscount, OrderStatusHistory
from .inventory import InventoryMovement
from .notifications import Notification

__all__ = [
    'Vendor', 'Branch',
    'User',
    'Product', 'ProductVariant',
    'Address', 'CartItem',
    'Offer', 'Promocode',
    'Order', 'OrderItem', 'OrderDiscount', 'OrderStatusHistory',
    'InventoryMovement',
    'Notification',
]
