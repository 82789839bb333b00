from .auth import User
from .catalog import Product
from .orders import Order, OrderItem

__all__ = [
    'User',
    'Product',
    'Order', 'OrderItem',
]
