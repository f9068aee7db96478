"""SQLAlchemy models."""

from restohub.models.branch import Branch
from restohub.models.menu_item import MenuItem
from restohub.models.order import Order, OrderChannel, OrderLine, OrderStatus, PaymentMethod
from restohub.models.user import User

__all__ = [
    "Branch",
    "MenuItem",
    "Order",
    "OrderChannel",
    "OrderLine",
    "OrderStatus",
    "PaymentMethod",
    "User",
]
