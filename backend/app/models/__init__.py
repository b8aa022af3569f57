from .category import Category
from .template import Template
from .custom_request import CustomRequest, RequestStatus, TERMINAL_STATUSES
from .promotion import Promotion, PromotionType
from .cart import CartItem
from .order import Order, OrderItem, OrderStatus

__all__ = [
    "Category",
    "Template",
    "CustomRequest", "RequestStatus", "TERMINAL_STATUSES",
    "Promotion", "PromotionType",
    "CartItem",
    "Order", "OrderItem", "OrderStatus",
]

