from .custom_request import CustomRequestCreate, CustomRequestResponse, AdminCustomRequestResponse
from .promotion import OrderContext, PromotionResult, RejectionReason, PromotionResponse
from .cart import CartItemResponse, CartResponse
from .order import CheckoutCreate, OrderResponse

__all__ = [
    "CustomRequestCreate", "CustomRequestResponse", "AdminCustomRequestResponse",
    "OrderContext", "PromotionResult", "RejectionReason", "PromotionResponse",
    "CartItemResponse", "CartResponse",
    "CheckoutCreate", "OrderResponse",
]

