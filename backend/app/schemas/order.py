from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal
from app.models.order import OrderStatus
from app.schemas.promotion import PromotionResult


class CheckoutCreate(BaseModel):
    customer_email: Optional[str] = None  # по умолчанию email из токена
    customer_phone: Optional[str] = None

    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None

    promotion_code: Optional[str] = None
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    template_id: int
    name: str
    image: Optional[str] = None
    customizations: Dict[str, str] = {}
    quantity: int
    price: Decimal
    total: Decimal
    custom_request_id: Optional[str] = None

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str

    customer_id: str
    customer_email: str
    customer_phone: Optional[str] = None

    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None

    payment_reference: Optional[str] = None
    is_paid: bool

    subtotal: Decimal
    discount: Decimal
    delivery_cost: Decimal
    total: Decimal

    promotion_code: Optional[str] = None
    status: OrderStatus
    notes: Optional[str] = None

    created_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class CheckoutResponse(BaseModel):
    order: OrderResponse
    authorization_url: str
    promotion: Optional[PromotionResult] = None


class PaymentCallback(BaseModel):
    reference: str


class OrderListResponse(BaseModel):
    items: List[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    is_paid: Optional[bool] = None

