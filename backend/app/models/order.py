from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.core.utils import utc_now


class OrderStatus(str, Enum):
    PENDING = "pending"          # ждём оплату
    PROCESSING = "processing"    # оплачен, в производстве
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)

    customer_id: str = Field(index=True)
    customer_email: str
    customer_phone: Optional[str] = None

    # Доставка
    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None

    # Оплата
    payment_reference: Optional[str] = Field(default=None, index=True)
    is_paid: bool = Field(default=False)

    # Суммы
    subtotal: Decimal = Field(max_digits=10, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    delivery_cost: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    total: Decimal = Field(max_digits=10, decimal_places=2)

    promotion_id: Optional[int] = Field(default=None, foreign_key="promotions.id")
    promotion_code: Optional[str] = None

    status: OrderStatus = Field(default=OrderStatus.PENDING)
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Relationships
    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"lazy": "selectin"},
    )


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id", index=True)
    template_id: int

    name: str  # Сохраняем на момент заказа
    image: Optional[str] = None
    customizations: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))

    quantity: int
    price: Decimal = Field(max_digits=10, decimal_places=2)  # Цена на момент заказа
    total: Decimal = Field(max_digits=10, decimal_places=2)

    custom_request_id: Optional[str] = None

    # Relationships
    order: Optional["Order"] = Relationship(back_populates="items")

