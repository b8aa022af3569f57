from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, Dict
from datetime import datetime
from decimal import Decimal

from app.core.utils import utc_now


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: str = Field(index=True)

    template_id: int
    name: str
    image: Optional[str] = None
    customizations: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))

    # Цена фиксируется в момент добавления
    price: Decimal = Field(max_digits=10, decimal_places=2)
    quantity: int = Field(default=1)

    custom_request_id: Optional[str] = Field(default=None, foreign_key="custom_requests.id")
    is_custom_request: bool = Field(default=False)

    added_at: datetime = Field(default_factory=utc_now)

