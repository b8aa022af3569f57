from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal


class CartItemCreate(BaseModel):
    template_id: int
    quantity: int = Field(default=1, ge=1)
    customizations: Dict[str, str] = {}


class CartItemResponse(BaseModel):
    id: int
    template_id: int
    name: str
    image: Optional[str] = None
    customizations: Dict[str, str] = {}
    price: Decimal
    quantity: int
    custom_request_id: Optional[str] = None
    is_custom_request: bool
    added_at: datetime

    class Config:
        from_attributes = True


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    subtotal: Decimal

