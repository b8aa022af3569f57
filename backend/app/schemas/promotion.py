from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum
from app.models.promotion import PromotionType


class RejectionReason(str, Enum):
    UNKNOWN_CODE = "unknown_code"
    INACTIVE = "inactive"
    EXPIRED = "expired"  # и «ещё не началась», и «уже закончилась»
    LIMIT_REACHED = "limit_reached"
    BELOW_MINIMUM = "below_minimum"
    CATEGORY_MISMATCH = "category_mismatch"


class OrderContext(BaseModel):
    subtotal: Decimal = Field(ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)
    # Категория каждой позиции заказа (None — без категории)
    category_ids: List[Optional[int]] = []
    is_first_time_buyer: bool = False


class PromotionResult(BaseModel):
    accepted: bool
    code: str
    discount: Optional[Decimal] = None
    discount_type: Optional[PromotionType] = None
    reason: Optional[RejectionReason] = None
    promotion_id: Optional[int] = None
    description: Optional[str] = None


class PromotionValidateRequest(OrderContext):
    code: str


class PromotionResponse(BaseModel):
    id: int
    code: str
    name: Optional[str] = None
    description: Optional[str] = None
    type: PromotionType
    value: Decimal
    start_date: datetime
    end_date: datetime
    max_usage: Optional[int] = None
    usage_count: int
    active: bool
    category_id: Optional[int] = None
    min_purchase_amount: Optional[Decimal] = None

    class Config:
        from_attributes = True


class PromotionCreate(BaseModel):
    code: str
    name: Optional[str] = None
    description: Optional[str] = None
    type: PromotionType
    value: Decimal = Decimal("0")
    start_date: datetime
    end_date: datetime
    max_usage: Optional[int] = Field(default=None, ge=1)
    active: bool = True
    category_id: Optional[int] = None
    min_purchase_amount: Optional[Decimal] = Field(default=None, ge=0)


class PromotionUpdate(BaseModel):
    # usage_count меняется только через apply
    code: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[PromotionType] = None
    value: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_usage: Optional[int] = Field(default=None, ge=1)
    active: Optional[bool] = None
    category_id: Optional[int] = None
    min_purchase_amount: Optional[Decimal] = Field(default=None, ge=0)

