from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

from app.core.utils import utc_now


class PromotionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_DELIVERY = "free_delivery"
    FIRST_TIME = "first_time"


class Promotion(SQLModel, table=True):
    __tablename__ = "promotions"

    id: Optional[int] = Field(default=None, primary_key=True)
    # Всегда в верхнем регистре
    code: str = Field(unique=True, index=True)
    name: Optional[str] = None
    description: Optional[str] = None

    type: PromotionType
    # Процент (0–100) или фикс. сумма; для free_delivery не используется
    value: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)

    # Окно действия, обе границы включительно
    start_date: datetime
    end_date: datetime

    max_usage: Optional[int] = None
    usage_count: int = Field(default=0)

    active: bool = Field(default=True)

    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")
    min_purchase_amount: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

