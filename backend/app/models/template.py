from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal

from app.core.utils import utc_now

if TYPE_CHECKING:
    from .category import Category


class Template(SQLModel, table=True):
    """Шаблон мебели из каталога, его и кастомизирует клиент"""
    __tablename__ = "templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    sku: Optional[str] = Field(default=None, unique=True)
    image_url: Optional[str] = None

    base_price: Decimal = Field(max_digits=10, decimal_places=2)

    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Relationships
    category: Optional["Category"] = Relationship(back_populates="templates")

