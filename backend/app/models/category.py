from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime

from app.core.utils import utc_now

if TYPE_CHECKING:
    from .template import Template


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    # Комната: living_room, bedroom, storage...
    room: Optional[str] = None
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now)

    # Relationships
    templates: List["Template"] = Relationship(back_populates="category")

