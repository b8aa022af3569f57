from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
import uuid

from app.core.utils import utc_now


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SAMPLES_SENT = "samples_sent"
    APPROVED = "approved"
    IN_CART = "in_cart"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})


def new_request_id() -> str:
    return uuid.uuid4().hex


class CustomRequest(SQLModel, table=True):
    __tablename__ = "custom_requests"

    id: str = Field(default_factory=new_request_id, primary_key=True)

    template_id: int = Field(index=True)
    template_name: str

    customer_id: str = Field(index=True)
    contact_email: str
    contact_phone: Optional[str] = None

    # {color, material, style, size, description}, только заполненные
    modifications: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    additional_notes: Optional[str] = None
    reference_images: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Текущая партия образцов, заменяется целиком
    samples: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    selected_sample: Optional[str] = None
    fulfilled_by: Optional[str] = None

    # [{requested_at, modifications, description}], только дописывается
    adjustment_requests: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    admin_notes: Optional[str] = None

    status: RequestStatus = Field(default=RequestStatus.PENDING, index=True)
    version: int = Field(default=1)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def awaiting_new_samples(self) -> bool:
        """Клиент запросил правки, новой партии ещё нет"""
        return self.status == RequestStatus.PENDING and bool(self.adjustment_requests)

