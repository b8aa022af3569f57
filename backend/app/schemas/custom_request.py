from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime
from app.models.custom_request import RequestStatus


class CustomRequestCreate(BaseModel):
    template_id: Optional[int] = None
    template_name: Optional[str] = None
    # color, material, style, size, description; пустые поля игнорируются
    modifications: Dict[str, Optional[str]] = {}
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    additional_notes: Optional[str] = None
    reference_images: List[str] = []


class SampleSelect(BaseModel):
    sample: str


class AdjustmentCreate(BaseModel):
    modifications: Dict[str, Optional[str]] = {}
    description: Optional[str] = None


class SamplesAttach(BaseModel):
    samples: List[str]
    admin_notes: Optional[str] = None


class AdjustmentResponse(BaseModel):
    requested_at: datetime
    modifications: Dict[str, str] = {}
    description: str


class CustomRequestResponse(BaseModel):
    id: str
    template_id: int
    template_name: str
    customer_id: str
    contact_email: str
    contact_phone: Optional[str] = None
    modifications: Dict[str, str]
    additional_notes: Optional[str] = None
    reference_images: List[str] = []
    samples: List[str] = []
    selected_sample: Optional[str] = None
    adjustment_requests: List[AdjustmentResponse] = []
    status: RequestStatus
    awaiting_new_samples: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AdminCustomRequestResponse(CustomRequestResponse):
    admin_notes: Optional[str] = None
    fulfilled_by: Optional[str] = None
    version: int


class CustomRequestListResponse(BaseModel):
    items: List[AdminCustomRequestResponse]
    total: int
    counts: Dict[str, Any] = {}

