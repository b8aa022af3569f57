import logging
from fastapi import APIRouter, BackgroundTasks, Depends, status
from typing import List
from app.api.deps import get_current_user, get_lifecycle, CurrentUser
from app.schemas.cart import CartItemResponse
from app.schemas.custom_request import (
    CustomRequestCreate, CustomRequestResponse, SampleSelect, AdjustmentCreate
)
from app.services.custom_requests import CustomRequestLifecycle
from app.services.notifications import send_request_confirmation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/custom-requests", tags=["custom-requests"])


@router.post("/", response_model=CustomRequestResponse, status_code=status.HTTP_201_CREATED)
def create_custom_request(
    data: CustomRequestCreate,
    background_tasks: BackgroundTasks,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Новая заявка на кастомизацию шаблона"""
    request = lifecycle.create(
        customer_id=current_user.id,
        template_id=data.template_id,
        modifications=data.modifications,
        contact_email=data.contact_email or current_user.email,
        contact_phone=data.contact_phone,
        template_name=data.template_name,
        additional_notes=data.additional_notes,
        reference_images=data.reference_images,
    )
    logger.info("Custom request %s created by %s", request.id, current_user.id)
    background_tasks.add_task(send_request_confirmation, request.contact_email, request.template_name)
    return request


@router.get("/", response_model=List[CustomRequestResponse])
def list_my_requests(
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Мои заявки, новые сверху"""
    return lifecycle.list_for_customer(current_user.id)


@router.get("/{request_id}", response_model=CustomRequestResponse)
def get_request(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    return lifecycle.get(request_id, current_user.id, current_user.role)


@router.post("/{request_id}/select-sample", response_model=CustomRequestResponse)
def select_sample(
    request_id: str,
    data: SampleSelect,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Выбрать один из присланных образцов"""
    request = lifecycle.select_sample(request_id, current_user.id, data.sample)
    logger.info("Custom request %s approved with sample %s", request_id, data.sample)
    return request


@router.post("/{request_id}/adjustments", response_model=CustomRequestResponse)
def request_adjustment(
    request_id: str,
    data: AdjustmentCreate,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Запросить правки к образцам, заявка вернётся в pending"""
    request = lifecycle.request_adjustment(
        request_id, current_user.id, data.modifications, data.description
    )
    logger.info(
        "Adjustment #%d requested for custom request %s",
        len(request.adjustment_requests), request_id
    )
    return request


@router.post("/{request_id}/add-to-cart", response_model=CartItemResponse)
def add_to_cart(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Одобренная заявка -> корзина"""
    item = lifecycle.convert_to_cart_item(request_id, current_user.id)
    logger.info("Custom request %s moved to cart at %s", request_id, item.price)
    return item


@router.post("/{request_id}/cancel", response_model=CustomRequestResponse)
def cancel_request(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    current_user: CurrentUser = Depends(get_current_user)
):
    request = lifecycle.cancel(request_id, current_user.id)
    logger.info("Custom request %s cancelled by customer", request_id)
    return request

