import logging
from collections import Counter
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from typing import List, Optional
from app.api.deps import admin_required, get_lifecycle, CurrentUser
from app.core.config import settings
from app.core.errors import DomainError, ValidationError
from app.models.custom_request import CustomRequest, RequestStatus
from app.schemas.custom_request import (
    AdminCustomRequestResponse, CustomRequestListResponse, SamplesAttach
)
from app.services.custom_requests import Action, CustomRequestLifecycle, next_status
from app.services.images import delete_sample_image, save_sample_image
from app.services.notifications import send_samples_ready

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/custom-requests", tags=["admin-custom-requests"])


def _notify_samples(background_tasks: BackgroundTasks, request: CustomRequest) -> None:
    background_tasks.add_task(
        send_samples_ready,
        request.contact_email,
        request.id,
        request.template_name,
        dict(request.modifications or {}),
        list(request.samples),
    )


@router.get("/", response_model=CustomRequestListResponse)
def list_requests(
    status: Optional[RequestStatus] = Query(None),
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    _: CurrentUser = Depends(admin_required)
):
    """Все заявки (админ) с фильтром по статусу; счётчики по всем статусам"""
    requests = lifecycle.list_all(status)
    counts = Counter(r.status.value for r in lifecycle.list_all())
    return CustomRequestListResponse(
        items=[AdminCustomRequestResponse.model_validate(r) for r in requests],
        total=len(requests),
        counts=dict(counts),
    )


@router.get("/{request_id}", response_model=AdminCustomRequestResponse)
def get_request(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    admin: CurrentUser = Depends(admin_required)
):
    return lifecycle.get(request_id, admin.id, admin.role)


@router.post("/{request_id}/start", response_model=AdminCustomRequestResponse)
def start_work(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    admin: CurrentUser = Depends(admin_required)
):
    """Взять заявку в работу"""
    request = lifecycle.start_work(request_id, admin.id)
    logger.info("Custom request %s taken in progress by %s", request_id, admin.id)
    return request


@router.post("/{request_id}/samples", response_model=AdminCustomRequestResponse)
def attach_samples(
    request_id: str,
    data: SamplesAttach,
    background_tasks: BackgroundTasks,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    admin: CurrentUser = Depends(admin_required)
):
    """Отправить клиенту партию образцов (ссылки на изображения)"""
    request = lifecycle.attach_samples(request_id, admin.id, data.samples, data.admin_notes)
    logger.info("%d samples sent for custom request %s", len(request.samples), request_id)
    _notify_samples(background_tasks, request)
    return request


@router.post("/{request_id}/samples/upload", response_model=AdminCustomRequestResponse)
async def upload_samples(
    request_id: str,
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...),
    admin_notes: Optional[str] = Form(None),
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    admin: CurrentUser = Depends(admin_required)
):
    """Загрузить файлы образцов и сразу отправить их клиенту"""
    if not files:
        raise ValidationError("At least one sample is required")

    # Статус проверяем до записи файлов
    request = lifecycle.get(request_id, admin.id, admin.role)
    next_status(request.status, Action.ATTACH_SAMPLES)

    urls = []
    try:
        for upload in files:
            content = await upload.read()
            urls.append(save_sample_image(content, settings.UPLOAD_DIR))
        request = lifecycle.attach_samples(request_id, admin.id, urls, admin_notes)
    except DomainError:
        # Заявка не изменилась, уже сохранённые файлы удаляем
        for url in urls:
            delete_sample_image(url, settings.UPLOAD_DIR)
        raise

    logger.info("%d sample files uploaded for custom request %s", len(urls), request_id)
    _notify_samples(background_tasks, request)
    return request


@router.post("/{request_id}/complete", response_model=AdminCustomRequestResponse)
def complete_request(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    admin: CurrentUser = Depends(admin_required)
):
    request = lifecycle.mark_completed(request_id)
    logger.info("Custom request %s completed by %s", request_id, admin.id)
    return request


@router.post("/{request_id}/cancel", response_model=AdminCustomRequestResponse)
def cancel_request(
    request_id: str,
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    admin: CurrentUser = Depends(admin_required)
):
    request = lifecycle.cancel(request_id, admin.id, as_admin=True)
    logger.info("Custom request %s cancelled by %s", request_id, admin.id)
    return request

