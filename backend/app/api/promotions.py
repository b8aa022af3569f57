import logging
from fastapi import APIRouter, Depends, HTTPException
from typing import List
from app.api.deps import get_store, get_promotion_engine, admin_required, CurrentUser
from app.db.store import DocumentStore
from app.models.promotion import Promotion
from app.schemas.promotion import (
    PromotionResponse, PromotionCreate, PromotionUpdate,
    PromotionResult, PromotionValidateRequest
)
from app.services.promotions import PromotionEngine, create_promotion, update_promotion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/promotions", tags=["promotions"])


# === Public ===

@router.get("/active", response_model=List[PromotionResponse])
def list_active_promotions(engine: PromotionEngine = Depends(get_promotion_engine)):
    """Список действующих акций (публичный)"""
    return engine.list_active()


@router.post("/validate", response_model=PromotionResult)
def validate_promotion(
    data: PromotionValidateRequest,
    engine: PromotionEngine = Depends(get_promotion_engine)
):
    """Проверить промокод без списания использования"""
    result = engine.validate(data.code, data)
    if not result.accepted:
        logger.info("Promotion %s rejected: %s", result.code, result.reason.value)
    return result


# === Admin CRUD ===

@router.get("/", response_model=List[PromotionResponse])
def list_promotions(
    skip: int = 0,
    limit: int = 50,
    store: DocumentStore = Depends(get_store),
    _: CurrentUser = Depends(admin_required)
):
    """Список всех акций (админ)"""
    return store.find(Promotion, order_by=Promotion.id.desc(), limit=limit, offset=skip)


@router.get("/{promotion_id}", response_model=PromotionResponse)
def get_promotion(
    promotion_id: int,
    store: DocumentStore = Depends(get_store),
    _: CurrentUser = Depends(admin_required)
):
    """Получить акцию по ID (админ)"""
    promo = store.get(Promotion, promotion_id)
    if not promo:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promo


@router.post("/", response_model=PromotionResponse, status_code=201)
def create_new_promotion(
    data: PromotionCreate,
    store: DocumentStore = Depends(get_store),
    admin: CurrentUser = Depends(admin_required)
):
    """Создать акцию (админ)"""
    promo = create_promotion(store, data)
    logger.info("Promotion %s created by %s", promo.code, admin.id)
    return promo


@router.patch("/{promotion_id}", response_model=PromotionResponse)
def patch_promotion(
    promotion_id: int,
    data: PromotionUpdate,
    store: DocumentStore = Depends(get_store),
    admin: CurrentUser = Depends(admin_required)
):
    """Обновить акцию (админ); счётчик использований не редактируется"""
    promo = update_promotion(store, promotion_id, data)
    logger.info("Promotion %s updated by %s", promo.code, admin.id)
    return promo

