from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional, List
from app.api.deps import get_store, get_checkout, get_current_user, admin_required, CurrentUser
from app.db.store import DocumentStore
from app.models.order import Order, OrderStatus
from app.schemas.order import (
    CheckoutCreate, CheckoutResponse, OrderResponse, OrderListResponse,
    OrderStatusUpdate, PaymentCallback
)
from app.services.checkout import CheckoutOrchestrator

router = APIRouter(tags=["orders"])


# === Оформление и оплата ===

@router.post("/api/checkout", response_model=CheckoutResponse)
def checkout(
    data: CheckoutCreate,
    orchestrator: CheckoutOrchestrator = Depends(get_checkout),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Оформить заказ из корзины и получить ссылку на оплату"""
    order, payment, promotion = orchestrator.start_checkout(
        current_user.id, current_user.email, data
    )
    return CheckoutResponse(
        order=OrderResponse.model_validate(order),
        authorization_url=payment.authorization_url,
        promotion=promotion,
    )


@router.post("/api/payments/callback", response_model=OrderResponse)
def payment_callback(
    data: PaymentCallback,
    orchestrator: CheckoutOrchestrator = Depends(get_checkout)
):
    """Возврат от платёжного провайдера (успех или отмена)"""
    return orchestrator.handle_payment_callback(data.reference)


# === User: мои заказы ===

@router.get("/api/me/orders", response_model=List[OrderResponse])
def get_my_orders(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Список моих заказов"""
    return store.find(Order, order_by=Order.created_at.desc(), customer_id=current_user.id)


@router.get("/api/me/orders/{order_id}", response_model=OrderResponse)
def get_my_order(
    order_id: int,
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Детали моего заказа"""
    order = store.get(Order, order_id)

    if not order or order.customer_id != current_user.id:
        raise HTTPException(status_code=404, detail="Order not found")

    return order


# === Admin: управление заказами ===

@router.get("/api/admin/orders", response_model=OrderListResponse)
def admin_list_orders(
    status: Optional[OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    store: DocumentStore = Depends(get_store),
    _: CurrentUser = Depends(admin_required)
):
    """Список заказов с фильтром по статусу (админ)"""
    criteria = {"status": status} if status else {}
    total = store.count(Order, **criteria)
    orders = store.find(
        Order,
        order_by=Order.created_at.desc(),
        limit=page_size,
        offset=(page - 1) * page_size,
        **criteria
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/api/admin/orders/{order_id}", response_model=OrderResponse)
def admin_get_order(
    order_id: int,
    store: DocumentStore = Depends(get_store),
    _: CurrentUser = Depends(admin_required)
):
    """Детали заказа (админ)"""
    order = store.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.patch("/api/admin/orders/{order_id}", response_model=OrderResponse)
def admin_update_order(
    order_id: int,
    data: OrderStatusUpdate,
    store: DocumentStore = Depends(get_store),
    _: CurrentUser = Depends(admin_required)
):
    """Обновить статус заказа (админ)"""
    values = {"status": data.status}
    if data.is_paid is not None:
        values["is_paid"] = data.is_paid
    return store.conditional_update(Order, order_id, expected={}, values=values)

