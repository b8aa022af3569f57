from fastapi import APIRouter, Depends
from app.api.deps import get_current_user, get_store, get_catalog, CurrentUser
from app.db.store import DocumentStore
from app.schemas.cart import CartItemCreate, CartItemResponse, CartResponse
from app.services.cart import add_template_item, cart_subtotal, get_cart, remove_item
from app.services.catalog import TemplateCatalog

router = APIRouter(prefix="/api/me/cart", tags=["cart"])


@router.get("/", response_model=CartResponse)
def read_cart(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Моя корзина"""
    items = get_cart(store, current_user.id)
    return CartResponse(
        items=[CartItemResponse.model_validate(item) for item in items],
        subtotal=cart_subtotal(items),
    )


@router.post("/", response_model=CartItemResponse)
def add_item(
    data: CartItemCreate,
    store: DocumentStore = Depends(get_store),
    catalog: TemplateCatalog = Depends(get_catalog),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Добавить шаблон без кастомизации"""
    return add_template_item(store, catalog, current_user.id, data)


@router.delete("/{item_id}")
def delete_item(
    item_id: int,
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Удалить позицию из корзины"""
    remove_item(store, current_user.id, item_id)
    return {"message": "Removed from cart"}

