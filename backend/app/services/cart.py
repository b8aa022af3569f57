from decimal import Decimal
from typing import Iterable, List

from app.core.errors import NotFound, ValidationError
from app.core.utils import clean_modifications, money
from app.db.store import DocumentStore
from app.models.cart import CartItem
from app.schemas.cart import CartItemCreate
from app.services.catalog import TemplateCatalog


def get_cart(store: DocumentStore, customer_id: str) -> List[CartItem]:
    return store.find(CartItem, order_by=CartItem.added_at.asc(), customer_id=customer_id)


def cart_subtotal(items: Iterable[CartItem]) -> Decimal:
    return money(sum((item.price * item.quantity for item in items), Decimal("0")))


def add_template_item(
    store: DocumentStore, catalog: TemplateCatalog, customer_id: str, data: CartItemCreate
) -> CartItem:
    """Обычный шаблон в корзину по текущей цене каталога"""
    template = catalog.get_template(data.template_id)
    if not template:
        raise ValidationError(f"Template {data.template_id} is not available")

    item = CartItem(
        customer_id=customer_id,
        template_id=template.id,
        name=template.name,
        image=template.image_url,
        customizations=clean_modifications(data.customizations),
        price=money(template.base_price),
        quantity=data.quantity,
    )
    return store.create(item)


def remove_item(store: DocumentStore, customer_id: str, item_id: int) -> None:
    item = store.find_one(CartItem, id=item_id, customer_id=customer_id)
    if not item:
        raise NotFound("Cart item not found")
    # Позиция заявки уходит из корзины только вместе с отменой заявки
    if item.is_custom_request:
        raise ValidationError("Custom items are removed by cancelling the custom request")
    store.delete(CartItem, id=item_id, customer_id=customer_id)
