import logging
import secrets
from decimal import Decimal
from typing import List, Optional, Tuple

from app.core.errors import ConflictError, DomainError, NotFound, PromotionRejected, ValidationError
from app.core.utils import money, utc_now
from app.db.store import DocumentStore
from app.models.cart import CartItem
from app.models.order import Order, OrderItem, OrderStatus
from app.schemas.order import CheckoutCreate
from app.schemas.promotion import OrderContext, PromotionResult
from app.services.cart import cart_subtotal, get_cart
from app.services.catalog import TemplateCatalog
from app.services.custom_requests import CustomRequestLifecycle
from app.services.payments import PaymentGateway, PaymentInit
from app.services.promotions import PromotionEngine

logger = logging.getLogger(__name__)


def generate_order_number() -> str:
    """Генерация уникального номера заказа (он же reference платежа)"""
    timestamp = utc_now().strftime("%y%m%d")
    random_part = secrets.token_hex(4).upper()
    return f"RC-{timestamp}-{random_part}"


class CheckoutOrchestrator:

    def __init__(
        self,
        store: DocumentStore,
        catalog: TemplateCatalog,
        promotions: PromotionEngine,
        lifecycle: CustomRequestLifecycle,
        payments: PaymentGateway,
        delivery_fee: Decimal = Decimal("0"),
    ):
        self.store = store
        self.catalog = catalog
        self.promotions = promotions
        self.lifecycle = lifecycle
        self.payments = payments
        self.delivery_fee = money(delivery_fee)

    def is_first_time_buyer(self, customer_id: str) -> bool:
        return self.store.count(Order, customer_id=customer_id, is_paid=True) == 0

    def build_order_context(self, customer_id: str, items: List[CartItem]) -> OrderContext:
        return OrderContext(
            subtotal=cart_subtotal(items),
            delivery_fee=self.delivery_fee,
            category_ids=[self.catalog.get_category_id(item.template_id) for item in items],
            is_first_time_buyer=self.is_first_time_buyer(customer_id),
        )

    def start_checkout(
        self, customer_id: str, customer_email: Optional[str], data: CheckoutCreate
    ) -> Tuple[Order, PaymentInit, Optional[PromotionResult]]:
        """Корзина -> заказ в статусе pending -> ссылка на оплату"""
        items = get_cart(self.store, customer_id)
        if not items:
            raise ValidationError("Cart is empty")

        email = data.customer_email or customer_email
        if not email:
            raise ValidationError("Email is required for payment")

        ctx = self.build_order_context(customer_id, items)

        promotion: Optional[PromotionResult] = None
        discount = Decimal("0")
        if data.promotion_code:
            # Только проверка: использование списывается после инициализации оплаты
            promotion = self.promotions.validate(data.promotion_code, ctx)
            if not promotion.accepted:
                raise PromotionRejected(promotion.reason.value)
            discount = promotion.discount

        total = money(max(ctx.subtotal + ctx.delivery_fee - discount, Decimal("0")))
        order_number = generate_order_number()
        order = Order(
            order_number=order_number,
            customer_id=customer_id,
            customer_email=email,
            customer_phone=data.customer_phone,
            delivery_address=data.delivery_address,
            delivery_city=data.delivery_city,
            payment_reference=order_number,
            subtotal=ctx.subtotal,
            discount=money(discount),
            delivery_cost=ctx.delivery_fee,
            total=total,
            promotion_id=promotion.promotion_id if promotion else None,
            promotion_code=promotion.code if promotion else None,
            status=OrderStatus.PENDING,
            notes=data.notes,
            items=[
                OrderItem(
                    template_id=item.template_id,
                    name=item.name,
                    image=item.image,
                    customizations=dict(item.customizations or {}),
                    quantity=item.quantity,
                    price=item.price,
                    total=money(item.price * item.quantity),
                    custom_request_id=item.custom_request_id,
                )
                for item in items
            ],
        )
        order = self.store.create(order)

        try:
            payment = self.payments.initialize(
                reference=order_number,
                amount=total,
                email=email,
                metadata={"order_id": order.id, "customer_id": customer_id},
            )
        except DomainError:
            self._cancel(order)
            raise

        if promotion:
            promotion = self.promotions.apply(data.promotion_code, ctx)
            if not promotion.accepted:
                # Последний слот ушёл параллельному заказу
                self._cancel(order)
                raise PromotionRejected(promotion.reason.value)

        logger.info("Checkout started: order %s, total %s", order_number, total)
        return order, payment, promotion

    def _cancel(self, order: Order) -> None:
        self.store.conditional_update(
            Order, order.id,
            expected={"status": OrderStatus.PENDING},
            values={"status": OrderStatus.CANCELLED},
        )

    def handle_payment_callback(self, reference: str) -> Order:
        """
        Результат оплаты. Успех — заказ оплачен, корзина очищена,
        кастомные заявки из заказа завершены. Иначе заказ отменён.
        Повторный callback по уже закрытому заказу ничего не меняет.
        """
        order = self.store.find_one(Order, payment_reference=reference)
        if not order:
            raise NotFound("Order not found for payment reference")
        if order.status != OrderStatus.PENDING:
            return order

        verification = self.payments.verify(reference)
        paid = verification.success and verification.amount >= order.total

        try:
            if paid:
                order = self.store.conditional_update(
                    Order, order.id,
                    expected={"status": OrderStatus.PENDING},
                    values={"status": OrderStatus.PROCESSING, "is_paid": True},
                )
            else:
                order = self.store.conditional_update(
                    Order, order.id,
                    expected={"status": OrderStatus.PENDING},
                    values={"status": OrderStatus.CANCELLED},
                )
        except ConflictError:
            # Параллельный callback уже закрыл заказ
            return self.store.get(Order, order.id)

        if not paid:
            logger.info("Payment %s not successful, order %s cancelled", reference, order.order_number)
            return order

        logger.info("Payment %s confirmed for order %s", reference, order.order_number)
        self.store.delete(CartItem, customer_id=order.customer_id)

        for item in order.items:
            if not item.custom_request_id:
                continue
            try:
                self.lifecycle.mark_completed(item.custom_request_id)
            except DomainError as exc:
                # Заказ уже оплачен — статус заявки не должен его ломать
                logger.warning(
                    "Could not complete custom request %s for order %s: %s",
                    item.custom_request_id, order.order_number, exc.message,
                )
        return order

