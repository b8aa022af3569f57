from decimal import Decimal

import pytest

from app.core.errors import NotFound, PaymentError, PromotionRejected, ValidationError
from app.models.cart import CartItem
from app.models.custom_request import CustomRequest, RequestStatus
from app.models.order import Order, OrderStatus
from app.models.promotion import Promotion, PromotionType
from app.schemas.cart import CartItemCreate
from app.schemas.order import CheckoutCreate
from app.schemas.promotion import RejectionReason
from app.services.cart import add_template_item, cart_subtotal, get_cart, remove_item

from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID, ADMIN_ID

EMAIL = "buyer@gmail.com"


@pytest.fixture
def custom_request(lifecycle, template):
    """Одобренная заявка, уже лежащая в корзине"""
    request = lifecycle.create(
        customer_id=CUSTOMER_ID,
        template_id=template.id,
        modifications={"color": "walnut"},
        contact_email=EMAIL,
    )
    lifecycle.attach_samples(request.id, ADMIN_ID, ["/uploads/samples/a.jpg"])
    lifecycle.select_sample(request.id, CUSTOMER_ID, "/uploads/samples/a.jpg")
    lifecycle.convert_to_cart_item(request.id, CUSTOMER_ID)
    return request


@pytest.fixture
def filled_cart(store, catalog, template, custom_request):
    add_template_item(store, catalog, CUSTOMER_ID, CartItemCreate(template_id=template.id, quantity=2))
    return get_cart(store, CUSTOMER_ID)


class TestCart:

    def test_subtotal(self, filled_cart):
        assert len(filled_cart) == 2
        assert cart_subtotal(filled_cart) == Decimal("750.00")

    def test_unknown_template(self, store, catalog):
        with pytest.raises(ValidationError):
            add_template_item(store, catalog, CUSTOMER_ID, CartItemCreate(template_id=999))

    def test_remove_only_own_items(self, store, filled_cart):
        item = next(i for i in filled_cart if not i.is_custom_request)
        with pytest.raises(NotFound):
            remove_item(store, OTHER_CUSTOMER_ID, item.id)
        remove_item(store, CUSTOMER_ID, item.id)
        assert len(get_cart(store, CUSTOMER_ID)) == 1

    def test_custom_item_is_not_removed_directly(self, store, filled_cart, custom_request):
        item = next(i for i in filled_cart if i.is_custom_request)

        with pytest.raises(ValidationError):
            remove_item(store, CUSTOMER_ID, item.id)

        assert len(get_cart(store, CUSTOMER_ID)) == 2
        assert store.get(CustomRequest, custom_request.id).status == RequestStatus.IN_CART

    def test_cancelling_request_clears_its_cart_item(self, store, lifecycle, filled_cart, custom_request):
        lifecycle.cancel(custom_request.id, CUSTOMER_ID)

        cart = get_cart(store, CUSTOMER_ID)
        assert len(cart) == 1
        assert not cart[0].is_custom_request
        assert store.get(CustomRequest, custom_request.id).status == RequestStatus.CANCELLED


class TestStartCheckout:

    def test_creates_pending_order(self, checkout, filled_cart, custom_request, payments, promo_factory, store):
        promo = promo_factory(max_usage=10)

        order, payment, promotion = checkout.start_checkout(
            CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="save20", delivery_city="Lagos")
        )

        assert order.status == OrderStatus.PENDING
        assert not order.is_paid
        assert order.subtotal == Decimal("750.00")
        assert order.delivery_cost == Decimal("15.00")
        assert order.discount == Decimal("150.00")
        assert order.total == Decimal("615.00")
        assert order.promotion_code == "SAVE20"
        assert order.customer_email == EMAIL
        assert len(order.items) == 2
        assert {item.custom_request_id for item in order.items} == {None, custom_request.id}

        assert payment.reference == order.payment_reference == order.order_number
        assert payments.initialized[order.order_number] == Decimal("615.00")
        assert promotion.accepted
        assert store.get(Promotion, promo.id).usage_count == 1

    def test_empty_cart(self, checkout):
        with pytest.raises(ValidationError):
            checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())

    def test_rejected_promotion_creates_no_order(self, checkout, filled_cart, promo_factory, store):
        promo_factory(min_purchase_amount=Decimal("100000"))

        with pytest.raises(PromotionRejected) as exc_info:
            checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="SAVE20"))

        assert exc_info.value.reason == RejectionReason.BELOW_MINIMUM.value
        assert exc_info.value.status_code == 400
        assert store.count(Order) == 0

    def test_category_promotion_on_mixed_cart(self, checkout, filled_cart, promo_factory, other_category):
        promo_factory(category_id=other_category.id)
        with pytest.raises(PromotionRejected) as exc_info:
            checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="SAVE20"))
        assert exc_info.value.code == RejectionReason.CATEGORY_MISMATCH.value

    def test_payment_init_failure_cancels_order(self, checkout, filled_cart, payments, store):
        payments.fail_initialize = PaymentError("provider down")

        with pytest.raises(PaymentError):
            checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())

        orders = store.find(Order, customer_id=CUSTOMER_ID)
        assert [o.status for o in orders] == [OrderStatus.CANCELLED]
        assert len(get_cart(store, CUSTOMER_ID)) == 2

    def test_payment_init_failure_keeps_promotion_usage(self, checkout, filled_cart, payments, promo_factory, store):
        promo = promo_factory(max_usage=1)
        payments.fail_initialize = PaymentError("provider down")

        with pytest.raises(PaymentError):
            checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="SAVE20"))

        assert store.get(Promotion, promo.id).usage_count == 0

        # Повторная попытка получает тот же единственный слот
        payments.fail_initialize = None
        order, _, promotion = checkout.start_checkout(
            CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="SAVE20")
        )
        assert promotion.accepted
        assert order.status == OrderStatus.PENDING
        assert store.get(Promotion, promo.id).usage_count == 1

    def test_promotion_exhausted_during_checkout(self, checkout, filled_cart, payments, promo_factory, store, monkeypatch):
        promo = promo_factory(max_usage=1)
        initialize = payments.initialize

        def initialize_while_slot_is_taken(**kwargs):
            store.increment_if_below(Promotion, promo.id, "usage_count", "max_usage")
            return initialize(**kwargs)

        monkeypatch.setattr(payments, "initialize", initialize_while_slot_is_taken)

        with pytest.raises(PromotionRejected) as exc_info:
            checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="SAVE20"))

        assert exc_info.value.code == RejectionReason.LIMIT_REACHED.value
        orders = store.find(Order, customer_id=CUSTOMER_ID)
        assert [o.status for o in orders] == [OrderStatus.CANCELLED]
        assert store.get(Promotion, promo.id).usage_count == 1

    def test_free_delivery(self, checkout, filled_cart, promo_factory):
        promo_factory(code="SHIPFREE", type=PromotionType.FREE_DELIVERY)

        order, _, _ = checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate(promotion_code="SHIPFREE"))

        assert order.discount == Decimal("15.00")
        assert order.total == Decimal("750.00")


class TestPaymentCallback:

    def test_successful_payment(self, checkout, filled_cart, custom_request, store):
        order, _, _ = checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())
        request_id = custom_request.id

        order = checkout.handle_payment_callback(order.payment_reference)

        assert order.status == OrderStatus.PROCESSING
        assert order.is_paid
        assert store.find(CartItem, customer_id=CUSTOMER_ID) == []
        assert store.get(CustomRequest, request_id).status == RequestStatus.COMPLETED
        assert not checkout.is_first_time_buyer(CUSTOMER_ID)

    def test_callback_is_idempotent(self, checkout, filled_cart, store, payments):
        order, _, _ = checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())
        checkout.handle_payment_callback(order.payment_reference)

        payments.success = False
        again = checkout.handle_payment_callback(order.payment_reference)

        assert again.status == OrderStatus.PROCESSING
        assert again.is_paid

    def test_failed_payment_cancels_order(self, checkout, filled_cart, store, payments):
        order, _, _ = checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())
        payments.success = False

        order = checkout.handle_payment_callback(order.payment_reference)

        assert order.status == OrderStatus.CANCELLED
        assert not order.is_paid
        assert len(get_cart(store, CUSTOMER_ID)) == 2
        assert checkout.is_first_time_buyer(CUSTOMER_ID)

    def test_underpayment_is_not_accepted(self, checkout, filled_cart, payments):
        order, _, _ = checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())
        payments.paid_amount = Decimal("1.00")

        order = checkout.handle_payment_callback(order.payment_reference)

        assert order.status == OrderStatus.CANCELLED

    def test_unknown_reference(self, checkout):
        with pytest.raises(NotFound):
            checkout.handle_payment_callback("RC-000000-NOPE")

    def test_cancelled_request_does_not_break_payment(self, checkout, filled_cart, custom_request, lifecycle, store):
        order, _, _ = checkout.start_checkout(CUSTOMER_ID, EMAIL, CheckoutCreate())
        request_id = custom_request.id
        lifecycle.cancel(request_id, ADMIN_ID, as_admin=True)

        order = checkout.handle_payment_callback(order.payment_reference)

        assert order.is_paid
        assert store.get(CustomRequest, request_id).status == RequestStatus.CANCELLED
