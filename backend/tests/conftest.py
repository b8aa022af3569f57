# tests/conftest.py

import os
import tempfile

# До импорта приложения: без задержек между повторами и без записи в ./uploads
os.environ.setdefault("STORE_RETRY_BACKOFF_SECONDS", "0")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "furniture-test-uploads"))

from datetime import timedelta
from decimal import Decimal

import pytest
import resend
from starlette.testclient import TestClient

from app.api import deps
from app.core.config import settings
from app.core.utils import utc_now
from app.db.session import build_engine, create_tables
from app.db.store import SQLStore
from app.main import app
from app.models.category import Category
from app.models.promotion import Promotion, PromotionType
from app.models.template import Template
from app.services.catalog import TemplateCatalog
from app.services.checkout import CheckoutOrchestrator
from app.services.custom_requests import CustomRequestLifecycle
from app.services.payments import PaymentGateway, PaymentInit, PaymentVerification
from app.services.promotions import PromotionEngine

CUSTOMER_ID = "customer_1"
OTHER_CUSTOMER_ID = "customer_2"
ADMIN_ID = "admin_1"


# --- Хранилище: отдельный SQLite-файл на тест ---

@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}", timeout=5)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SQLStore(engine)


@pytest.fixture
def category(store):
    return store.create(Category(name="Living room", slug="living-room", room="living_room"))


@pytest.fixture
def other_category(store):
    return store.create(Category(name="Bedroom", slug="bedroom", room="bedroom"))


@pytest.fixture
def template(store, category):
    return store.create(Template(
        name="Oak Bookshelf",
        sku="SHELF-01",
        image_url="/uploads/shelf.jpg",
        base_price=Decimal("250.00"),
        category_id=category.id,
    ))


@pytest.fixture
def catalog(store):
    return TemplateCatalog(store)


@pytest.fixture
def lifecycle(store, catalog):
    return CustomRequestLifecycle(store, catalog)


@pytest.fixture
def promotions(store):
    return PromotionEngine(store)


def make_promotion(store, **overrides) -> Promotion:
    now = utc_now()
    fields = dict(
        code="SAVE20",
        type=PromotionType.PERCENTAGE,
        value=Decimal("20"),
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
    )
    fields.update(overrides)
    return store.create(Promotion(**fields))


@pytest.fixture
def promo_factory(store):
    return lambda **overrides: make_promotion(store, **overrides)


# --- Письма ---

@pytest.fixture
def sent_emails(monkeypatch):
    """Включает отправку и перехватывает вызовы Resend"""
    sent = []

    def send(params):
        sent.append(params)
        return {"id": f"email_{len(sent)}"}

    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test_key")
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "https://api.furniture.test")
    monkeypatch.setattr(settings, "FRONTEND_URL", "https://furniture.test")
    monkeypatch.setattr(resend.Emails, "send", send)
    return sent


# --- Платёжный шлюз ---

class FakePaymentGateway(PaymentGateway):
    """Запоминает инициализации, результат проверки задаётся тестом"""

    def __init__(self):
        self.initialized = {}
        self.success = True
        self.paid_amount = None
        self.fail_initialize = None

    def initialize(self, reference, amount, email, metadata=None):
        if self.fail_initialize:
            raise self.fail_initialize
        self.initialized[reference] = Decimal(amount)
        return PaymentInit(
            reference=reference,
            authorization_url=f"https://checkout.paystack.com/{reference}",
        )

    def verify(self, reference):
        amount = self.paid_amount if self.paid_amount is not None else self.initialized.get(reference, Decimal("0"))
        return PaymentVerification(reference=reference, success=self.success, amount=amount)


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def checkout(store, catalog, promotions, lifecycle, payments):
    return CheckoutOrchestrator(
        store, catalog, promotions, lifecycle, payments, delivery_fee=Decimal("15.00")
    )


# --- Test Client ---

class UserSwitch:
    """Текущий пользователь для API-тестов; тест переключает роль"""

    def __init__(self):
        self.user = deps.CurrentUser(id=CUSTOMER_ID, role="customer", email="buyer@gmail.com")

    def as_customer(self, user_id=CUSTOMER_ID, email="buyer@gmail.com"):
        self.user = deps.CurrentUser(id=user_id, role="customer", email=email)

    def as_admin(self):
        self.user = deps.CurrentUser(id=ADMIN_ID, role="admin", email="maker@gmail.com")


@pytest.fixture
def current_user():
    return UserSwitch()


@pytest.fixture
def client(store, payments, current_user):
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_payment_gateway] = lambda: payments
    app.dependency_overrides[deps.get_current_user] = lambda: current_user.user

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
