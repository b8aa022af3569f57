from fastapi import Depends, HTTPException, status
from fastapi_jwt import JwtAccessBearerCookie, JwtAuthorizationCredentials
from pydantic import BaseModel
from typing import Optional
from app.core.config import settings
from app.core.security import is_admin
from app.db.session import engine
from app.db.store import DocumentStore, SQLStore
from app.services.catalog import TemplateCatalog
from app.services.checkout import CheckoutOrchestrator
from app.services.custom_requests import CustomRequestLifecycle
from app.services.payments import PaymentGateway, PaystackGateway
from app.services.promotions import PromotionEngine

# JWT выдаёт внешний провайдер; HttpOnly cookie или Bearer
access_security = JwtAccessBearerCookie(
    secret_key=settings.SECRET_KEY,
    auto_error=False
)

_store = SQLStore(engine)


class CurrentUser(BaseModel):
    id: str
    role: str = "customer"
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)


# === Сервисы ===

def get_store() -> DocumentStore:
    return _store


def get_catalog(store: DocumentStore = Depends(get_store)) -> TemplateCatalog:
    return TemplateCatalog(store)


def get_lifecycle(
    store: DocumentStore = Depends(get_store),
    catalog: TemplateCatalog = Depends(get_catalog)
) -> CustomRequestLifecycle:
    return CustomRequestLifecycle(store, catalog)


def get_promotion_engine(store: DocumentStore = Depends(get_store)) -> PromotionEngine:
    return PromotionEngine(store)


def get_payment_gateway() -> PaymentGateway:
    return PaystackGateway.from_settings()


def get_checkout(
    store: DocumentStore = Depends(get_store),
    catalog: TemplateCatalog = Depends(get_catalog),
    promotions: PromotionEngine = Depends(get_promotion_engine),
    lifecycle: CustomRequestLifecycle = Depends(get_lifecycle),
    payments: PaymentGateway = Depends(get_payment_gateway)
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        store, catalog, promotions, lifecycle, payments,
        delivery_fee=settings.DELIVERY_FEE
    )


# === Пользователь ===

def _user_from_credentials(credentials: Optional[JwtAuthorizationCredentials]) -> Optional[CurrentUser]:
    if credentials is None:
        return None
    subject = credentials.subject or {}
    user_id = subject.get("id")
    if not user_id:
        return None
    return CurrentUser(
        id=str(user_id),
        role=subject.get("role") or "customer",
        email=subject.get("email")
    )


async def get_current_user(
    credentials: JwtAuthorizationCredentials = Depends(access_security)
) -> CurrentUser:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = _user_from_credentials(credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )
    return user


async def admin_required(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user

