from pydantic_settings import BaseSettings
from typing import List, Optional
from decimal import Decimal


class Settings(BaseSettings):
    ENV: str = "development"
    SECRET_KEY: str = "change-me-in-production"
    DATABASE_URL: str = "sqlite:///./furniture.db"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Загрузка образцов
    UPLOAD_DIR: str = "./uploads"

    # Хранилище
    STORE_TIMEOUT_SECONDS: float = 5.0
    STORE_RETRY_ATTEMPTS: int = 3
    STORE_RETRY_BACKOFF_SECONDS: float = 0.2

    # Доставка
    DELIVERY_FEE: Decimal = Decimal("0")

    # Paystack
    PAYSTACK_SECRET_KEY: Optional[str] = None
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"
    PAYMENT_CALLBACK_URL: str = "http://localhost:5173/checkout/success"
    PAYMENT_TIMEOUT_SECONDS: float = 10.0

    # Письма клиентам (Resend); без ключа отправка пропускается
    RESEND_API_KEY: Optional[str] = None
    RESEND_FROM_DOMAIN: str = "resend.dev"
    FRONTEND_URL: str = "http://localhost:5173"
    # Откуда отдаются /uploads, для ссылок на образцы в письмах
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Промокод для новых покупателей (scripts/init_db)
    WELCOME_PROMO_CODE: Optional[str] = None
    WELCOME_PROMO_PERCENT: Decimal = Decimal("10")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"


settings = Settings()

