"""
Init-скрипт: таблицы + приветственный промокод из ENV если не существует
Запуск: python -m app.scripts.init_db
"""
from datetime import timedelta

from app.core.config import settings
from app.core.log import setup_logging
from app.core.utils import normalize_code, utc_now
from app.db.session import create_tables, engine
from app.db.store import DocumentStore, SQLStore
from app.models.promotion import Promotion, PromotionType
from app.schemas.promotion import PromotionCreate
from app.services.promotions import create_promotion


def seed_welcome_promotion(store: DocumentStore) -> Promotion | None:
    """Промокод first_time для новых покупателей, если задан WELCOME_PROMO_CODE"""
    code = normalize_code(settings.WELCOME_PROMO_CODE)
    if not code:
        print("WELCOME_PROMO_CODE not set, skipping promotion seed")
        return None

    existing = store.find_one(Promotion, code=code)
    if existing:
        print(f"Promotion already exists: {existing.code}")
        return existing

    now = utc_now()
    promo = create_promotion(store, PromotionCreate(
        code=code,
        name="Welcome discount",
        description=f"{settings.WELCOME_PROMO_PERCENT}% off your first order",
        type=PromotionType.FIRST_TIME,
        value=settings.WELCOME_PROMO_PERCENT,
        start_date=now,
        end_date=now + timedelta(days=365),
    ))
    print(f"Promotion created: {promo.code}")
    return promo


def main():
    setup_logging()
    print("Creating tables...")
    create_tables(engine)
    print("Seeding welcome promotion...")
    seed_welcome_promotion(SQLStore(engine))
    print("Done!")


if __name__ == "__main__":
    main()
