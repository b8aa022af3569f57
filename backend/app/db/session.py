from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from app.core.config import settings


def build_engine(url: str, timeout: float = settings.STORE_TIMEOUT_SECONDS) -> Engine:
    """Движок с ограниченным временем ожидания блокировок/соединений"""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
    return create_engine(url, pool_pre_ping=True, pool_timeout=timeout)


engine = build_engine(settings.DATABASE_URL)


def create_tables(bind: Engine | None = None) -> None:
    """Создание всех таблиц"""
    import app.models  # noqa: F401  регистрирует таблицы в metadata

    SQLModel.metadata.create_all(bind or engine)

