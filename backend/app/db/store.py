"""
Документное хранилище.

Бизнес-логика видит только DocumentStore: чтение по id, поиск по полям,
создание, условное обновление (с предусловием на поля) и атомарный
инкремент счётчика с ограничением. SQLStore: реализация поверх SQLModel.
"""
import logging
from abc import ABC, abstractmethod
from functools import wraps
from typing import Any, List, Mapping, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, or_, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlmodel import Session, SQLModel, select
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.core.errors import ConflictError, NotFound, StoreUnavailable
from app.core.utils import utc_now

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)

TRANSIENT_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


class DocumentStore(ABC):

    @abstractmethod
    def get(self, model: Type[ModelT], record_id: Any) -> Optional[ModelT]:
        ...

    @abstractmethod
    def find(
        self,
        model: Type[ModelT],
        order_by: Any = None,
        limit: Optional[int] = None,
        offset: int = 0,
        **criteria: Any,
    ) -> List[ModelT]:
        ...

    @abstractmethod
    def count(self, model: Type[ModelT], **criteria: Any) -> int:
        ...

    @abstractmethod
    def create(self, obj: ModelT) -> ModelT:
        ...

    @abstractmethod
    def conditional_update(
        self,
        model: Type[ModelT],
        record_id: Any,
        expected: Mapping[str, Any],
        values: Mapping[str, Any],
        create_with: Sequence[SQLModel] = (),
    ) -> ModelT:
        """
        Обновить запись, только если её поля всё ещё равны `expected`.
        Иначе ConflictError (или NotFound) и ничего не пишется.
        Объекты из `create_with` создаются в той же транзакции.
        """

    @abstractmethod
    def increment_if_below(
        self, model: Type[ModelT], record_id: Any, field: str, cap_field: str
    ) -> bool:
        """Атомарно field += 1, если cap_field пуст или field < cap_field"""

    @abstractmethod
    def delete(self, model: Type[ModelT], **criteria: Any) -> int:
        ...

    def find_one(self, model: Type[ModelT], **criteria: Any) -> Optional[ModelT]:
        found = self.find(model, limit=1, **criteria)
        return found[0] if found else None


def _store_call(method):
    """Инфраструктурные сбои -> StoreUnavailable, с ограниченным повтором"""

    @retry(
        stop=stop_after_attempt(settings.STORE_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=settings.STORE_RETRY_BACKOFF_SECONDS, max=2),
        retry=retry_if_exception_type(StoreUnavailable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    @wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            raise StoreUnavailable(f"Store call '{method.__name__}' failed: {exc}") from exc

    return wrapper


def _touch(model: Type[SQLModel], values: Mapping[str, Any]) -> dict:
    values = dict(values)
    if "updated_at" in model.model_fields and "updated_at" not in values:
        values["updated_at"] = utc_now()
    return values


class SQLStore(DocumentStore):

    def __init__(self, engine: Engine):
        self.engine = engine

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    @staticmethod
    def _where(model: Type[ModelT], criteria: Mapping[str, Any]) -> list:
        return [getattr(model, field) == value for field, value in criteria.items()]

    @_store_call
    def get(self, model, record_id):
        with self._session() as session:
            return session.get(model, record_id)

    @_store_call
    def find(self, model, order_by=None, limit=None, offset=0, **criteria):
        stmt = select(model).where(*self._where(model, criteria))
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return list(session.exec(stmt).all())

    @_store_call
    def count(self, model, **criteria):
        with self._session() as session:
            stmt = select(func.count()).select_from(model).where(*self._where(model, criteria))
            return session.exec(stmt).one()

    @_store_call
    def create(self, obj):
        with self._session() as session:
            session.add(obj)
            session.commit()
            session.refresh(obj)
            return obj

    @_store_call
    def conditional_update(self, model, record_id, expected, values, create_with=()):
        stmt = (
            update(model)
            .where(model.id == record_id, *self._where(model, expected))
            .values(_touch(model, values))
        )
        with self._session() as session:
            result = session.exec(stmt)
            if result.rowcount != 1:
                session.rollback()
                if session.get(model, record_id) is None:
                    raise NotFound(f"{model.__name__} {record_id} not found")
                raise ConflictError(f"{model.__name__} {record_id} was modified concurrently")

            for obj in create_with:
                session.add(obj)
            session.commit()
            return session.get(model, record_id, populate_existing=True)

    @_store_call
    def increment_if_below(self, model, record_id, field, cap_field):
        column = getattr(model, field)
        cap = getattr(model, cap_field)
        stmt = (
            update(model)
            .where(model.id == record_id, or_(cap.is_(None), column < cap))
            .values(_touch(model, {field: column + 1}))
        )
        with self._session() as session:
            result = session.exec(stmt)
            session.commit()
            return result.rowcount == 1

    @_store_call
    def delete(self, model, **criteria):
        if not criteria:
            raise ValueError("delete() requires at least one criterion")
        with self._session() as session:
            result = session.exec(delete(model).where(*self._where(model, criteria)))
            session.commit()
            return result.rowcount

