from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.core.errors import NotFound, ValidationError
from app.core.utils import money, normalize_code, to_utc, utc_now
from app.db.store import DocumentStore
from app.models.promotion import Promotion, PromotionType
from app.schemas.promotion import (
    OrderContext,
    PromotionCreate,
    PromotionResult,
    PromotionUpdate,
    RejectionReason,
)


# === Расчёт скидки: одна функция на тип промокода ===

def _percentage_discount(promo: Promotion, ctx: OrderContext) -> Decimal:
    return ctx.subtotal * promo.value / 100


def _fixed_discount(promo: Promotion, ctx: OrderContext) -> Decimal:
    # Скидка не больше суммы заказа
    return min(promo.value, ctx.subtotal)


def _free_delivery_discount(promo: Promotion, ctx: OrderContext) -> Decimal:
    return ctx.delivery_fee


def _first_time_discount(promo: Promotion, ctx: OrderContext) -> Decimal:
    """value трактуется как процент, только для первого заказа"""
    if not ctx.is_first_time_buyer:
        return Decimal("0")
    return ctx.subtotal * promo.value / 100


DISCOUNT_CALCULATORS: Dict[PromotionType, Callable[[Promotion, OrderContext], Decimal]] = {
    PromotionType.PERCENTAGE: _percentage_discount,
    PromotionType.FIXED: _fixed_discount,
    PromotionType.FREE_DELIVERY: _free_delivery_discount,
    PromotionType.FIRST_TIME: _first_time_discount,
}


def calculate_discount(promo: Promotion, ctx: OrderContext) -> Decimal:
    return money(DISCOUNT_CALCULATORS[promo.type](promo, ctx))


class PromotionEngine:

    def __init__(self, store: DocumentStore, clock: Callable = utc_now):
        self.store = store
        self.clock = clock

    def get_by_code(self, code: str) -> Optional[Promotion]:
        code = normalize_code(code)
        if not code:
            return None
        return self.store.find_one(Promotion, code=code)

    def list_active(self) -> List[Promotion]:
        """Активные акции, действующие прямо сейчас"""
        now = to_utc(self.clock())
        promotions = self.store.find(Promotion, order_by=Promotion.end_date.asc(), active=True)
        return [p for p in promotions if _in_window(p, now)]

    def check(self, promo: Promotion, ctx: OrderContext) -> Optional[RejectionReason]:
        """Проверки по порядку; первая неудачная — причина отказа"""
        if not promo.active:
            return RejectionReason.INACTIVE

        if not _in_window(promo, to_utc(self.clock())):
            return RejectionReason.EXPIRED

        if promo.max_usage is not None and promo.usage_count >= promo.max_usage:
            return RejectionReason.LIMIT_REACHED

        if promo.min_purchase_amount is not None and ctx.subtotal < promo.min_purchase_amount:
            return RejectionReason.BELOW_MINIMUM

        if promo.category_id is not None:
            # Акция на категорию не применяется к смешанной корзине
            if not ctx.category_ids or any(cid != promo.category_id for cid in ctx.category_ids):
                return RejectionReason.CATEGORY_MISMATCH

        return None

    def validate(self, code: str, ctx: OrderContext) -> PromotionResult:
        normalized = normalize_code(code)
        promo = self.get_by_code(normalized)
        if not promo:
            return PromotionResult(accepted=False, code=normalized, reason=RejectionReason.UNKNOWN_CODE)

        reason = self.check(promo, ctx)
        if reason:
            return _rejected(promo, reason)

        return PromotionResult(
            accepted=True,
            code=promo.code,
            discount=calculate_discount(promo, ctx),
            discount_type=promo.type,
            promotion_id=promo.id,
            description=promo.description,
        )

    def apply(self, code: str, ctx: OrderContext) -> PromotionResult:
        """
        Проверить и засчитать использование.

        Инкремент — одно условное UPDATE с проверкой лимита, поэтому при
        одновременных вызовах на последний слот проходит ровно один.
        """
        result = self.validate(code, ctx)
        if not result.accepted:
            return result

        if not self.store.increment_if_below(Promotion, result.promotion_id, "usage_count", "max_usage"):
            return result.model_copy(
                update={"accepted": False, "discount": None, "discount_type": None,
                        "reason": RejectionReason.LIMIT_REACHED}
            )
        return result


def _in_window(promo: Promotion, now) -> bool:
    # Границы включительно; старые записи могли вернуться из БД без tzinfo
    return to_utc(promo.start_date) <= now <= to_utc(promo.end_date)


def _rejected(promo: Promotion, reason: RejectionReason) -> PromotionResult:
    return PromotionResult(
        accepted=False,
        code=promo.code,
        reason=reason,
        promotion_id=promo.id,
        description=promo.description,
    )


# === Админ: создание и изменение ===

def _check_terms(promo_type: PromotionType, value: Decimal, start_date, end_date) -> None:
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    if promo_type == PromotionType.PERCENTAGE and not (Decimal("0") <= value <= Decimal("100")):
        raise ValidationError("Percentage value must be between 0 and 100")
    if promo_type == PromotionType.FIRST_TIME and not (Decimal("0") <= value <= Decimal("100")):
        raise ValidationError("First-time value is a percentage between 0 and 100")
    if promo_type == PromotionType.FIXED and value < 0:
        raise ValidationError("Fixed value must be >= 0")


def _ensure_code_free(store: DocumentStore, code: str, own_id: Optional[int] = None) -> None:
    existing = store.find_one(Promotion, code=code)
    if existing and existing.id != own_id:
        raise ValidationError("Promotion code already exists")


def create_promotion(store: DocumentStore, data: PromotionCreate) -> Promotion:
    code = normalize_code(data.code)
    if not code:
        raise ValidationError("code is required")

    fields = data.model_dump()
    fields.update(
        code=code,
        start_date=to_utc(data.start_date),
        end_date=to_utc(data.end_date),
        usage_count=0,
    )
    _check_terms(data.type, data.value, fields["start_date"], fields["end_date"])
    _ensure_code_free(store, code)

    try:
        return store.create(Promotion(**fields))
    except IntegrityError as exc:
        raise ValidationError("Promotion code already exists") from exc


def update_promotion(store: DocumentStore, promotion_id: int, data: PromotionUpdate) -> Promotion:
    promo = store.get(Promotion, promotion_id)
    if not promo:
        raise NotFound("Promotion not found")

    update_data = data.model_dump(exclude_unset=True)
    for field in ("code", "type", "value", "start_date", "end_date", "active"):
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{field} cannot be null")
    if "code" in update_data:
        update_data["code"] = normalize_code(update_data["code"])
        if not update_data["code"]:
            raise ValidationError("code is required")
        _ensure_code_free(store, update_data["code"], own_id=promo.id)
    for field in ("start_date", "end_date"):
        if field in update_data:
            update_data[field] = to_utc(update_data[field])

    merged = {**promo.model_dump(), **update_data}
    _check_terms(merged["type"], merged["value"], to_utc(merged["start_date"]), to_utc(merged["end_date"]))
    if merged["max_usage"] is not None and merged["max_usage"] < promo.usage_count:
        raise ValidationError("max_usage cannot be lower than the current usage count")

    # Лимит сверяем с тем usage_count, что видели
    expected = {"usage_count": promo.usage_count} if "max_usage" in update_data else {}
    try:
        return store.conditional_update(Promotion, promo.id, expected=expected, values=update_data)
    except IntegrityError as exc:
        raise ValidationError("Promotion code already exists") from exc

