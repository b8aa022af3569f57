from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Mapping, Optional

from app.core.errors import ValidationError

CENT = Decimal("0.01")

# Поля кастомизации; расширяется добавлением ключа
MODIFICATION_FIELDS = ("color", "material", "style", "size", "description")


def utc_now() -> datetime:
    """Текущее время в UTC, всегда с tzinfo"""
    return datetime.now(timezone.utc)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Привести к aware UTC; время без зоны считается UTC"""
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def clean_modifications(modifications: Optional[Mapping[str, Optional[str]]]) -> Dict[str, str]:
    """
    Оставить только заполненные поля кастомизации.
    Пустые строки и None считаются «не запрошено».
    """
    cleaned: Dict[str, str] = {}
    for key, value in (modifications or {}).items():
        if key not in MODIFICATION_FIELDS:
            raise ValidationError(f"Unknown modification field: {key}")
        if value is None:
            continue
        value = str(value).strip()
        if value:
            cleaned[key] = value
    return cleaned


def describe_modifications(modifications: Mapping[str, str]) -> str:
    return ", ".join(f"{key}: {value}" for key, value in modifications.items())


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()

