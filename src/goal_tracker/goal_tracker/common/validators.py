from __future__ import annotations

import math
from typing import Any, Optional

from ..core.constants import MAX_ABS_VALUE, MAX_WEIGHT
from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_number(value: Any, field_name: str, *, limit: float = MAX_ABS_VALUE) -> float:
    """Coerce a request value into a finite float with ``abs(value) < limit``.

    Accepts ints, floats and numeric strings. Booleans are rejected since
    JSON ``true`` would otherwise pass as ``1``. The limit matches the
    DECIMAL columns the value is stored in.
    """

    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field_name} must be a number")
    if abs(number) >= limit:
        raise ValidationError(f"{field_name} is out of range")
    return number


def parse_optional_number(value: Any, field_name: str) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_number(value, field_name)


def parse_weight(value: Any, field_name: str = "Weight") -> float:
    weight = parse_number(value, field_name, limit=MAX_WEIGHT)
    if weight <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return weight


def parse_optional_id(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "" or value == "null":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} is invalid")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is invalid")
    if number <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return number
