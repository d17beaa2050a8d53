"""Field-level format rules shared by models and request schemas."""

import re
from typing import Any, Iterable, Mapping, Optional, Type
import enum

PHONE_PATTERN = re.compile(r"^[0-9]{13}$")
DOCUMENT_PATTERN = re.compile(r"^[0-9]{11}$|^[0-9]{14}$")
BRAZIL_COUNTRY_CODE = "55"


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Strip formatting and add the country code to 11-digit local numbers."""
    if value is None:
        return None
    digits = re.sub(r"\D", "", str(value))
    if len(digits) == 11:
        digits = BRAZIL_COUNTRY_CODE + digits
    return digits


def validate_phone(value: Any) -> bool:
    return isinstance(value, str) and bool(PHONE_PATTERN.match(value))


def validate_document(value: Any) -> bool:
    return isinstance(value, str) and bool(DOCUMENT_PATTERN.match(value))


def check_enum(data: Mapping[str, Any], field: str, enum_cls: Type[enum.Enum]) -> None:
    if field in data and data[field] is not None:
        allowed = {member.value for member in enum_cls}
        value = data[field].value if isinstance(data[field], enum.Enum) else data[field]
        if value not in allowed:
            raise ValueError(f"{field} must be one of {sorted(allowed)}")


def check_required(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    for field in fields:
        if data.get(field) in (None, ""):
            raise ValueError(f"{field} is required")
