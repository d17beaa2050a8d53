"""Shared schema types."""

from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel

from app.core.localization import localize
from app.domain.validators import normalize_phone, validate_phone


def _check_phone(value: str) -> str:
    phone = normalize_phone(value)
    if not validate_phone(phone):
        raise ValueError(localize("error.generic.invalidFormat", field="phone"))
    return phone


Phone = Annotated[str, AfterValidator(_check_phone)]


def require_any(model: BaseModel, fields) -> None:
    """Raise when none of `fields` was sent."""
    if not any(getattr(model, field) is not None for field in fields):
        raise ValueError(localize("error.generic.atLeastOne", fields=", ".join(fields)))


class MessageResponse(BaseModel):
    message: str


class Coordinates(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AddressRead(BaseModel):
    street: str
    number: int
    complement: Optional[str] = None
    neighborhood: str
    city: str
    state: str
    zipcode: str
    coordinates: Optional[Coordinates] = None
