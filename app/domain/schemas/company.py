"""Pydantic schemas for companies and their administration."""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.localization import localize
from app.domain.lifecycle import Lifecycle
from app.domain.schemas.common import Phone, require_any
from app.domain.validators import validate_document


class AddressIn(BaseModel):
    street: str = Field(min_length=1)
    number: int = Field(ge=0)
    complement: Optional[str] = None
    neighborhood: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2)
    zipcode: str

    @field_validator("zipcode")
    @classmethod
    def check_zipcode(cls, value: str) -> str:
        digits = re.sub(r"\D", "", value)
        if len(digits) != 8:
            raise ValueError(localize("error.generic.invalidFormat", field="zipcode"))
        return digits


class CompanyProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[Phone] = None
    logo: Optional[str] = None
    address: Optional[AddressIn] = None

    @model_validator(mode="after")
    def check_any(self):
        require_any(self, ("name", "phone", "logo", "address"))
        return self


class FirstClientUser(BaseModel):
    name: str = Field(min_length=1)
    phone: Phone
    password: str = Field(min_length=6)


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: Optional[Phone] = None
    document: str
    logo: Optional[str] = None
    segment_id: Optional[str] = None
    address: AddressIn
    user: FirstClientUser

    @field_validator("document")
    @classmethod
    def check_document(cls, value: str) -> str:
        digits = re.sub(r"\D", "", value)
        if not validate_document(digits):
            raise ValueError(localize("error.generic.invalidFormat", field="document"))
        return digits


class LifecycleUpdate(BaseModel):
    state: Lifecycle


class SegmentRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None

    model_config = {"from_attributes": True}
