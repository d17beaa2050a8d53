"""Pydantic schemas for consumers and their credits."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.domain.schemas.common import Phone, require_any


class CreditLine(BaseModel):
    card_id: str = Field(min_length=1)
    quantity: int = Field(ge=1, le=100)


class ConsumerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: Phone
    cards: List[CreditLine] = Field(min_length=1)


class ConsumerCreditsAdd(BaseModel):
    cards: List[CreditLine] = Field(min_length=1)


class ConsumerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[Phone] = None

    @model_validator(mode="after")
    def check_any(self):
        require_any(self, ("name", "phone"))
        return self


class CreditDecision(BaseModel):
    status: Literal["available", "rejected"]


class CreditRead(BaseModel):
    id: str
    card_id: str
    user_id: str
    company_id: str
    status: str
    requested_at: Optional[datetime] = None
    expires_at: datetime
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
