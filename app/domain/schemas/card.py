"""Pydantic schemas for cards."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.domain.enums import ExpiryUnit
from app.domain.schemas.common import require_any


class CreditExpiry(BaseModel):
    ref_number: int = Field(ge=1)
    ref_type: ExpiryUnit


class CardCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    credits_needed: int = Field(ge=1)
    credit_expires_at: CreditExpiry


class CardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    credits_needed: Optional[int] = Field(None, ge=1)
    credit_expires_at: Optional[CreditExpiry] = None

    @model_validator(mode="after")
    def check_any(self):
        require_any(self, ("title", "credits_needed", "credit_expires_at"))
        return self


class CardRead(BaseModel):
    id: str
    company_id: str
    title: str
    credits_needed: int
    credit_expires_at: CreditExpiry
    status: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CardWithStats(CardRead):
    credits_count: int = 0
    consumers_count: int = 0
    used_count: int = 0
