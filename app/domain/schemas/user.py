"""Pydantic schemas for the signed-in user's own profile."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.domain.schemas.common import Phone, require_any


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[Phone] = None
    password: Optional[str] = Field(None, min_length=6)

    @model_validator(mode="after")
    def check_any(self):
        require_any(self, ("name", "phone", "password"))
        return self
