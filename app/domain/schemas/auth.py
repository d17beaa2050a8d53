"""Pydantic schemas for login, registration and password recovery."""

from typing import Optional

from pydantic import BaseModel, Field

from app.domain.schemas.common import AddressRead, Phone


class LoginRequest(BaseModel):
    phone: Phone
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: Phone
    password: str = Field(min_length=6)


class PhoneRequest(BaseModel):
    phone: Phone


class TokenValidationRequest(BaseModel):
    phone: Phone
    token: str


class ResetPasswordRequest(TokenValidationRequest):
    password: str = Field(min_length=1)


class SessionCredential(BaseModel):
    token_type: str = Field("Bearer", alias="tokenType")
    access_token: str = Field(alias="accessToken")
    expires_in: int = Field(alias="expiresIn")

    model_config = {"populate_by_name": True}


class UserPublic(BaseModel):
    id: str
    name: Optional[str] = None
    role: str
    phone: str

    model_config = {"from_attributes": True}


class CompanyPublic(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    document: str
    logo: Optional[str] = None
    segment_id: Optional[str] = None
    address: AddressRead

    model_config = {"from_attributes": True}


class LoginResponse(SessionCredential):
    """Session credential fields at the top level, next to the public profiles."""

    user: UserPublic
    company: Optional[CompanyPublic] = None
