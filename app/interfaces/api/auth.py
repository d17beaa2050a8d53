"""Auth API routes: login, registration and password recovery (guests only)."""

from fastapi import APIRouter, Depends, status

from app.application.services import auth_service
from app.application.services.auth_service import SessionIssuer
from app.application.services.token_service import RecoveryTokenService
from app.config import Settings, get_settings
from app.core.localization import localize
from app.domain.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PhoneRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenValidationRequest,
)
from app.domain.schemas.common import MessageResponse
from app.infrastructure.notification_gateway import NotificationGateway
from app.interfaces.api.deps import require_guest
from app.interfaces.deps import (
    get_company_repository,
    get_notification_gateway,
    get_session_issuer,
    get_token_service,
    get_user_repository,
)

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"], dependencies=[Depends(require_guest)])


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    users=Depends(get_user_repository),
    companies=Depends(get_company_repository),
    issuer: SessionIssuer = Depends(get_session_issuer),
    settings: Settings = Depends(get_settings),
):
    return auth_service.login(users, companies, issuer, body.phone, body.password, settings.PASSWORD_PEPPER)


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    users=Depends(get_user_repository),
    tokens: RecoveryTokenService = Depends(get_token_service),
    gateway: NotificationGateway = Depends(get_notification_gateway),
    settings: Settings = Depends(get_settings),
):
    await auth_service.register(users, tokens, gateway, body, settings.PASSWORD_PEPPER)
    return {"message": localize("auth.register.success")}


@router.post("/validate-register-token", response_model=MessageResponse)
def validate_register_token(
    body: TokenValidationRequest,
    users=Depends(get_user_repository),
    tokens: RecoveryTokenService = Depends(get_token_service),
):
    auth_service.validate_register_token(users, tokens, body.phone, body.token)
    return {"message": localize("auth.validateRegisterToken.success")}


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: PhoneRequest,
    users=Depends(get_user_repository),
    tokens: RecoveryTokenService = Depends(get_token_service),
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    await auth_service.forgot_password(users, tokens, gateway, body.phone)
    return {"message": localize("auth.forgotPassword.success")}


@router.post("/validate-reset-token", response_model=MessageResponse)
def validate_reset_token(
    body: TokenValidationRequest,
    users=Depends(get_user_repository),
    tokens: RecoveryTokenService = Depends(get_token_service),
):
    auth_service.validate_reset_token(users, tokens, body.phone, body.token)
    return {"message": localize("auth.validateResetToken.success")}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    users=Depends(get_user_repository),
    tokens: RecoveryTokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    auth_service.reset_password(users, tokens, body.phone, body.token, body.password, settings.PASSWORD_PEPPER)
    return {"message": localize("auth.resetPassword.success")}
