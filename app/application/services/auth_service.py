"""Auth service: password hashing, session credentials, login and recovery flows."""

from datetime import timedelta
from typing import Optional

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.application.services.token_service import RecoveryTokenService
from app.config import Settings
from app.core.dates import utcnow
from app.core.exceptions import NotFoundError, ServiceError, UnauthorizedError, ValidationError
from app.core.localization import localize
from app.domain.enums import ResourceStatus, UserRole
from app.domain.lifecycle import is_active
from app.domain.models.company import Company
from app.domain.models.user import User
from app.domain.schemas.auth import (
    CompanyPublic,
    LoginResponse,
    RegisterRequest,
    SessionCredential,
    UserPublic,
)
from app.infrastructure.notification_gateway import NotificationGateway
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str, pepper: str = "") -> str:
    return pwd_context.hash(password + pepper)


def verify_password(plain_password: str, hashed_password: Optional[str], pepper: str = "") -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password + pepper, hashed_password)


class SessionIssuer:
    """Mints and verifies signed session credentials."""

    def __init__(self, settings: Settings):
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expiration_minutes = settings.JWT_EXPIRATION_MINUTES

    def issue(self, user: User) -> SessionCredential:
        claims = {"id": user.id, "role": user.role}
        if user.role == UserRole.CLIENT.value:
            claims["company_id"] = user.company_id
        claims["exp"] = utcnow() + timedelta(minutes=self.expiration_minutes)
        return SessionCredential(
            access_token=jwt.encode(claims, self.secret_key, algorithm=self.algorithm),
            expires_in=self.expiration_minutes * 60,
        )

    def decode(self, token: str) -> Optional[dict]:
        """Claims of a well-signed, unexpired credential; None otherwise."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if not payload.get("id") or payload.get("role") not in {role.value for role in UserRole}:
            return None
        return payload


def login(
    users: SQLAlchemyRepository[User],
    companies: SQLAlchemyRepository[Company],
    issuer: SessionIssuer,
    phone: str,
    password: str,
    pepper: str = "",
) -> LoginResponse:
    user = users.read({"phone": phone})
    if user is None:
        logger.info("Login rejected", reason="unknown_phone")
        raise UnauthorizedError(message=localize("error.generic.notFound", resource=localize("resources.user")))

    # Pending, suspended and excluded accounts all get the same answer.
    if user.status != ResourceStatus.AVAILABLE.value or user.excluded:
        logger.info("Login rejected", user_id=user.id, reason="unavailable")
        raise UnauthorizedError()

    if not verify_password(password, user.password_hash, pepper):
        logger.info("Login rejected", user_id=user.id, reason="password")
        raise UnauthorizedError(message=localize("error.generic.invalid", field="password"))

    company = None
    if user.role == UserRole.CLIENT.value:
        company = companies.read({"id": user.company_id})
        if company is None or not is_active(company.status, company.excluded):
            logger.info("Login rejected", user_id=user.id, reason="company_unavailable")
            raise UnauthorizedError()

    credential = issuer.issue(user)
    logger.info("Login succeeded", user_id=user.id, role=user.role)
    return LoginResponse(
        **credential.model_dump(),
        user=UserPublic.model_validate(user),
        company=CompanyPublic.model_validate(company) if company is not None else None,
    )


async def deliver_token(gateway: NotificationGateway, phone: str, token: str, minutes: int) -> None:
    result = await gateway.send_notification(phone, localize("sms.sendToken", token=token, minutes=minutes))
    error = result.get("error")
    if error is None:
        return
    if isinstance(error, ServiceError):
        raise error
    raise ServiceError(
        message=localize("error.services.sms.message"),
        action=localize("error.services.sms.action"),
        cause=error,
    )


def _check_token_format(tokens: RecoveryTokenService, token: str) -> None:
    if not tokens.validate_token_format(token):
        raise ValidationError(message=localize("error.generic.invalidFormat", field="token"))


async def register(
    users: SQLAlchemyRepository[User],
    tokens: RecoveryTokenService,
    gateway: NotificationGateway,
    data: RegisterRequest,
    pepper: str = "",
) -> User:
    """Create a pending consumer and send it a validation token."""
    if users.read({"phone": data.phone}) is not None:
        raise ValidationError(message=localize("error.generic.alreadyInUse", field="phone", value=data.phone))

    user = users.create(
        {
            "name": data.name,
            "phone": data.phone,
            "password_hash": hash_password(data.password, pepper),
            "role": UserRole.CONSUMER,
            "status": ResourceStatus.PENDING,
            "excluded": False,
        }
    )
    token, _ = tokens.issue(users, user)
    await deliver_token(gateway, user.phone, token, tokens.window_minutes)
    logger.info("Consumer registered", user_id=user.id)
    return user


def validate_register_token(
    users: SQLAlchemyRepository[User],
    tokens: RecoveryTokenService,
    phone: str,
    token: str,
) -> User:
    _check_token_format(tokens, token)
    user = tokens.consume(users, phone, token, filters={"status": ResourceStatus.PENDING})
    return users.update({"id": user.id}, {"status": ResourceStatus.AVAILABLE})


async def forgot_password(
    users: SQLAlchemyRepository[User],
    tokens: RecoveryTokenService,
    gateway: NotificationGateway,
    phone: str,
) -> None:
    user = users.read({"phone": phone, "status": ResourceStatus.AVAILABLE, "excluded": False})
    if user is None:
        resource = localize("resources.user")
        raise NotFoundError(
            message=localize("error.generic.notFound", resource=resource),
            action=localize("error.generic.notFoundActionMessage", resource=resource),
        )
    token, _ = tokens.issue(users, user)
    await deliver_token(gateway, user.phone, token, tokens.window_minutes)


def validate_reset_token(
    users: SQLAlchemyRepository[User],
    tokens: RecoveryTokenService,
    phone: str,
    token: str,
) -> User:
    _check_token_format(tokens, token)
    return tokens.consume(users, phone, token, filters={"status": ResourceStatus.AVAILABLE})


def reset_password(
    users: SQLAlchemyRepository[User],
    tokens: RecoveryTokenService,
    phone: str,
    token: str,
    password: str,
    pepper: str = "",
) -> User:
    """Consume the token and store the new password in a single commit.

    A failed password write rolls the token clear back with it, so the
    token stays usable.
    """
    _check_token_format(tokens, token)
    password_hash = hash_password(password, pepper)
    user = tokens.consume(users, phone, token, filters={"status": ResourceStatus.AVAILABLE}, commit=False)
    updated = users.update({"id": user.id}, {"password_hash": password_hash})
    logger.info("Password reset", user_id=user.id)
    return updated
