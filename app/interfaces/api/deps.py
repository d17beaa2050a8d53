"""FastAPI dependencies: auth middleware, resource access guard and role gate."""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.application.services.auth_service import SessionIssuer
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.localization import localize
from app.domain.enums import UserRole
from app.domain.lifecycle import is_active
from app.domain.models.company import Company
from app.domain.models.user import User
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository
from app.interfaces.deps import get_company_repository, get_session_issuer, get_user_repository

logger = structlog.get_logger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Identity attached to a request once its session credential checks out."""

    id: str
    role: UserRole
    company_id: Optional[str] = None


def _invalid_token() -> UnauthorizedError:
    return UnauthorizedError(message=localize("error.generic.invalid", field="token"))


def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> Principal:
    """Verify the bearer credential's signature and expiry. No store lookup."""
    if credentials is None:
        raise UnauthorizedError(
            message=localize("error.generic.notFound", resource="Token"),
            action=localize("error.UnauthorizedError.tokenNotFound"),
        )

    claims = issuer.decode(credentials.credentials)
    if claims is None:
        raise _invalid_token()

    return Principal(id=claims["id"], role=UserRole(claims["role"]), company_id=claims.get("company_id"))


def require_active_principal(
    principal: Principal = Depends(get_principal),
    users: SQLAlchemyRepository[User] = Depends(get_user_repository),
    companies: SQLAlchemyRepository[Company] = Depends(get_company_repository),
) -> Principal:
    """Re-check on every request that the backing user (and company) may still act."""
    user = users.read({"id": principal.id})
    if user is None or not is_active(user.status, user.excluded) or user.role != principal.role.value:
        logger.info("Access guard rejected user", user_id=principal.id)
        raise _invalid_token()

    if principal.role == UserRole.CLIENT:
        company = companies.read({"id": principal.company_id}) if principal.company_id else None
        if company is None or company.id != user.company_id or not is_active(company.status, company.excluded):
            logger.info("Access guard rejected company", user_id=principal.id, company_id=principal.company_id)
            raise _invalid_token()

    return principal


def require_roles(*roles: UserRole):
    """Build a dependency that lets through only the listed roles."""
    allowed = frozenset(UserRole(role) for role in roles)

    def role_gate(principal: Principal = Depends(require_active_principal)) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenError()
        return principal

    return role_gate


def require_guest(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> None:
    """Reject requests that already carry a valid session credential."""
    if credentials is not None and issuer.decode(credentials.credentials) is not None:
        raise ForbiddenError(message=localize("error.auth.guest"))
