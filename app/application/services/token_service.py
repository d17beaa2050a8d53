"""Recovery tokens: short numeric codes delivered by SMS."""

import hmac
import re
import secrets
from datetime import datetime
from typing import Optional, Tuple

import structlog

from app.config import Settings
from app.core.dates import add_time, as_utc, utcnow
from app.core.exceptions import NotFoundError, UnauthorizedError
from app.core.localization import localize
from app.domain.models.user import User
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)

TOKEN_ALPHABET = "0123456789"


class RecoveryTokenService:
    """Issues and consumes single-use recovery tokens stored on the user row."""

    def __init__(self, settings: Settings):
        self.length = settings.RECOVERY_TOKEN_LENGTH
        self.window_minutes = settings.RECOVERY_TOKEN_EXPIRATION_MINUTES
        self._pattern = re.compile(rf"^[{TOKEN_ALPHABET}]{{{self.length}}}$")

    def generate_token(self) -> str:
        return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(self.length))

    def validate_token_format(self, token) -> bool:
        return isinstance(token, str) and bool(self._pattern.match(token))

    def expiration(self, now: Optional[datetime] = None) -> datetime:
        return add_time(now or utcnow(), self.window_minutes, "minutes")

    @staticmethod
    def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
        if expires_at is None:
            return True
        return (now or utcnow()) >= as_utc(expires_at)

    def issue(self, users: SQLAlchemyRepository, user: User) -> Tuple[str, datetime]:
        """Assign a fresh token and expiry to `user` and persist both."""
        token = self.generate_token()
        expires_at = self.expiration()
        users.update(
            {"id": user.id},
            {"validation_token": token, "validation_token_expires_at": expires_at},
        )
        logger.info("Recovery token issued", user_id=user.id, expires_at=expires_at.isoformat())
        return token, expires_at

    def consume(
        self,
        users: SQLAlchemyRepository,
        phone: str,
        token: str,
        filters: Optional[dict] = None,
        commit: bool = True,
    ) -> User:
        """Check `token` against the user found by `phone` and clear it.

        Raises NotFoundError when no user matches, UnauthorizedError when the
        token does not match or has expired. On success the token pair is
        cleared, so a token can only ever be consumed once. With
        `commit=False` the clear is only flushed and the caller commits.
        """
        user = users.read({"phone": phone, "excluded": False, **(filters or {})})
        if user is None:
            resource = localize("resources.user")
            raise NotFoundError(
                message=localize("error.generic.notFound", resource=resource),
                action=localize("error.generic.notFoundActionMessage", resource=resource),
            )

        stored = user.validation_token
        if not stored or not hmac.compare_digest(stored, token):
            logger.info("Recovery token rejected", user_id=user.id, reason="mismatch")
            raise UnauthorizedError(message=localize("error.generic.invalid", field="token"))

        if self.is_expired(user.validation_token_expires_at):
            logger.info("Recovery token rejected", user_id=user.id, reason="expired")
            raise UnauthorizedError(
                message=localize("error.auth.token.expired"),
                action=localize("error.auth.token.expiredAction"),
            )

        consumed = users.update(
            {"id": user.id, "validation_token": stored},
            {"validation_token": None, "validation_token_expires_at": None},
            commit=commit,
        )
        if consumed is None:
            # Cleared by a concurrent request between the check and the update.
            raise UnauthorizedError(message=localize("error.generic.invalid", field="token"))
        return consumed
