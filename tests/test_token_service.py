from datetime import timedelta

import pytest

from app.application.services.auth_service import reset_password, verify_password
from app.application.services.token_service import RecoveryTokenService
from app.config import Settings
from app.core.dates import utcnow
from app.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from app.core.localization import localize
from app.domain.models.user import User
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


@pytest.fixture
def tokens(settings):
    return RecoveryTokenService(settings)


@pytest.fixture
def users(db_session):
    return SQLAlchemyRepository(db_session, User)


def test_generated_tokens_follow_configured_format():
    service = RecoveryTokenService(Settings(RECOVERY_TOKEN_LENGTH=7))

    for _ in range(20):
        token = service.generate_token()
        assert len(token) == 7
        assert token.isdigit()
        assert service.validate_token_format(token)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("12345", True),
        ("00000", True),
        ("1234", False),
        ("123456", False),
        ("12a45", False),
        (" 1234", False),
        (12345, False),
        (None, False),
    ],
)
def test_validate_token_format(tokens, value, expected):
    assert tokens.validate_token_format(value) is expected


def test_expiry_is_monotonic(tokens):
    issued_at = utcnow()
    expires_at = tokens.expiration(issued_at)

    assert expires_at - issued_at == timedelta(minutes=10)
    assert not tokens.is_expired(expires_at, now=issued_at)
    assert not tokens.is_expired(expires_at, now=expires_at - timedelta(seconds=1))
    assert tokens.is_expired(expires_at, now=expires_at)
    assert tokens.is_expired(expires_at, now=expires_at + timedelta(hours=2))
    assert tokens.is_expired(None)


def test_issue_persists_token_pair(tokens, users, factory):
    user = factory.user()

    token, expires_at = tokens.issue(users, user)

    stored = users.read({"id": user.id})
    assert stored.validation_token == token
    assert tokens.validate_token_format(token)
    assert stored.validation_token_expires_at is not None


def test_consume_is_single_use(tokens, users, factory):
    user = factory.user()
    token, _ = tokens.issue(users, user)

    consumed = tokens.consume(users, user.phone, token)
    assert consumed.validation_token is None
    assert consumed.validation_token_expires_at is None

    with pytest.raises(UnauthorizedError) as exc:
        tokens.consume(users, user.phone, token)
    assert exc.value.message == localize("error.generic.invalid", field="token")


def test_consume_rejects_mismatch_and_keeps_token(tokens, users, factory):
    user = factory.user()
    token, _ = tokens.issue(users, user)
    wrong = "0" * 5 if token != "00000" else "11111"

    with pytest.raises(UnauthorizedError):
        tokens.consume(users, user.phone, wrong)

    assert users.read({"id": user.id}).validation_token == token


def test_consume_rejects_expired_token(tokens, users, factory, db_session):
    user = factory.user()
    user.validation_token = "12345"
    user.validation_token_expires_at = utcnow() - timedelta(hours=2)
    db_session.commit()

    with pytest.raises(UnauthorizedError) as exc:
        tokens.consume(users, user.phone, "12345")

    assert exc.value.message == localize("error.auth.token.expired")


def test_consume_unknown_phone_is_not_found(tokens, users):
    with pytest.raises(NotFoundError):
        tokens.consume(users, "5541000000000", "12345")


class RejectingPasswordWrites(SQLAlchemyRepository):
    """Fails any update that writes a password hash."""

    def update(self, filters=None, data=None, **kwargs):
        if data and "password_hash" in data:
            data = {**data, "no_such_column": True}
        return super().update(filters, data, **kwargs)


def test_reset_password_clears_token_and_stores_password(tokens, users, factory):
    user = factory.user(password="old")
    token, _ = tokens.issue(users, user)

    updated = reset_password(users, tokens, user.phone, token, "new")

    assert updated.validation_token is None
    assert verify_password("new", updated.password_hash)


def test_failed_password_write_keeps_token(tokens, factory, db_session):
    users = RejectingPasswordWrites(db_session, User)
    user = factory.user(password="old")
    token, _ = tokens.issue(users, user)

    with pytest.raises(ValidationError):
        reset_password(users, tokens, user.phone, token, "new")

    db_session.refresh(user)
    assert user.validation_token == token
    assert verify_password("old", user.password_hash)
