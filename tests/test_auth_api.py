from datetime import timedelta

from jose import jwt

from app.application.services.auth_service import verify_password
from app.core.dates import utcnow
from app.core.exceptions import ServiceError
from app.core.localization import localize

PHONE = "5541984012834"


def _set_token(db_session, user, token="12345", expires_at=None):
    user.validation_token = token
    user.validation_token_expires_at = expires_at or utcnow() + timedelta(minutes=10)
    db_session.commit()


def test_login_returns_session_credential(client, factory, settings):
    factory.user(phone=PHONE, password="pw1", name="Maria")

    response = client.post("/api/v1/auth/login", json={"phone": PHONE, "password": "pw1"})

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"tokenType", "accessToken", "expiresIn", "user", "company"}
    assert body["tokenType"] == "Bearer"
    assert body["expiresIn"] == settings.JWT_EXPIRATION_MINUTES * 60
    claims = jwt.decode(body["accessToken"], settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    assert claims["role"] == "consumer"
    assert "company_id" not in claims
    assert body["user"] == {"id": claims["id"], "name": "Maria", "role": "consumer", "phone": PHONE}
    assert body["company"] is None
    assert "password_hash" not in response.text


def test_login_accepts_local_phone_format(client, factory):
    factory.user(phone=PHONE, password="pw1")

    response = client.post("/api/v1/auth/login", json={"phone": "(41) 98401-2834", "password": "pw1"})

    assert response.status_code == 200


def test_login_of_client_carries_company(client, factory, settings):
    user, company = factory.client(password="pw1")

    response = client.post("/api/v1/auth/login", json={"phone": user.phone, "password": "pw1"})

    assert response.status_code == 200
    body = response.json()
    claims = jwt.decode(body["accessToken"], settings.SECRET_KEY, algorithms=["HS256"])
    assert claims["company_id"] == company.id
    assert body["company"]["document"] == company.document
    assert body["company"]["address"]["city"] == "Curitiba"
    assert "status" not in body["company"]


def test_login_failures_are_unauthorized(client, factory):
    factory.user(phone=PHONE, password="pw1")
    pending = factory.user(status="pending")
    excluded = factory.user(status="unavailable", excluded=True)

    wrong_password = client.post("/api/v1/auth/login", json={"phone": PHONE, "password": "nope"})
    unknown = client.post("/api/v1/auth/login", json={"phone": "5541000000001", "password": "pw1"})
    not_available = client.post("/api/v1/auth/login", json={"phone": pending.phone, "password": "pw1"})
    gone = client.post("/api/v1/auth/login", json={"phone": excluded.phone, "password": "pw1"})

    for response in (wrong_password, unknown, not_available, gone):
        assert response.status_code == 401
        assert response.json()["name"] == "UnauthorizedError"
    assert wrong_password.json()["message"] == localize("error.generic.invalid", field="password")
    assert not_available.json()["message"] == gone.json()["message"]


def test_login_of_client_with_suspended_company_is_unauthorized(client, factory):
    company = factory.company(status="unavailable")
    user, _ = factory.client(company=company, password="pw1")

    response = client.post("/api/v1/auth/login", json={"phone": user.phone, "password": "pw1"})

    assert response.status_code == 401


def test_login_rejects_malformed_body(client):
    response = client.post("/api/v1/auth/login", json={"phone": "123"})

    assert response.status_code == 400
    assert response.json()["name"] == "ValidationError"


def test_auth_routes_are_guest_only(client, factory, auth_headers):
    user = factory.user(phone=PHONE)

    response = client.post(
        "/api/v1/auth/login", json={"phone": PHONE, "password": "pw1"}, headers=auth_headers(user)
    )

    assert response.status_code == 403
    assert response.json()["message"] == localize("error.auth.guest")


def test_forgot_password_issues_token_and_notifies(client, factory, gateway, db_session):
    user = factory.user(phone=PHONE)

    response = client.post("/api/v1/auth/forgot-password", json={"phone": PHONE})

    assert response.status_code == 200
    db_session.refresh(user)
    assert user.validation_token is not None
    assert gateway.sent == [(PHONE, localize("sms.sendToken", token=user.validation_token, minutes=10))]
    assert user.validation_token not in response.text


def test_forgot_password_for_unknown_phone_is_not_found(client, gateway):
    response = client.post("/api/v1/auth/forgot-password", json={"phone": PHONE})

    assert response.status_code == 404
    assert gateway.sent == []


def test_forgot_password_surfaces_delivery_failure(client, factory, gateway):
    factory.user(phone=PHONE)
    gateway.error = ServiceError(message=localize("error.services.sms.message"))

    response = client.post("/api/v1/auth/forgot-password", json={"phone": PHONE})

    assert response.status_code == 503
    assert response.json()["name"] == "ServiceError"


def test_reset_password_with_valid_token(client, factory, db_session):
    user = factory.user(phone=PHONE, password="old")
    _set_token(db_session, user)

    response = client.post(
        "/api/v1/auth/reset-password", json={"phone": PHONE, "token": "12345", "password": "new"}
    )

    assert response.status_code == 200
    db_session.refresh(user)
    assert verify_password("new", user.password_hash)
    assert user.validation_token is None


def test_reset_password_with_expired_token(client, factory, db_session):
    user = factory.user(phone=PHONE, password="old")
    _set_token(db_session, user, expires_at=utcnow() - timedelta(hours=2))

    response = client.post(
        "/api/v1/auth/reset-password", json={"phone": PHONE, "token": "12345", "password": "new"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == localize("error.auth.token.expired")
    db_session.refresh(user)
    assert verify_password("old", user.password_hash)


def test_token_can_only_be_used_once(client, factory, db_session):
    user = factory.user(phone=PHONE, password="old")
    _set_token(db_session, user)

    validated = client.post("/api/v1/auth/validate-reset-token", json={"phone": PHONE, "token": "12345"})
    reset = client.post(
        "/api/v1/auth/reset-password", json={"phone": PHONE, "token": "12345", "password": "new"}
    )

    assert validated.status_code == 200
    assert reset.status_code == 401
    assert reset.json()["message"] == localize("error.generic.invalid", field="token")
    db_session.refresh(user)
    assert verify_password("old", user.password_hash)


def test_reset_password_with_wrong_token(client, factory, db_session):
    user = factory.user(phone=PHONE)
    _set_token(db_session, user)

    response = client.post(
        "/api/v1/auth/reset-password", json={"phone": PHONE, "token": "54321", "password": "new"}
    )

    assert response.status_code == 401


def test_malformed_token_is_a_validation_error(client, factory, db_session):
    user = factory.user(phone=PHONE)
    _set_token(db_session, user)

    response = client.post("/api/v1/auth/validate-reset-token", json={"phone": PHONE, "token": "12a4"})

    assert response.status_code == 400
    db_session.refresh(user)
    assert user.validation_token == "12345"


def test_register_then_validate(client, gateway, db_session):
    from app.domain.models.user import User

    response = client.post(
        "/api/v1/auth/register", json={"name": "Joana", "phone": PHONE, "password": "secret1"}
    )
    assert response.status_code == 201

    user = db_session.query(User).filter(User.phone == PHONE).one()
    assert user.status == "pending"
    assert user.role == "consumer"
    assert len(gateway.sent) == 1

    blocked = client.post("/api/v1/auth/login", json={"phone": PHONE, "password": "secret1"})
    assert blocked.status_code == 401

    validated = client.post(
        "/api/v1/auth/validate-register-token", json={"phone": PHONE, "token": user.validation_token}
    )
    assert validated.status_code == 200

    logged = client.post("/api/v1/auth/login", json={"phone": PHONE, "password": "secret1"})
    assert logged.status_code == 200


def test_register_with_used_phone(client, factory):
    factory.user(phone=PHONE)

    response = client.post(
        "/api/v1/auth/register", json={"name": "Joana", "phone": PHONE, "password": "secret1"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == localize("error.generic.alreadyInUse", field="phone", value=PHONE)
