from datetime import timedelta

from jose import jwt

from app.core.dates import utcnow
from app.core.localization import localize

PROFILE = "/api/v1/users/profile"
COMPANY_PROFILE = "/api/v1/companies/profile"


def test_missing_credential(client):
    response = client.get(PROFILE)

    assert response.status_code == 401
    body = response.json()
    assert body == {
        "name": "UnauthorizedError",
        "message": localize("error.generic.notFound", resource="Token"),
        "action": localize("error.UnauthorizedError.tokenNotFound"),
        "status_code": 401,
    }


def test_garbage_credential(client):
    response = client.get(PROFILE, headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["message"] == localize("error.generic.invalid", field="token")


def test_credential_signed_with_another_key(client, factory):
    user = factory.user()
    token = jwt.encode({"id": user.id, "role": "consumer"}, "other-key", algorithm="HS256")

    response = client.get(PROFILE, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_credential(client, factory, settings):
    user = factory.user()
    token = jwt.encode(
        {"id": user.id, "role": "consumer", "exp": utcnow() - timedelta(minutes=1)},
        settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )

    response = client.get(PROFILE, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == localize("error.generic.invalid", field="token")


def test_valid_credential_passes(client, factory, auth_headers):
    user = factory.user(name="Maria")

    response = client.get(PROFILE, headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["name"] == "Maria"


def test_guard_rejects_user_excluded_after_login(client, factory, auth_headers, db_session):
    user = factory.user()
    headers = auth_headers(user)
    assert client.get(PROFILE, headers=headers).status_code == 200

    user.status = "unavailable"
    user.excluded = True
    db_session.commit()

    response = client.get(PROFILE, headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == localize("error.generic.invalid", field="token")


def test_guard_rejects_suspended_user(client, factory, auth_headers, db_session):
    user = factory.user()
    headers = auth_headers(user)

    user.status = "unavailable"
    db_session.commit()

    assert client.get(PROFILE, headers=headers).status_code == 401


def test_guard_rejects_deleted_user(client, factory, auth_headers, db_session):
    user = factory.user()
    headers = auth_headers(user)

    db_session.delete(user)
    db_session.commit()

    assert client.get(PROFILE, headers=headers).status_code == 401


def test_guard_rejects_client_of_deactivated_company(client, factory, auth_headers, db_session):
    user, company = factory.client()
    headers = auth_headers(user)
    assert client.get(COMPANY_PROFILE, headers=headers).status_code == 200

    company.status = "unavailable"
    db_session.commit()

    response = client.get(COMPANY_PROFILE, headers=headers)
    assert response.status_code == 401


def test_guard_rejects_client_of_excluded_company(client, factory, auth_headers, db_session):
    user, company = factory.client()
    headers = auth_headers(user)

    company.excluded = True
    company.status = "unavailable"
    db_session.commit()

    assert client.get(COMPANY_PROFILE, headers=headers).status_code == 401


def test_guard_rejects_demoted_role(client, factory, auth_headers, db_session):
    user = factory.user(role="admin")
    headers = auth_headers(user)

    user.role = "consumer"
    db_session.commit()

    assert client.patch(f"/api/v1/admin/users/{user.id}/lifecycle", json={"state": "active"}, headers=headers).status_code == 401


def test_role_gate_forbids_other_roles(client, factory, auth_headers):
    consumer = factory.user()

    response = client.get(COMPANY_PROFILE, headers=auth_headers(consumer))

    assert response.status_code == 403
    assert response.json() == {
        "name": "ForbiddenError",
        "message": localize("error.ForbiddenError.message"),
        "action": localize("error.ForbiddenError.action"),
        "status_code": 403,
    }


def test_admin_lifecycle_move_blocks_next_request(client, factory, auth_headers):
    admin = factory.user(role="admin")
    consumer = factory.user()
    consumer_headers = auth_headers(consumer)

    response = client.patch(
        f"/api/v1/admin/users/{consumer.id}/lifecycle", json={"state": "suspended"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "unavailable"
    assert response.json()["excluded"] is False

    assert client.get(PROFILE, headers=consumer_headers).status_code == 401

    reactivated = client.patch(
        f"/api/v1/admin/users/{consumer.id}/lifecycle", json={"state": "active"}, headers=auth_headers(admin)
    )
    assert reactivated.status_code == 200
    assert client.get(PROFILE, headers=consumer_headers).status_code == 200


def test_suspending_company_blocks_its_clients(client, factory, auth_headers):
    admin = factory.user(role="admin")
    user, company = factory.client()
    headers = auth_headers(user)

    response = client.patch(
        f"/api/v1/admin/companies/{company.id}/lifecycle", json={"state": "suspended"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert client.get(COMPANY_PROFILE, headers=headers).status_code == 401


def test_excluded_is_terminal(client, factory, auth_headers):
    admin = factory.user(role="admin")
    consumer = factory.user(status="unavailable", excluded=True)

    response = client.patch(
        f"/api/v1/admin/users/{consumer.id}/lifecycle", json={"state": "active"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json()["message"] == localize(
        "error.generic.lifecycleTerminal", resource=localize("resources.user")
    )


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nowhere")

    assert response.status_code == 404
    assert response.json()["name"] == "NotFoundError"


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
