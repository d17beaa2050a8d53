from app.core.localization import localize
from app.core.logging import mask_secrets


def test_localize_interpolates_params():
    assert localize("error.generic.required", field="phone") == 'O campo "phone" é obrigatório.'


def test_localize_unknown_key_returns_key():
    assert localize("error.nothing.here") == "error.nothing.here"
    assert localize("error.generic") == "error.generic"


def test_mask_secrets_hides_credentials():
    event = mask_secrets(None, "info", {"event": "Login", "password": "pw1", "token": "12345", "user_id": "u1"})

    assert event == {"event": "Login", "password": "***", "token": "***", "user_id": "u1"}


def test_responses_carry_request_id_and_envelope(client):
    response = client.get("/api/v1/nowhere", headers={"X-Request-ID": "f3b1c6a2-5b9e-4a47-9d1c-8f1f2b7e0c11"})

    assert response.status_code == 404
    assert response.headers["X-Request-ID"] == "f3b1c6a2-5b9e-4a47-9d1c-8f1f2b7e0c11"
    assert set(response.json()) == {"name", "message", "action", "status_code"}


def test_health_is_public(client):
    assert client.get("/health").json() == {"status": "healthy"}
