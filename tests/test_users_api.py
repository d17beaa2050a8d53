from app.application.services.auth_service import verify_password
from app.domain.models.credit import Credit

BASE = "/api/v1/users"


def test_wallet_lists_companies_with_available_credits(client, factory, auth_headers):
    consumer = factory.user()
    bakery = factory.company(name="Padaria")
    cafe = factory.company(name="Cafeteria")
    closed = factory.company(name="Fechada")
    factory.credit(factory.card(bakery), consumer)
    factory.credit(factory.card(bakery), consumer)
    factory.credit(factory.card(cafe), consumer)
    factory.credit(factory.card(closed), consumer, status="used")

    response = client.get(f"{BASE}/cards", headers=auth_headers(consumer))

    assert response.status_code == 200
    assert [(row["name"], row["credits"]) for row in response.json()] == [("Cafeteria", 1), ("Padaria", 2)]


def test_company_cards_lists_only_available_cards(client, factory, auth_headers):
    consumer = factory.user()
    company = factory.company()
    factory.card(company, title="Café")
    factory.card(company, title="Antigo", status="unavailable", excluded=True)

    response = client.get(f"{BASE}/cards/companies/{company.id}/list", headers=auth_headers(consumer))

    assert response.status_code == 200
    assert [card["title"] for card in response.json()] == ["Café"]


def test_company_cards_of_suspended_company_is_not_found(client, factory, auth_headers):
    consumer = factory.user()
    company = factory.company(status="unavailable")

    response = client.get(f"{BASE}/cards/companies/{company.id}/list", headers=auth_headers(consumer))

    assert response.status_code == 404


def test_request_card_creates_pending_credit(client, factory, auth_headers, db_session):
    consumer = factory.user()
    card = factory.card(factory.company())

    response = client.post(f"{BASE}/cards/{card.id}/request", headers=auth_headers(consumer))

    assert response.status_code == 201
    credit = db_session.query(Credit).one()
    assert credit.status == "pending"
    assert credit.user_id == consumer.id
    assert credit.company_id == card.company_id
    assert credit.requested_at is not None


def test_request_unavailable_card_is_not_found(client, factory, auth_headers):
    consumer = factory.user()
    card = factory.card(factory.company(), status="unavailable")

    assert client.post(f"{BASE}/cards/{card.id}/request", headers=auth_headers(consumer)).status_code == 404


def test_clients_cannot_use_consumer_routes(client, factory, auth_headers):
    user, _ = factory.client()

    assert client.get(f"{BASE}/cards", headers=auth_headers(user)).status_code == 403


def test_update_profile(client, factory, auth_headers, db_session):
    consumer = factory.user(name="Ana", password="old")
    taken = factory.user()
    headers = auth_headers(consumer)

    response = client.patch(f"{BASE}/profile", json={"name": "Ana Paula", "password": "newpass"}, headers=headers)
    clash = client.patch(f"{BASE}/profile", json={"phone": taken.phone}, headers=headers)

    assert response.status_code == 200
    assert response.json()["user"]["name"] == "Ana Paula"
    db_session.refresh(consumer)
    assert verify_password("newpass", consumer.password_hash)
    assert clash.status_code == 400


def test_cancel_account_blocks_further_requests(client, factory, auth_headers, db_session):
    consumer = factory.user()
    headers = auth_headers(consumer)

    response = client.delete(f"{BASE}/profile", headers=headers)

    assert response.status_code == 200
    db_session.refresh(consumer)
    assert (consumer.status, consumer.excluded) == ("unavailable", True)
    assert client.get(f"{BASE}/profile", headers=headers).status_code == 401


def test_client_can_cancel_own_account(client, factory, auth_headers):
    user, _ = factory.client()

    assert client.delete(f"{BASE}/profile", headers=auth_headers(user)).status_code == 200


def test_segments_are_public(client, factory):
    factory.segment(name="Restaurantes")
    factory.segment(name="Academias")
    factory.segment(name="Antigo", status="unavailable")

    response = client.get("/api/v1/segments")

    assert [segment["name"] for segment in response.json()] == ["Academias", "Restaurantes"]
