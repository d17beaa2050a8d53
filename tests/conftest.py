import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SMS_DRY_MODE"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEFAULT_ADMIN_PHONE"] = ""
os.environ["DEFAULT_ADMIN_PASSWORD"] = ""

from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.application.services.auth_service import SessionIssuer, hash_password
from app.config import get_settings
from app.core.dates import utcnow
from app.domain.models.card import Card
from app.domain.models.company import Company
from app.domain.models.credit import Credit
from app.domain.models.known_location import KnownLocation
from app.domain.models.segment import Segment
from app.domain.models.user import User
from app.infrastructure.database import Base, get_db
from app.infrastructure.geocoding import Geocoder
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository
from app.interfaces.deps import get_geocoder, get_notification_gateway
from app.main import app

DEFAULT_PASSWORD = "pw1"


class FakeGateway:
    """Records outbound notifications instead of sending them."""

    def __init__(self):
        self.sent = []
        self.error = None

    async def send_notification(self, target, content):
        self.sent.append((target, content))
        return {"error": self.error}


class GoogleStub:
    """httpx transport answering like the Google Geocoding API."""

    def __init__(self, lat=-25.43, lng=-49.27, status="OK"):
        self.calls = 0
        self.lat = lat
        self.lng = lng
        self.status = status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.status != "OK":
            return httpx.Response(200, json={"status": self.status, "results": []})
        return httpx.Response(
            200,
            json={"status": "OK", "results": [{"geometry": {"location": {"lat": self.lat, "lng": self.lng}}}]},
        )


class Factory:
    """Builds rows directly in the test session."""

    def __init__(self, db):
        self.db = db
        self._phones = 0
        self._documents = 0

    def _next_phone(self):
        self._phones += 1
        return f"55419{self._phones:08d}"

    def _add(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, phone=None, password=DEFAULT_PASSWORD, role="consumer", status="available", excluded=False,
             company=None, name="Test User"):
        return self._add(
            User(
                name=name,
                phone=phone or self._next_phone(),
                password_hash=hash_password(password) if password else None,
                role=role,
                status=status,
                excluded=excluded,
                company_id=company.id if company is not None else None,
            )
        )

    def company(self, name="Padaria Central", status="available", excluded=False, document=None):
        self._documents += 1
        return self._add(
            Company(
                name=name,
                phone="5541999990000",
                document=document or f"{self._documents:014d}",
                zipcode="80010000",
                street="Rua XV de Novembro",
                number=100,
                neighborhood="Centro",
                city="Curitiba",
                state="PR",
                status=status,
                excluded=excluded,
            )
        )

    def client(self, company=None, **kwargs):
        company = company or self.company()
        return self.user(role="client", company=company, **kwargs), company

    def card(self, company, title="Café", credits_needed=10, ref_number=3, ref_type="month", status="available",
             excluded=False):
        return self._add(
            Card(
                company_id=company.id,
                title=title,
                credits_needed=credits_needed,
                credit_expires_ref_number=ref_number,
                credit_expires_ref_type=ref_type,
                status=status,
                excluded=excluded,
            )
        )

    def credit(self, card, user, status="available", excluded=False, created_at=None):
        credit = Credit(
            card_id=card.id,
            user_id=user.id,
            company_id=card.company_id,
            status=status,
            excluded=excluded,
            expires_at=utcnow() + timedelta(days=90),
        )
        if created_at is not None:
            credit.created_at = created_at
        return self._add(credit)

    def segment(self, name="Alimentação", status="available"):
        return self._add(Segment(name=name, status=status))


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    yield db
    db.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def factory(db_session):
    return Factory(db_session)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def google():
    return GoogleStub()


@pytest.fixture
def geocoder(settings, db_session, google):
    return Geocoder(settings, SQLAlchemyRepository(db_session, KnownLocation), transport=httpx.MockTransport(google))


@pytest.fixture
def client(db_session, gateway, geocoder):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_gateway] = lambda: gateway
    app.dependency_overrides[get_geocoder] = lambda: geocoder
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(settings):
    issuer = SessionIssuer(settings)

    def build(user):
        return {"Authorization": f"Bearer {issuer.issue(user).access_token}"}

    return build
