"""
API Dependencies.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.application.services.auth_service import SessionIssuer
from app.application.services.token_service import RecoveryTokenService
from app.config import Settings, get_settings
from app.domain.models.card import Card
from app.domain.models.company import Company
from app.domain.models.credit import Credit
from app.domain.models.known_location import KnownLocation
from app.domain.models.segment import Segment
from app.domain.models.user import User
from app.infrastructure.database import get_db
from app.infrastructure.geocoding import Geocoder
from app.infrastructure.notification_gateway import NotificationGateway
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository


def get_user_repository(db: Session = Depends(get_db)) -> SQLAlchemyRepository[User]:
    return SQLAlchemyRepository(db, User)


def get_company_repository(db: Session = Depends(get_db)) -> SQLAlchemyRepository[Company]:
    return SQLAlchemyRepository(db, Company)


def get_card_repository(db: Session = Depends(get_db)) -> SQLAlchemyRepository[Card]:
    return SQLAlchemyRepository(db, Card)


def get_credit_repository(db: Session = Depends(get_db)) -> SQLAlchemyRepository[Credit]:
    return SQLAlchemyRepository(db, Credit)


def get_segment_repository(db: Session = Depends(get_db)) -> SQLAlchemyRepository[Segment]:
    return SQLAlchemyRepository(db, Segment)


def get_session_issuer(settings: Settings = Depends(get_settings)) -> SessionIssuer:
    return SessionIssuer(settings)


def get_token_service(settings: Settings = Depends(get_settings)) -> RecoveryTokenService:
    return RecoveryTokenService(settings)


def get_notification_gateway(settings: Settings = Depends(get_settings)) -> NotificationGateway:
    return NotificationGateway(settings)


def get_geocoder(settings: Settings = Depends(get_settings), db: Session = Depends(get_db)) -> Geocoder:
    """Geocoder backed by the known-location cache."""
    return Geocoder(settings, SQLAlchemyRepository(db, KnownLocation))
