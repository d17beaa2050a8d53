"""Company service: profile, consumers, cards and dashboard statistics."""

from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import case, func

from app.application.services.credit_service import get_owned_consumer
from app.core.dates import process_weekly_stats, utcnow
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.localization import localize
from app.domain.enums import CreditStatus, ResourceStatus
from app.domain.lifecycle import Lifecycle, lifecycle_fields
from app.domain.models.card import Card
from app.domain.models.company import Company
from app.domain.models.credit import Credit
from app.domain.models.user import User
from app.domain.schemas.card import CardCreate, CardUpdate
from app.domain.schemas.company import CompanyProfileUpdate
from app.domain.schemas.credit import ConsumerUpdate
from app.infrastructure.geocoding import Geocoder
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)

RECENT_CLIENTS_LIMIT = 5


def _not_found(resource_key: str) -> NotFoundError:
    resource = localize(resource_key)
    return NotFoundError(
        message=localize("error.generic.notFound", resource=resource),
        action=localize("error.generic.notFoundActionMessage", resource=resource),
    )


def ensure_phone_available(users: SQLAlchemyRepository[User], phone: str, owner_id: Optional[str] = None) -> None:
    holder = users.read({"phone": phone})
    if holder is not None and holder.id != owner_id:
        raise ValidationError(message=localize("error.generic.alreadyInUse", field="phone", value=phone))


# -- profile ---------------------------------------------------------------


def get_profile(companies: SQLAlchemyRepository[Company], company_id: str) -> Company:
    company = companies.read({"id": company_id, "excluded": False})
    if company is None:
        raise _not_found("resources.company")
    return company


def update_profile(
    companies: SQLAlchemyRepository[Company],
    geocoder: Geocoder,
    company_id: str,
    data: CompanyProfileUpdate,
) -> Company:
    values = data.model_dump(exclude_none=True, exclude={"address"})
    if data.address is not None:
        address = data.address.model_dump()
        coordinates = geocoder.geocode(address)
        values.update(address)
        values["latitude"] = coordinates["latitude"]
        values["longitude"] = coordinates["longitude"]

    company = companies.update({"id": company_id, "excluded": False}, values)
    if company is None:
        raise _not_found("resources.company")
    return company


# -- consumers -------------------------------------------------------------


def list_consumers(
    credits: SQLAlchemyRepository[Credit], company_id: str, skip: int = 0, limit: int = 50
) -> List[Dict[str, Any]]:
    """Consumers holding available credits of the company, with their credit count."""
    return credits.aggregate(
        [
            lambda stmt: stmt.with_only_columns(
                User.id.label("id"),
                User.name.label("name"),
                User.phone.label("phone"),
                func.count(Credit.id).label("credits"),
            ),
            lambda stmt: stmt.join_from(Credit, User, User.id == Credit.user_id),
            lambda stmt: stmt.where(
                Credit.company_id == company_id,
                Credit.status == CreditStatus.AVAILABLE.value,
                Credit.excluded.is_(False),
                User.excluded.is_(False),
            ),
            lambda stmt: stmt.group_by(User.id, User.name, User.phone),
            lambda stmt: stmt.order_by(User.name.asc()).offset(skip).limit(limit),
        ]
    )


def update_consumer(
    users: SQLAlchemyRepository[User],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
    data: ConsumerUpdate,
) -> User:
    get_owned_consumer(users, credits, company_id, consumer_id)
    values = data.model_dump(exclude_none=True)
    if "phone" in values:
        ensure_phone_available(users, values["phone"], consumer_id)
    return users.update({"id": consumer_id}, values)


def delete_consumer(
    users: SQLAlchemyRepository[User],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
) -> User:
    """Tombstone a consumer the company is related to through a credit."""
    get_owned_consumer(users, credits, company_id, consumer_id)
    consumer = users.update({"id": consumer_id}, lifecycle_fields(Lifecycle.EXCLUDED))
    logger.info("Consumer excluded", company_id=company_id, consumer_id=consumer_id)
    return consumer


# -- cards -----------------------------------------------------------------


def _card_stats(credits: SQLAlchemyRepository[Credit], company_id: str, card_ids: List[str]) -> Dict[str, dict]:
    if not card_ids:
        return {}
    rows = credits.aggregate(
        [
            lambda stmt: stmt.with_only_columns(
                Credit.card_id.label("card_id"),
                func.count(Credit.id).label("credits_count"),
                func.count(func.distinct(Credit.user_id)).label("consumers_count"),
                func.sum(case((Credit.status == CreditStatus.USED.value, 1), else_=0)).label("used_count"),
            ),
            lambda stmt: stmt.where(
                Credit.company_id == company_id,
                Credit.card_id.in_(card_ids),
                Credit.excluded.is_(False),
            ),
            lambda stmt: stmt.group_by(Credit.card_id),
        ]
    )
    return {
        row["card_id"]: {
            "credits_count": row["credits_count"],
            "consumers_count": row["consumers_count"],
            "used_count": row["used_count"] or 0,
        }
        for row in rows
    }


def _with_stats(card: Card, stats: Dict[str, dict]) -> Dict[str, Any]:
    return {
        "id": card.id,
        "company_id": card.company_id,
        "title": card.title,
        "credits_needed": card.credits_needed,
        "credit_expires_at": card.credit_expires_at,
        "status": card.status,
        "created_at": card.created_at,
        **stats.get(card.id, {}),
    }


def list_cards(
    cards: SQLAlchemyRepository[Card],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    skip: int = 0,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    found = cards.list({"company_id": company_id, "excluded": False}, sort={"created_at": -1}, skip=skip, limit=limit)
    stats = _card_stats(credits, company_id, [card.id for card in found])
    return [_with_stats(card, stats) for card in found]


def get_card(
    cards: SQLAlchemyRepository[Card],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    card_id: str,
) -> Dict[str, Any]:
    card = cards.read({"id": card_id, "company_id": company_id, "excluded": False})
    if card is None:
        raise _not_found("resources.card")
    return _with_stats(card, _card_stats(credits, company_id, [card.id]))


def _card_values(data) -> Dict[str, Any]:
    values = data.model_dump(exclude_none=True, exclude={"credit_expires_at"})
    if data.credit_expires_at is not None:
        values["credit_expires_ref_number"] = data.credit_expires_at.ref_number
        values["credit_expires_ref_type"] = data.credit_expires_at.ref_type
    return values


def create_card(cards: SQLAlchemyRepository[Card], company_id: str, data: CardCreate) -> Card:
    card = cards.create({**_card_values(data), "company_id": company_id, "status": ResourceStatus.AVAILABLE})
    logger.info("Card created", company_id=company_id, card_id=card.id)
    return card


def update_card(cards: SQLAlchemyRepository[Card], company_id: str, card_id: str, data: CardUpdate) -> Card:
    card = cards.update({"id": card_id, "company_id": company_id, "excluded": False}, _card_values(data))
    if card is None:
        raise _not_found("resources.card")
    return card


def delete_card(cards: SQLAlchemyRepository[Card], company_id: str, card_id: str) -> Card:
    card = cards.read({"id": card_id, "excluded": False})
    if card is None:
        raise _not_found("resources.card")
    if card.company_id != company_id:
        logger.info("Cross-company card deletion rejected", company_id=company_id, card_id=card_id)
        raise ForbiddenError()
    card = cards.update({"id": card_id}, lifecycle_fields(Lifecycle.EXCLUDED))
    logger.info("Card excluded", company_id=company_id, card_id=card_id)
    return card


# -- stats -----------------------------------------------------------------


def recent_clients(credits: SQLAlchemyRepository[Credit], company_id: str) -> List[Dict[str, Any]]:
    """Latest consumers that received credits from the company."""
    return credits.aggregate(
        [
            lambda stmt: stmt.with_only_columns(
                User.id.label("id"),
                User.name.label("name"),
                User.phone.label("phone"),
                func.max(Credit.created_at).label("last_credit_at"),
            ),
            lambda stmt: stmt.join_from(Credit, User, User.id == Credit.user_id),
            lambda stmt: stmt.where(Credit.company_id == company_id, Credit.excluded.is_(False)),
            lambda stmt: stmt.group_by(User.id, User.name, User.phone),
            lambda stmt: stmt.order_by(func.max(Credit.created_at).desc()).limit(RECENT_CLIENTS_LIMIT),
        ]
    )


def company_stats(credits: SQLAlchemyRepository[Credit], company_id: str, tz_name: str = "UTC") -> Dict[str, Any]:
    now = utcnow()
    since = now - timedelta(weeks=5)
    given = credits.list(
        {"company_id": company_id, "excluded": False, "created_at__gte": since},
        projection=["user_id", "status", "created_at"],
        limit=100000,
    )
    used = credits.list(
        {"company_id": company_id, "status": CreditStatus.USED, "updated_at__gte": since},
        projection=["user_id", "updated_at"],
        limit=100000,
    )
    return {
        "recent_clients": recent_clients(credits, company_id),
        "charts": {
            "new_clients": process_weekly_stats(given, unique_field="user_id", tz_name=tz_name, now=now),
            "credits_given": process_weekly_stats(given, tz_name=tz_name, now=now),
            "credits_used": process_weekly_stats(used, date_field="updated_at", tz_name=tz_name, now=now),
        },
    }

