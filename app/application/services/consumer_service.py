"""Consumer-facing operations: wallet, company cards and own profile."""

from typing import Any, Dict, List

import structlog
from sqlalchemy import func

from app.application.services.auth_service import hash_password
from app.application.services.company_service import ensure_phone_available
from app.core.exceptions import NotFoundError
from app.core.localization import localize
from app.domain.enums import CreditStatus, ResourceStatus
from app.domain.lifecycle import Lifecycle, is_active, lifecycle_fields
from app.domain.models.card import Card
from app.domain.models.company import Company
from app.domain.models.credit import Credit
from app.domain.models.user import User
from app.domain.schemas.user import ProfileUpdate
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)


def wallet_companies(credits: SQLAlchemyRepository[Credit], consumer_id: str) -> List[Dict[str, Any]]:
    """Companies where the consumer holds available credits."""
    return credits.aggregate(
        [
            lambda stmt: stmt.with_only_columns(
                Company.id.label("id"),
                Company.name.label("name"),
                Company.logo.label("logo"),
                Company.segment_id.label("segment_id"),
                func.count(Credit.id).label("credits"),
            ),
            lambda stmt: stmt.join_from(Credit, Company, Company.id == Credit.company_id),
            lambda stmt: stmt.where(
                Credit.user_id == consumer_id,
                Credit.status == CreditStatus.AVAILABLE.value,
                Credit.excluded.is_(False),
                Company.excluded.is_(False),
            ),
            lambda stmt: stmt.group_by(Company.id, Company.name, Company.logo, Company.segment_id),
            lambda stmt: stmt.order_by(Company.name.asc()),
        ]
    )


def company_cards(
    companies: SQLAlchemyRepository[Company],
    cards: SQLAlchemyRepository[Card],
    company_id: str,
) -> List[Card]:
    company = companies.read({"id": company_id})
    if company is None or not is_active(company.status, company.excluded):
        resource = localize("resources.company")
        raise NotFoundError(
            message=localize("error.generic.notFound", resource=resource),
            action=localize("error.generic.notFoundActionMessage", resource=resource),
        )
    return cards.list(
        {"company_id": company_id, "status": ResourceStatus.AVAILABLE, "excluded": False},
        sort={"title": 1},
    )


def get_profile(users: SQLAlchemyRepository[User], user_id: str) -> User:
    return users.read({"id": user_id})


def update_profile(users: SQLAlchemyRepository[User], user_id: str, data: ProfileUpdate, pepper: str = "") -> User:
    values = data.model_dump(exclude_none=True, exclude={"password"})
    if "phone" in values:
        ensure_phone_available(users, values["phone"], user_id)
    if data.password is not None:
        values["password_hash"] = hash_password(data.password, pepper)
    return users.update({"id": user_id}, values)


def cancel_account(users: SQLAlchemyRepository[User], user_id: str) -> User:
    user = users.update({"id": user_id}, lifecycle_fields(Lifecycle.EXCLUDED))
    logger.info("Account cancelled", user_id=user_id)
    return user
