"""Administration: company onboarding and lifecycle moves."""

import structlog
from sqlalchemy.orm import Session

from app.application.services.auth_service import hash_password
from app.application.services.company_service import ensure_phone_available
from app.core.exceptions import AppError, InternalServerError, NotFoundError, ValidationError
from app.core.localization import localize
from app.domain.enums import ResourceStatus, UserRole
from app.domain.lifecycle import Lifecycle, LifecycleTransitionError, transition
from app.domain.models.company import Company
from app.domain.models.user import User
from app.domain.schemas.company import CompanyCreate
from app.infrastructure.geocoding import Geocoder
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)


def create_company(
    db: Session,
    companies: SQLAlchemyRepository[Company],
    users: SQLAlchemyRepository[User],
    geocoder: Geocoder,
    data: CompanyCreate,
    pepper: str = "",
) -> dict:
    """Create an active company, geocoded, together with its first client user."""
    if companies.read({"document": data.document}) is not None:
        raise ValidationError(message=localize("error.generic.alreadyExists", resource=localize("resources.company")))
    ensure_phone_available(users, data.user.phone)

    address = data.address.model_dump()
    coordinates = geocoder.geocode(address)

    try:
        company = companies.create(
            {
                **address,
                "name": data.name,
                "phone": data.phone,
                "document": data.document,
                "logo": data.logo,
                "segment_id": data.segment_id,
                "latitude": coordinates["latitude"],
                "longitude": coordinates["longitude"],
                "status": ResourceStatus.AVAILABLE,
                "excluded": False,
            },
            commit=False,
        )
        user = users.create(
            {
                "name": data.user.name,
                "phone": data.user.phone,
                "password_hash": hash_password(data.user.password, pepper),
                "role": UserRole.CLIENT,
                "company_id": company.id,
                "status": ResourceStatus.AVAILABLE,
                "excluded": False,
            },
            commit=False,
        )
        db.commit()
    except AppError as exc:
        db.rollback()
        raise InternalServerError(message=localize("error.dbHandler.create.message"), cause=exc) from exc

    logger.info("Company created", company_id=company.id, user_id=user.id, cached_location=coordinates["cached"])
    return {"company": company, "user": user}


def _move(repository: SQLAlchemyRepository, resource_key: str, entity_id: str, target: Lifecycle):
    entity = repository.read({"id": entity_id})
    resource = localize(resource_key)
    if entity is None:
        raise NotFoundError(
            message=localize("error.generic.notFound", resource=resource),
            action=localize("error.generic.notFoundActionMessage", resource=resource),
        )
    try:
        values = transition(entity.lifecycle, target)
    except LifecycleTransitionError as exc:
        if entity.lifecycle == Lifecycle.EXCLUDED:
            message = localize("error.generic.lifecycleTerminal", resource=resource)
        else:
            message = localize("error.generic.invalid", field="state")
        raise ValidationError(message=message, cause=exc) from exc

    updated = repository.update({"id": entity_id}, values)
    logger.info("Lifecycle changed", resource=repository.model_name, id=entity_id, state=target.value)
    return updated


def set_company_lifecycle(companies: SQLAlchemyRepository[Company], company_id: str, target: Lifecycle) -> Company:
    return _move(companies, "resources.company", company_id, target)


def set_user_lifecycle(users: SQLAlchemyRepository[User], user_id: str, target: Lifecycle) -> User:
    return _move(users, "resources.user", user_id, target)
