"""Admin API routes: company onboarding and lifecycle management."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.application.services import admin_service
from app.config import Settings, get_settings
from app.core.localization import localize
from app.domain.enums import UserRole
from app.domain.schemas.auth import CompanyPublic, UserPublic
from app.domain.schemas.company import CompanyCreate, LifecycleUpdate
from app.infrastructure.database import get_db
from app.infrastructure.geocoding import Geocoder
from app.interfaces.api.deps import require_roles
from app.interfaces.deps import get_company_repository, get_geocoder, get_user_repository

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(require_roles(UserRole.ADMIN))],
)


@router.post("/companies", status_code=status.HTTP_201_CREATED)
def create_company(
    body: CompanyCreate,
    db: Session = Depends(get_db),
    companies=Depends(get_company_repository),
    users=Depends(get_user_repository),
    geocoder: Geocoder = Depends(get_geocoder),
    settings: Settings = Depends(get_settings),
):
    result = admin_service.create_company(db, companies, users, geocoder, body, settings.PASSWORD_PEPPER)
    return {
        "company": CompanyPublic.model_validate(result["company"]),
        "user": UserPublic.model_validate(result["user"]),
    }


@router.patch("/companies/{company_id}/lifecycle")
def set_company_lifecycle(company_id: str, body: LifecycleUpdate, companies=Depends(get_company_repository)):
    company = admin_service.set_company_lifecycle(companies, company_id, body.state)
    return {
        "message": localize("admin.lifecycle.success"),
        "id": company.id,
        "status": company.status,
        "excluded": company.excluded,
    }


@router.patch("/users/{user_id}/lifecycle")
def set_user_lifecycle(user_id: str, body: LifecycleUpdate, users=Depends(get_user_repository)):
    user = admin_service.set_user_lifecycle(users, user_id, body.state)
    return {
        "message": localize("admin.lifecycle.success"),
        "id": user.id,
        "status": user.status,
        "excluded": user.excluded,
    }
