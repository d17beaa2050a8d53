"""User API routes: consumer wallet, card requests and own profile."""

from fastapi import APIRouter, Depends, status

from app.application.services import consumer_service, credit_service
from app.config import Settings, get_settings
from app.core.localization import localize
from app.domain.enums import UserRole
from app.domain.schemas.auth import UserPublic
from app.domain.schemas.card import CardRead
from app.domain.schemas.common import MessageResponse
from app.domain.schemas.credit import CreditRead
from app.domain.schemas.user import ProfileUpdate
from app.interfaces.api.deps import Principal, require_roles
from app.interfaces.deps import (
    get_card_repository,
    get_company_repository,
    get_credit_repository,
    get_user_repository,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])

consumer_only = require_roles(UserRole.CONSUMER)


@router.get("/cards")
def wallet(principal: Principal = Depends(consumer_only), credits=Depends(get_credit_repository)):
    return consumer_service.wallet_companies(credits, principal.id)


@router.get("/cards/companies/{company_id}/list", response_model=list[CardRead])
def company_cards(
    company_id: str,
    principal: Principal = Depends(consumer_only),
    companies=Depends(get_company_repository),
    cards=Depends(get_card_repository),
):
    return [CardRead.model_validate(card) for card in consumer_service.company_cards(companies, cards, company_id)]


@router.post("/cards/{card_id}/request", status_code=status.HTTP_201_CREATED)
def request_card(
    card_id: str,
    principal: Principal = Depends(consumer_only),
    cards=Depends(get_card_repository),
    companies=Depends(get_company_repository),
    credits=Depends(get_credit_repository),
):
    credit = credit_service.request_credit(cards, companies, credits, principal.id, card_id)
    return {
        "message": localize("users.cards.request.success"),
        "credit": CreditRead.model_validate(credit),
    }


@router.get("/profile", response_model=UserPublic)
def get_profile(principal: Principal = Depends(consumer_only), users=Depends(get_user_repository)):
    return UserPublic.model_validate(consumer_service.get_profile(users, principal.id))


@router.patch("/profile")
def update_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(consumer_only),
    users=Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
):
    user = consumer_service.update_profile(users, principal.id, body, settings.PASSWORD_PEPPER)
    return {
        "message": localize("users.profile.update.success"),
        "user": UserPublic.model_validate(user),
    }


@router.delete("/profile", response_model=MessageResponse)
def cancel_account(
    principal: Principal = Depends(require_roles(UserRole.CONSUMER, UserRole.CLIENT)),
    users=Depends(get_user_repository),
):
    consumer_service.cancel_account(users, principal.id)
    return {"message": localize("users.profile.cancel.success")}
