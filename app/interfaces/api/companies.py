"""Company API routes: profile, consumers, cards, credits and stats (clients only)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.application.services import company_service, credit_service
from app.config import Settings, get_settings
from app.core.localization import localize
from app.domain.enums import UserRole
from app.domain.schemas.auth import CompanyPublic, UserPublic
from app.domain.schemas.card import CardCreate, CardRead, CardUpdate, CardWithStats
from app.domain.schemas.common import MessageResponse
from app.domain.schemas.company import CompanyProfileUpdate
from app.domain.schemas.credit import (
    ConsumerCreate,
    ConsumerCreditsAdd,
    ConsumerUpdate,
    CreditDecision,
    CreditRead,
)
from app.infrastructure.database import get_db
from app.infrastructure.geocoding import Geocoder
from app.interfaces.api.deps import Principal, require_roles
from app.interfaces.deps import (
    get_card_repository,
    get_company_repository,
    get_credit_repository,
    get_geocoder,
    get_user_repository,
)

router = APIRouter(prefix="/api/v1/companies", tags=["Companies"])

client_only = require_roles(UserRole.CLIENT)


def _page_limit(limit: Optional[int], settings: Settings) -> int:
    return limit or settings.PAGINATION_DEFAULT_LIMIT


# -- profile ---------------------------------------------------------------


@router.get("/profile", response_model=CompanyPublic)
def get_profile(principal: Principal = Depends(client_only), companies=Depends(get_company_repository)):
    return CompanyPublic.model_validate(company_service.get_profile(companies, principal.company_id))


@router.patch("/profile")
def update_profile(
    body: CompanyProfileUpdate,
    principal: Principal = Depends(client_only),
    companies=Depends(get_company_repository),
    geocoder: Geocoder = Depends(get_geocoder),
):
    company = company_service.update_profile(companies, geocoder, principal.company_id, body)
    return {
        "message": localize("companies.profile.update.success"),
        "company": CompanyPublic.model_validate(company),
    }


# -- consumers -------------------------------------------------------------


@router.get("/consumers")
def list_consumers(
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=200),
    principal: Principal = Depends(client_only),
    credits=Depends(get_credit_repository),
    settings: Settings = Depends(get_settings),
):
    return company_service.list_consumers(credits, principal.company_id, skip, _page_limit(limit, settings))


@router.post("/consumers", status_code=status.HTTP_201_CREATED)
def create_consumer(
    body: ConsumerCreate,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    users=Depends(get_user_repository),
    cards=Depends(get_card_repository),
    credits=Depends(get_credit_repository),
):
    result = credit_service.issue_to_new_consumer(db, users, cards, credits, principal.company_id, body)
    return {
        "message": localize("companies.consumers.create.success"),
        "consumer": UserPublic.model_validate(result["consumer"]),
        "credits": [CreditRead.model_validate(credit) for credit in result["credits"]],
    }


@router.get("/consumers/{consumer_id}")
def get_consumer(
    consumer_id: str,
    principal: Principal = Depends(client_only),
    users=Depends(get_user_repository),
    cards=Depends(get_card_repository),
    credits=Depends(get_credit_repository),
):
    consumer = credit_service.get_owned_consumer(users, credits, principal.company_id, consumer_id)
    grouped = credit_service.consumer_credits_by_card(cards, credits, principal.company_id, consumer_id)
    return {
        "consumer": UserPublic.model_validate(consumer),
        "cards": [
            {
                "card": CardRead.model_validate(entry["card"]),
                "credits": [CreditRead.model_validate(credit) for credit in entry["credits"]],
            }
            for entry in grouped
        ],
    }


@router.patch("/consumers/{consumer_id}")
def update_consumer(
    consumer_id: str,
    body: ConsumerUpdate,
    principal: Principal = Depends(client_only),
    users=Depends(get_user_repository),
    credits=Depends(get_credit_repository),
):
    consumer = company_service.update_consumer(users, credits, principal.company_id, consumer_id, body)
    return {
        "message": localize("companies.consumers.update.success"),
        "consumer": UserPublic.model_validate(consumer),
    }


@router.delete("/consumers/{consumer_id}", response_model=MessageResponse)
def delete_consumer(
    consumer_id: str,
    principal: Principal = Depends(client_only),
    users=Depends(get_user_repository),
    credits=Depends(get_credit_repository),
):
    company_service.delete_consumer(users, credits, principal.company_id, consumer_id)
    return {"message": localize("companies.consumers.delete.success")}


@router.patch("/consumers/{consumer_id}/credits")
def add_consumer_credits(
    consumer_id: str,
    body: ConsumerCreditsAdd,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    users=Depends(get_user_repository),
    cards=Depends(get_card_repository),
    credits=Depends(get_credit_repository),
):
    created = credit_service.issue_to_consumer(
        db, users, cards, credits, principal.company_id, consumer_id, body.cards
    )
    return {
        "message": localize("companies.consumers.updateCredits.success"),
        "credits": [CreditRead.model_validate(credit) for credit in created],
    }


@router.delete("/consumers/{consumer_id}/credits/{credit_id}", response_model=MessageResponse)
def delete_consumer_credit(
    consumer_id: str,
    credit_id: str,
    principal: Principal = Depends(client_only),
    users=Depends(get_user_repository),
    credits=Depends(get_credit_repository),
):
    credit_service.remove_credit(users, credits, principal.company_id, consumer_id, credit_id)
    return {"message": localize("companies.consumers.deleteCredit.success")}


@router.post("/consumers/{consumer_id}/cards/{card_id}/redeem")
def redeem_card(
    consumer_id: str,
    card_id: str,
    principal: Principal = Depends(client_only),
    db: Session = Depends(get_db),
    users=Depends(get_user_repository),
    cards=Depends(get_card_repository),
    credits=Depends(get_credit_repository),
):
    result = credit_service.redeem_card(db, users, cards, credits, principal.company_id, consumer_id, card_id)
    return {
        "message": localize("companies.consumers.redeem.success"),
        "redeemedCredits": result["redeemed"],
        "cardTitle": result["card"].title,
    }


# -- cards -----------------------------------------------------------------


@router.get("/cards", response_model=list[CardWithStats])
def list_cards(
    skip: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=200),
    principal: Principal = Depends(client_only),
    cards=Depends(get_card_repository),
    credits=Depends(get_credit_repository),
    settings: Settings = Depends(get_settings),
):
    return company_service.list_cards(cards, credits, principal.company_id, skip, _page_limit(limit, settings))


@router.post("/cards", response_model=CardRead, status_code=status.HTTP_201_CREATED)
def create_card(body: CardCreate, principal: Principal = Depends(client_only), cards=Depends(get_card_repository)):
    return CardRead.model_validate(company_service.create_card(cards, principal.company_id, body))


@router.get("/cards/{card_id}", response_model=CardWithStats)
def get_card(
    card_id: str,
    principal: Principal = Depends(client_only),
    cards=Depends(get_card_repository),
    credits=Depends(get_credit_repository),
):
    return company_service.get_card(cards, credits, principal.company_id, card_id)


@router.patch("/cards/{card_id}", response_model=CardRead)
def update_card(
    card_id: str,
    body: CardUpdate,
    principal: Principal = Depends(client_only),
    cards=Depends(get_card_repository),
):
    return CardRead.model_validate(company_service.update_card(cards, principal.company_id, card_id, body))


@router.delete("/cards/{card_id}", response_model=MessageResponse)
def delete_card(card_id: str, principal: Principal = Depends(client_only), cards=Depends(get_card_repository)):
    company_service.delete_card(cards, principal.company_id, card_id)
    return {"message": localize("companies.cards.delete.success")}


# -- credits ---------------------------------------------------------------


@router.get("/credits")
def list_pending_credits(principal: Principal = Depends(client_only), credits=Depends(get_credit_repository)):
    return credit_service.list_pending_credits(credits, principal.company_id)


@router.patch("/credits/{credit_id}")
def decide_credit(
    credit_id: str,
    body: CreditDecision,
    principal: Principal = Depends(client_only),
    credits=Depends(get_credit_repository),
):
    credit = credit_service.decide_credit(credits, principal.company_id, credit_id, body.status)
    return {
        "message": localize("companies.credits.update.success"),
        "credit": CreditRead.model_validate(credit),
    }


# -- stats -----------------------------------------------------------------


@router.get("/stats")
def stats(
    principal: Principal = Depends(client_only),
    credits=Depends(get_credit_repository),
    settings: Settings = Depends(get_settings),
):
    return company_service.company_stats(credits, principal.company_id, settings.TIMEZONE)
