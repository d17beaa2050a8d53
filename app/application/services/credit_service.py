"""Credit service: issuance engine, ownership checks and credit decisions."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.dates import add_time, utcnow
from app.core.exceptions import AppError, ForbiddenError, InternalServerError, NotFoundError, ValidationError
from app.core.localization import localize
from app.domain.enums import CreditStatus, ResourceStatus, UserRole
from app.domain.lifecycle import is_active
from app.domain.models.card import Card
from app.domain.models.company import Company
from app.domain.models.credit import Credit
from app.domain.models.user import User
from app.domain.schemas.credit import ConsumerCreate, CreditLine
from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

logger = structlog.get_logger(__name__)


def _not_found(resource_key: str) -> NotFoundError:
    resource = localize(resource_key)
    return NotFoundError(
        message=localize("error.generic.notFound", resource=resource),
        action=localize("error.generic.notFoundActionMessage", resource=resource),
    )


def credit_expiration(card: Card, start: Optional[datetime] = None) -> datetime:
    return add_time(start or utcnow(), card.credit_expires_ref_number, card.credit_expires_ref_type)


# -- ownership -------------------------------------------------------------


def owns_consumer(credits: SQLAlchemyRepository[Credit], company_id: str, consumer_id: str) -> bool:
    """Whether a non-excluded credit links the company to the consumer."""
    return credits.exists({"company_id": company_id, "user_id": consumer_id, "excluded": False})


def get_owned_consumer(
    users: SQLAlchemyRepository[User],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
) -> User:
    """The consumer, if the company holds a relationship with it.

    Missing, excluded and unrelated consumers are all answered with the same
    ForbiddenError, so a client cannot tell them apart.
    """
    consumer = users.read({"id": consumer_id, "role": UserRole.CONSUMER, "excluded": False})
    if consumer is None or not owns_consumer(credits, company_id, consumer_id):
        resource = localize("resources.consumer")
        raise ForbiddenError(
            message=localize("error.generic.notFound", resource=resource),
            action=localize("error.generic.notFoundActionMessage", resource=resource),
        )
    return consumer


# -- issuance --------------------------------------------------------------


def _company_cards(
    cards: SQLAlchemyRepository[Card], company_id: str, lines: Iterable[CreditLine]
) -> Dict[str, Card]:
    card_ids = {line.card_id for line in lines}
    found = cards.list(
        {"id": list(card_ids), "company_id": company_id, "status": ResourceStatus.AVAILABLE, "excluded": False}
    )
    by_id = {card.id: card for card in found}
    missing = card_ids - set(by_id)
    if missing:
        raise ForbiddenError(
            message=localize("error.generic.notFound", resource=localize("resources.card")),
            action=localize("error.generic.notFoundActionMessage", resource=localize("resources.card")),
        )
    return by_id


def _credit_rows(
    lines: Iterable[CreditLine], cards_by_id: Dict[str, Card], user_id: str, company_id: str
) -> List[Dict[str, Any]]:
    now = utcnow()
    rows = []
    for line in lines:
        card = cards_by_id[line.card_id]
        expires_at = credit_expiration(card, now)
        rows.extend(
            {
                "card_id": card.id,
                "user_id": user_id,
                "company_id": company_id,
                "status": CreditStatus.AVAILABLE,
                "excluded": False,
                "expires_at": expires_at,
            }
            for _ in range(line.quantity)
        )
    return rows


def _commit_issuance(db: Session, company_id: str, consumer_id: Optional[str]) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Credit issuance commit failed", company_id=company_id, consumer_id=consumer_id)
        raise InternalServerError(
            message=localize("error.credits.issuance"),
            action=localize("error.credits.issuanceAction"),
            cause=exc,
        ) from exc


def issue_to_new_consumer(
    db: Session,
    users: SQLAlchemyRepository[User],
    cards: SQLAlchemyRepository[Card],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    data: ConsumerCreate,
) -> Dict[str, Any]:
    """Create a consumer and one credit row per unit of every line, atomically.

    Everything is flushed inside one transaction and committed once; any
    failure after validation rolls the whole issuance back.
    """
    if users.read({"phone": data.phone}) is not None:
        raise ValidationError(message=localize("error.generic.alreadyExists", resource=localize("resources.consumer")))

    cards_by_id = _company_cards(cards, company_id, data.cards)

    try:
        consumer = users.create(
            {
                "name": data.name,
                "phone": data.phone,
                "role": UserRole.CONSUMER,
                "status": ResourceStatus.AVAILABLE,
                "excluded": False,
            },
            commit=False,
        )
        created = credits.create_many(_credit_rows(data.cards, cards_by_id, consumer.id, company_id), commit=False)
    except AppError as exc:
        db.rollback()
        logger.error("Credit issuance failed", company_id=company_id, error=exc.message)
        raise InternalServerError(
            message=localize("error.credits.issuance"),
            action=localize("error.credits.issuanceAction"),
            cause=exc,
        ) from exc

    _commit_issuance(db, company_id, consumer.id)
    logger.info("Credits issued", company_id=company_id, consumer_id=consumer.id, credits=len(created))
    return {"consumer": consumer, "credits": created}


def issue_to_consumer(
    db: Session,
    users: SQLAlchemyRepository[User],
    cards: SQLAlchemyRepository[Card],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
    lines: List[CreditLine],
) -> List[Credit]:
    """Add credit units to a consumer the company already has credits with."""
    consumer = get_owned_consumer(users, credits, company_id, consumer_id)
    cards_by_id = _company_cards(cards, company_id, lines)

    try:
        created = credits.create_many(_credit_rows(lines, cards_by_id, consumer.id, company_id), commit=False)
    except AppError as exc:
        db.rollback()
        raise InternalServerError(
            message=localize("error.credits.issuance"),
            action=localize("error.credits.issuanceAction"),
            cause=exc,
        ) from exc

    _commit_issuance(db, company_id, consumer.id)
    logger.info("Credits issued", company_id=company_id, consumer_id=consumer.id, credits=len(created))
    return created


# -- single credits --------------------------------------------------------


def remove_credit(
    users: SQLAlchemyRepository[User],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
    credit_id: str,
) -> Credit:
    get_owned_consumer(users, credits, company_id, consumer_id)
    credit = credits.update(
        {
            "id": credit_id,
            "user_id": consumer_id,
            "company_id": company_id,
            "status": CreditStatus.AVAILABLE,
            "excluded": False,
        },
        {"excluded": True},
    )
    if credit is None:
        raise _not_found("resources.credit")
    logger.info("Credit removed", company_id=company_id, credit_id=credit_id)
    return credit


def decide_credit(credits: SQLAlchemyRepository[Credit], company_id: str, credit_id: str, status: str) -> Credit:
    """Approve (`available`) or reject (`rejected`) a pending credit."""
    credit = credits.update(
        {"id": credit_id, "company_id": company_id, "status": CreditStatus.PENDING, "excluded": False},
        {"status": CreditStatus(status)},
    )
    if credit is None:
        raise _not_found("resources.credit")
    logger.info("Credit decided", company_id=company_id, credit_id=credit_id, status=status)
    return credit


def redeem_card(
    db: Session,
    users: SQLAlchemyRepository[User],
    cards: SQLAlchemyRepository[Card],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
    card_id: str,
) -> Dict[str, Any]:
    """Mark the card's `credits_needed` oldest unexpired credits of the consumer as used."""
    get_owned_consumer(users, credits, company_id, consumer_id)
    card = cards.read({"id": card_id, "company_id": company_id, "excluded": False})
    if card is None:
        resource = localize("resources.card")
        raise ForbiddenError(
            message=localize("error.generic.notFound", resource=resource),
            action=localize("error.generic.notFoundActionMessage", resource=resource),
        )

    insufficient = ValidationError(
        message=localize("error.credits.insufficient", needed=card.credits_needed),
        action=localize("error.credits.insufficientAction"),
    )
    usable = credits.list(
        {
            "user_id": consumer_id,
            "card_id": card.id,
            "company_id": company_id,
            "status": CreditStatus.AVAILABLE,
            "excluded": False,
            "expires_at__gt": utcnow(),
        },
        projection=["id"],
        sort={"created_at": 1},
        limit=card.credits_needed,
    )
    if len(usable) < card.credits_needed:
        raise insufficient

    result = credits.update_many(
        {"id": [row["id"] for row in usable], "status": CreditStatus.AVAILABLE},
        {"status": CreditStatus.USED},
        commit=False,
    )
    if result["modified_count"] != card.credits_needed:
        # Another request used some of these credits first.
        db.rollback()
        raise insufficient
    db.commit()

    logger.info("Card redeemed", company_id=company_id, consumer_id=consumer_id, card_id=card.id)
    return {"card": card, "redeemed": result["modified_count"]}


def request_credit(
    cards: SQLAlchemyRepository[Card],
    companies: SQLAlchemyRepository[Company],
    credits: SQLAlchemyRepository[Credit],
    consumer_id: str,
    card_id: str,
) -> Credit:
    """Create one pending credit for the consumer, to be decided by the company."""
    card = cards.read({"id": card_id, "status": ResourceStatus.AVAILABLE, "excluded": False})
    if card is None:
        raise _not_found("resources.card")

    company = companies.read({"id": card.company_id})
    if company is None or not is_active(company.status, company.excluded):
        raise _not_found("resources.company")

    now = utcnow()
    credit = credits.create(
        {
            "card_id": card.id,
            "user_id": consumer_id,
            "company_id": card.company_id,
            "status": CreditStatus.PENDING,
            "excluded": False,
            "requested_at": now,
            "expires_at": credit_expiration(card, now),
        }
    )
    logger.info("Credit requested", consumer_id=consumer_id, card_id=card_id)
    return credit


# -- read side -------------------------------------------------------------


def list_pending_credits(credits: SQLAlchemyRepository[Credit], company_id: str) -> List[Dict[str, Any]]:
    """Pending credits of the company with their card and consumer, oldest first."""
    rows = credits.aggregate(
        [
            lambda stmt: stmt.with_only_columns(
                Credit.id.label("id"),
                Credit.requested_at.label("requested_at"),
                Credit.created_at.label("created_at"),
                Card.id.label("card_id"),
                Card.title.label("card_title"),
                User.id.label("user_id"),
                User.name.label("user_name"),
                User.phone.label("user_phone"),
            ),
            lambda stmt: stmt.join_from(Credit, Card, Card.id == Credit.card_id).join_from(
                Credit, User, User.id == Credit.user_id
            ),
            lambda stmt: stmt.where(
                Credit.company_id == company_id,
                Credit.status == CreditStatus.PENDING.value,
                Credit.excluded.is_(False),
            ),
            lambda stmt: stmt.order_by(Credit.created_at.asc()),
        ]
    )
    return [
        {
            "id": row["id"],
            "requested_at": row["requested_at"],
            "created_at": row["created_at"],
            "card": {"id": row["card_id"], "title": row["card_title"]},
            "consumer": {"id": row["user_id"], "name": row["user_name"], "phone": row["user_phone"]},
        }
        for row in rows
    ]


def consumer_credits_by_card(
    cards: SQLAlchemyRepository[Card],
    credits: SQLAlchemyRepository[Credit],
    company_id: str,
    consumer_id: str,
) -> List[Dict[str, Any]]:
    """One entry per card the consumer holds credits against, with its credit rows."""
    rows = credits.list(
        {"user_id": consumer_id, "company_id": company_id, "excluded": False},
        sort={"created_at": 1},
    )
    card_ids = []
    grouped: Dict[str, List[Credit]] = {}
    for credit in rows:
        if credit.card_id not in grouped:
            card_ids.append(credit.card_id)
            grouped[credit.card_id] = []
        grouped[credit.card_id].append(credit)

    cards_by_id = {card.id: card for card in cards.list({"id": card_ids})} if card_ids else {}
    return [
        {"card": cards_by_id[card_id], "credits": grouped[card_id]}
        for card_id in card_ids
        if card_id in cards_by_id
    ]
