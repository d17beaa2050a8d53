"""Credit domain model: one individually tracked credit unit."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String

from app.core.dates import utcnow
from app.domain.enums import CreditStatus
from app.domain.validators import check_enum, check_required
from app.infrastructure.database import Base


class Credit(Base):
    __tablename__ = "credits"
    __table_args__ = (
        Index("ix_credits_company_excluded_status", "company_id", "excluded", "status"),
        Index("ix_credits_user_status_excluded", "user_id", "status", "excluded"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    card_id = Column(String(36), ForeignKey("cards.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    # Copied from the card at creation time
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    status = Column(String(20), nullable=False)
    excluded = Column(Boolean, nullable=False, default=False)
    requested_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    @classmethod
    def validate_data(cls, data: dict, partial: bool = False) -> None:
        if not partial:
            check_required(data, ["card_id", "user_id", "company_id", "status", "expires_at"])
        check_enum(data, "status", CreditStatus)

    def __repr__(self):
        return f"<Credit {self.id} {self.status}>"
