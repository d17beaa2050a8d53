"""Card domain model: a punch card offered by one company."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from app.core.dates import utcnow
from app.domain.enums import ExpiryUnit, ResourceStatus
from app.domain.lifecycle import lifecycle_of
from app.domain.validators import check_enum, check_required
from app.infrastructure.database import Base


class Card(Base):
    __tablename__ = "cards"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    credits_needed = Column(Integer, nullable=False)

    # Expiry horizon of credits issued against this card, e.g. 3 month
    credit_expires_ref_number = Column(Integer, nullable=False)
    credit_expires_ref_type = Column(String(10), nullable=False)

    status = Column(String(20), nullable=False, default=ResourceStatus.AVAILABLE.value)
    excluded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def lifecycle(self):
        return lifecycle_of(self.status, self.excluded)

    @property
    def credit_expires_at(self) -> dict:
        return {"ref_number": self.credit_expires_ref_number, "ref_type": self.credit_expires_ref_type}

    @classmethod
    def validate_data(cls, data: dict, partial: bool = False) -> None:
        if not partial:
            check_required(
                data, ["company_id", "title", "credits_needed", "credit_expires_ref_number", "credit_expires_ref_type"]
            )
        if "credits_needed" in data and (data["credits_needed"] is None or data["credits_needed"] < 1):
            raise ValueError("credits_needed must be positive")
        if "credit_expires_ref_number" in data and (
            data["credit_expires_ref_number"] is None or data["credit_expires_ref_number"] < 1
        ):
            raise ValueError("credit_expires_ref_number must be positive")
        check_enum(data, "credit_expires_ref_type", ExpiryUnit)
        check_enum(data, "status", ResourceStatus)

    def __repr__(self):
        return f"<Card {self.title}>"
