"""User domain model: maps to the 'users' table."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String

from app.core.dates import utcnow
from app.domain.enums import ResourceStatus, UserRole
from app.domain.lifecycle import lifecycle_of
from app.domain.validators import check_enum, check_required, validate_phone
from app.infrastructure.database import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role != 'client' OR company_id IS NOT NULL", name="ck_users_client_company"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=True)
    phone = Column(String(20), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CONSUMER.value)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=ResourceStatus.PENDING.value)
    excluded = Column(Boolean, nullable=False, default=False)

    # Single-use recovery / validation token
    validation_token = Column(String(32), nullable=True)
    validation_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def lifecycle(self):
        return lifecycle_of(self.status, self.excluded)

    @classmethod
    def validate_data(cls, data: dict, partial: bool = False) -> None:
        if not partial:
            check_required(data, ["phone", "role"])
        if "phone" in data and not validate_phone(data["phone"]):
            raise ValueError(f"phone {data['phone']!r} is invalid")
        check_enum(data, "role", UserRole)
        check_enum(data, "status", ResourceStatus)
        if not partial and data.get("role") == UserRole.CLIENT.value and not data.get("company_id"):
            raise ValueError("client users require a company")

    def __repr__(self):
        return f"<User {self.phone} ({self.role})>"
