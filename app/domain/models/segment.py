"""Segment: business category a company belongs to."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String

from app.core.dates import utcnow
from app.domain.enums import ResourceStatus
from app.infrastructure.database import Base


class Segment(Base):
    __tablename__ = "segments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False, unique=True)
    description = Column(String(500), nullable=True)
    icon = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default=ResourceStatus.AVAILABLE.value)
    excluded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Segment {self.name}>"
