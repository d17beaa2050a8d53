"""Known location: geocoding results cached by (zipcode, number)."""

import uuid

from sqlalchemy import Column, DateTime, Float, Integer, String, UniqueConstraint

from app.core.dates import utcnow
from app.infrastructure.database import Base


class KnownLocation(Base):
    __tablename__ = "known_locations"
    __table_args__ = (UniqueConstraint("zipcode", "number", name="uq_known_locations_zipcode_number"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    zipcode = Column(String(8), nullable=False)
    number = Column(Integer, nullable=False)
    street = Column(String(300), nullable=True)
    neighborhood = Column(String(200), nullable=True)
    city = Column(String(200), nullable=True)
    state = Column(String(50), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<KnownLocation {self.zipcode}/{self.number}>"
