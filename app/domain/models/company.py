"""Company domain model: maps to the 'companies' table."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String

from app.core.dates import utcnow
from app.domain.enums import ResourceStatus
from app.domain.lifecycle import lifecycle_of
from app.domain.validators import check_enum, check_required, validate_document
from app.infrastructure.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    phone = Column(String(20), nullable=True)
    document = Column(String(14), unique=True, nullable=False)  # CPF or CNPJ, digits only
    logo = Column(String(500), nullable=True)
    segment_id = Column(String(36), ForeignKey("segments.id"), nullable=True, index=True)

    # Address
    zipcode = Column(String(8), nullable=False)
    street = Column(String(300), nullable=False)
    number = Column(Integer, nullable=False)
    complement = Column(String(200), nullable=True)
    neighborhood = Column(String(200), nullable=False)
    city = Column(String(200), nullable=False)
    state = Column(String(50), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    status = Column(String(20), nullable=False, default=ResourceStatus.PENDING.value)
    excluded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def lifecycle(self):
        return lifecycle_of(self.status, self.excluded)

    @property
    def address(self) -> dict:
        return {
            "street": self.street,
            "number": self.number,
            "complement": self.complement,
            "neighborhood": self.neighborhood,
            "city": self.city,
            "state": self.state,
            "zipcode": self.zipcode,
            "coordinates": {"latitude": self.latitude, "longitude": self.longitude},
        }

    @classmethod
    def validate_data(cls, data: dict, partial: bool = False) -> None:
        if not partial:
            check_required(data, ["name", "document", "zipcode", "street", "number", "neighborhood", "city", "state"])
        if "document" in data and not validate_document(data["document"]):
            raise ValueError(f"document {data['document']!r} is invalid")
        check_enum(data, "status", ResourceStatus)

    def __repr__(self):
        return f"<Company {self.name}>"
