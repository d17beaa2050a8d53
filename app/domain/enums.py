"""Closed value sets shared by models, schemas and services."""

import enum


class UserRole(str, enum.Enum):
    CONSUMER = "consumer"
    CLIENT = "client"
    ADMIN = "admin"


class ResourceStatus(str, enum.Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class CreditStatus(str, enum.Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    USED = "used"
    REJECTED = "rejected"


class ExpiryUnit(str, enum.Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
