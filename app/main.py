"""FastAPI application: main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.infrastructure.database import engine, Base, SessionLocal
from app.core.logging import configure_logging
from app.core.middleware import setup_middleware
from app.core.exceptions import register_exception_handlers

# Import all models so SQLAlchemy knows about them
from app.domain.models.segment import Segment
from app.domain.models.company import Company
from app.domain.models.user import User
from app.domain.models.card import Card
from app.domain.models.credit import Credit
from app.domain.models.known_location import KnownLocation

# Import routers
from app.interfaces.api.auth import router as auth_router
from app.interfaces.api.companies import router as companies_router
from app.interfaces.api.users import router as users_router
from app.interfaces.api.admin import router as admin_router
from app.interfaces.api.utils import router as utils_router
from app.interfaces.api.segments import router as segments_router

settings = get_settings()

# Configure logging immediately
configure_logging(settings)
logger = structlog.get_logger(__name__)


def ensure_default_admin() -> None:
    """Create the bootstrap admin when configured and missing."""
    if not (settings.DEFAULT_ADMIN_PHONE and settings.DEFAULT_ADMIN_PASSWORD):
        return

    from app.application.services.auth_service import hash_password
    from app.infrastructure.repositories.base_repository import SQLAlchemyRepository

    db = SessionLocal()
    try:
        users = SQLAlchemyRepository(db, User)
        if users.read({"phone": settings.DEFAULT_ADMIN_PHONE}) is None:
            users.create(
                {
                    "name": "Admin",
                    "phone": settings.DEFAULT_ADMIN_PHONE,
                    "password_hash": hash_password(settings.DEFAULT_ADMIN_PASSWORD, settings.PASSWORD_PEPPER),
                    "role": "admin",
                    "status": "available",
                    "excluded": False,
                }
            )
            logger.info("Default admin user created", phone=settings.DEFAULT_ADMIN_PHONE)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting Punchcard API...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only, use migrations in production)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    ensure_default_admin()

    yield

    logger.info("Punchcard API stopped")


app = FastAPI(
    title="Punchcard API",
    description="Loyalty punch cards: companies, consumers, cards and credits",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup Middleware (Correlation ID, Logging)
setup_middleware(app)

# Error envelope for every failure
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(companies_router)
app.include_router(users_router)
app.include_router(admin_router)
app.include_router(utils_router)
app.include_router(segments_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
