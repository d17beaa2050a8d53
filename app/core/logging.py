"""
structlog setup.

Development gets the colored console renderer, every other environment
gets one JSON object per line. Credentials and recovery tokens are masked
before rendering.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from asgi_correlation_id import correlation_id

from app.config import Settings, get_settings

_HANDLER_NAME = "punchcard"

SECRET_KEYS = frozenset({"password", "password_hash", "token", "access_token", "authorization"})
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "uvicorn.access", "passlib")


def add_request_id(logger, method_name, event_dict):
    request_id = correlation_id.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def mask_secrets(logger, method_name, event_dict):
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def _renderers(settings: Settings) -> list:
    if settings.ENVIRONMENT == "development":
        return [structlog.dev.ConsoleRenderer()]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_secrets,
    ]

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *_renderers(settings)],
        )
    )

    root = logging.getLogger()
    # Reconfiguring (tests, reload) must not stack handlers.
    root.handlers = [h for h in root.handlers if h.get_name() != _HANDLER_NAME]
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
