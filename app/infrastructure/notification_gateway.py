"""SMS gateway HTTP client.

Delivery failures never raise: `send_notification` returns `{"error": ...}`
and the caller decides how to surface it.
"""

import asyncio
from typing import Optional

import httpx
import structlog

from app.config import Settings
from app.core.exceptions import ServiceError, ValidationError
from app.core.localization import localize

logger = structlog.get_logger(__name__)

SUPPORTED_PROVIDERS = ("gateway",)
RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def _mask(target: str) -> str:
    return f"***{target[-4:]}" if target else ""


class NotificationGateway:
    """Client for the outbound SMS gateway."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        self.provider = settings.SMS_PROVIDER
        self.dry_mode = settings.SMS_DRY_MODE
        self.base_url = settings.SMS_GATEWAY_URL.rstrip("/")
        self.headers = {
            "apikey": settings.SMS_GATEWAY_API_KEY,
            "Content-Type": "application/json",
        }
        self.transport = transport
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def send_notification(self, target: Optional[str], content: Optional[str]) -> dict:
        """
        Send `content` to the phone number `target`.

        Retries up to max_retries times with linear backoff; rate limiting
        and 5xx answers wait longer before the next attempt.
        """
        if not target or not content:
            field = "target" if not target else "content"
            return {"error": ValidationError(message=localize("error.generic.required", field=field))}

        if self.provider not in SUPPORTED_PROVIDERS:
            return {"error": ServiceError(message=localize("error.generic.invalid", field="SMS_PROVIDER"))}

        if self.dry_mode:
            logger.info("SMS dry mode, message not sent", target=_mask(target))
            return {"error": None}

        url = f"{self.base_url}/messages"
        payload = {"to": target, "message": content}

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=30, transport=self.transport) as client:
                    response = await client.post(url, json=payload, headers=self.headers)
                    response.raise_for_status()
                logger.info("SMS sent", target=_mask(target), attempt=attempt)
                return {"error": None}
            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    "SMS gateway error",
                    attempt=attempt,
                    max_retries=self.max_retries,
                    status_code=e.response.status_code,
                )
                if e.response.status_code not in RETRYABLE_STATUS:
                    break
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * attempt * 2)
                    continue
            except httpx.HTTPError as e:
                last_error = e
                logger.warning("SMS gateway connection error", attempt=attempt, error=str(e))

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        logger.error("SMS delivery failed", target=_mask(target), error=repr(last_error))
        return {
            "error": ServiceError(
                message=localize("error.services.sms.message"),
                action=localize("error.services.sms.action"),
                cause=last_error,
            )
        }
