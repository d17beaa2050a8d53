"""HTTP middleware: correlation ids and per-request access logging."""

import time
from typing import Callable

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

QUIET_PATHS = frozenset({"/health"})


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind method/path to the log context and log the outcome of each request.

    4xx answers are logged as warnings and 5xx as errors, so rejected
    credentials and guard failures stand out from normal traffic.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request crashed", elapsed_ms=_elapsed_ms(start))
            raise
        finally:
            structlog.contextvars.unbind_contextvars("method", "path")

        elapsed = _elapsed_ms(start)
        response.headers["X-Process-Time-Ms"] = str(elapsed)

        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            elapsed_ms=elapsed,
            client_ip=request.client.host if request.client else None,
        )
        return response


def setup_middleware(app):
    # Last added runs first: the correlation id must wrap request logging.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        update_request_header=True,
    )
