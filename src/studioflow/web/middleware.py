"""Request logging middleware for Studioflow.

Every request gets a correlation ID (taken from X-Correlation-ID or freshly
generated) and is logged with the acting team member from X-Actor-Id, so a
push, a decision and the stage moves it triggers can be followed through
the logs. Writes are logged at info, reads and health checks at debug, and
any request slower than the configured threshold is logged as a warning.

Example:
    >>> from fastapi import FastAPI
    >>> from studioflow.web.middleware import RequestLoggingMiddleware
    >>>
    >>> app = FastAPI()
    >>> app.add_middleware(RequestLoggingMiddleware, slow_request_ms=500)
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from studioflow.logging import (
    bind_actor_context,
    clear_log_context,
    get_logger,
    set_correlation_id,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
ACTOR_HEADER = "X-Actor-Id"
READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
QUIET_PREFIXES = ("/health",)


def header_actor(request: Request) -> str | None:
    """The X-Actor-Id header if it holds a UUID, else None.

    Malformed values are left for require_actor to reject.
    """
    raw = request.headers.get(ACTOR_HEADER)
    if not raw:
        return None
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with its actor, duration and correlation ID.

    Attributes:
        slow_request_ms: Requests at or above this duration are logged as
            slow_request warnings; 0 disables the check.
    """

    def __init__(self, app: ASGIApp, slow_request_ms: int = 1000) -> None:
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        actor_id = header_actor(request)
        if actor_id is not None:
            bind_actor_context(actor_id)

        path = request.url.path
        is_write = request.method not in READ_METHODS
        quiet = not is_write or path.startswith(QUIET_PREFIXES)
        log = logger.debug if quiet else logger.info
        start_time = time.perf_counter()

        log("request_started", method=request.method, path=path)

        try:
            response = await call_next(request)
            duration_ms = self._elapsed(start_time)
            log(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                write=is_write,
            )
            if self.slow_request_ms and duration_ms >= self.slow_request_ms:
                logger.warning(
                    "slow_request",
                    method=request.method,
                    path=path,
                    duration_ms=duration_ms,
                    threshold_ms=self.slow_request_ms,
                )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as exc:
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                duration_ms=self._elapsed(start_time),
                error=str(exc),
                exc_info=True,
            )
            raise

        finally:
            set_correlation_id(None)
            clear_log_context()

    @staticmethod
    def _elapsed(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 2)
