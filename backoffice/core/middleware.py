"""CORS, request-id, and logging middleware."""

import uuid
import time
import logging
from contextvars import ContextVar

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from backoffice.core.config import settings

logger = logging.getLogger("backoffice.http")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Status codes produced by authorization denials.
_DENIED = {401, 402, 403}


class RequestIdFilter(logging.Filter):
    """Stamp every log record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Propagate (or mint) an X-Request-Id and log one line per request.

    Authorization denials are logged at WARNING so they stand out from
    ordinary traffic.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response: Response = await call_next(request)

            duration = round((time.perf_counter() - start) * 1000, 2)
            response.headers["X-Request-Id"] = request_id
            response.headers["X-Response-Time-Ms"] = str(duration)

            level = logging.WARNING if response.status_code in _DENIED else logging.INFO
            logger.log(
                level,
                "%s %s -> %s in %sms",
                request.method,
                request.url.path,
                response.status_code,
                duration,
            )
            return response
        finally:
            request_id_var.reset(token)


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-Response-Time-Ms"],
    )
    app.add_middleware(RequestIdMiddleware)
