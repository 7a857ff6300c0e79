# app/middleware/request_logger.py
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("app.requests")


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()

        # Call actual endpoint
        response = await call_next(request)

        duration_ms = (time.perf_counter() - started) * 1000
        # Set by the auth dependency once the token is verified
        user = getattr(request.state, "user", None)
        user_id = getattr(user, "id", None) if user else None

        if user_id and request.method in ["POST", "PUT", "DELETE"]:
            logger.info(
                "%s %s -> %s (%.1f ms) user=%s",
                request.method, request.url.path, response.status_code, duration_ms, user_id,
            )
        else:
            logger.info(
                "%s %s -> %s (%.1f ms)",
                request.method, request.url.path, response.status_code, duration_ms,
            )

        return response
