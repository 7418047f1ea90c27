"""API middleware for request logging and the dashboard route guard."""

import hmac
import logging
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from clinic_desk.core.auth import ACCESS_COOKIE, decode_token

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/doctor-dashboard", "/receptionist-dashboard")
LOGIN_PATH = "/login"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging all requests."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            f"Request: {request.method} {request.url.path} "
            f"client={request.client.host if request.client else 'unknown'}"
        )

        response = await call_next(request)

        duration = time.time() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        response.headers["X-Process-Time"] = f"{duration:.3f}"

        return response


def _provided_api_key(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.headers.get("X-API-Key")


class DashboardAuthMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated dashboard requests to the login page.

    Only checks that *some* credential is present and valid; role checks
    happen in the route dependencies.
    """

    def __init__(self, app, api_key: str = ""):
        super().__init__(app)
        self.api_key = api_key

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not path.startswith(PROTECTED_PREFIXES):
            return await call_next(request)

        token = request.cookies.get(ACCESS_COOKIE)
        if token:
            claims = decode_token(token)
            if claims and claims.get("type") == "access":
                return await call_next(request)

        provided_key = _provided_api_key(request)
        if self.api_key and provided_key and hmac.compare_digest(provided_key, self.api_key):
            return await call_next(request)

        logger.warning(
            f"Unauthenticated dashboard request: {request.method} {path} "
            f"client={request.client.host if request.client else 'unknown'}"
        )
        return RedirectResponse(url=LOGIN_PATH, status_code=303)
