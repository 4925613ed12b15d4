"""Authentication middleware validating signed access tokens."""

import re
from typing import Optional

import structlog
from fastapi import Request
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from api.config.settings import settings
from api.services.token import create_token, decode_token, should_refresh_token

logger = structlog.get_logger()

# Paths that don't require authentication
SKIP_AUTH_PATHS = [
    r"^/health",
    r"^/api/v1/health",
    r"^/api/docs",
    r"^/api/openapi\.json",
    r"^/api/redoc",
    r"^/$",
]

SKIP_AUTH_PATTERNS = [re.compile(p) for p in SKIP_AUTH_PATHS]


def should_skip_auth(path: str) -> bool:
    return any(pattern.match(path) for pattern in SKIP_AUTH_PATTERNS)


def get_token_from_request(request: Request) -> Optional[str]:
    """Extract the token from the session cookie or the Authorization header."""
    token = request.cookies.get(settings.COOKIE_NAME)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]

    return None


def unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": {"code": "UNAUTHORIZED", "message": message, "details": {}}},
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Rejects unauthenticated requests and stores the caller on ``request.state``."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS" or should_skip_auth(request.url.path):
            return await call_next(request)

        token = get_token_from_request(request)
        if not token:
            return unauthorized("Not authenticated")

        try:
            payload = decode_token(token)
        except JWTError as e:
            logger.info("Token rejected", path=request.url.path, reason=str(e))
            return unauthorized(str(e))

        request.state.user = payload
        request.state.user_id = payload.get("sub")
        request.state.user_roles = payload.get("roles", [])
        structlog.contextvars.bind_contextvars(user=payload.get("sub"))

        response = await call_next(request)

        # Rolling refresh for cookie sessions
        if should_refresh_token(payload):
            response.set_cookie(
                key=settings.COOKIE_NAME,
                value=create_token(payload),
                httponly=True,
                secure=settings.COOKIE_SECURE,
                samesite=settings.COOKIE_SAMESITE,
                domain=settings.COOKIE_DOMAIN,
                max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            )

        return response
