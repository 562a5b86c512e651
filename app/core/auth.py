"""Optional HTTP Basic authentication.

Active only when AUTH_USERNAME and AUTH_PASSWORD are both set; otherwise
every request passes through.
"""

import base64
import binascii
import secrets

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from app.core.config import get_settings

# Reachable without credentials (docker health checks)
PUBLIC_PATHS = frozenset({"/api/health"})


def _decode_basic(header: str) -> tuple[str, str] | None:
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Rejects requests lacking the configured Basic credentials."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        settings = get_settings()
        if not settings.auth_username or not settings.auth_password:
            return await call_next(request)
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        credentials = _decode_basic(request.headers.get("Authorization", ""))
        if credentials is None:
            return self._unauthorized()

        username, password = credentials
        # Compare bytes in constant time
        username_ok = secrets.compare_digest(
            username.encode("utf-8"), settings.auth_username.encode("utf-8")
        )
        password_ok = secrets.compare_digest(
            password.encode("utf-8"),
            settings.auth_password.get_secret_value().encode("utf-8"),
        )
        if not (username_ok and password_ok):
            return self._unauthorized()

        return await call_next(request)

    @staticmethod
    def _unauthorized() -> Response:
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": "Unauthorized"},
            headers={"WWW-Authenticate": 'Basic realm="Catalogarr"'},
        )
