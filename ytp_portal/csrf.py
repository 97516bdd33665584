"""
CSRF Protection Middleware

Double-submit cookie pattern:
- Any response to a request without the cookie sets a fresh csrf_token cookie
- State-changing requests (POST, PUT, PATCH, DELETE) must echo that value in
  the X-CSRF-Token header
- OAuth callbacks and public endpoints are exempt

Set CSRF_ENABLED=false in the environment to disable (tests, local tooling).
"""
import logging
import secrets
from typing import Callable, List

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import SESSION_COOKIE_SECURE

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 86400

PROTECTED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

EXEMPT_PATHS: List[str] = [
    "/api/auth/lawpay/callback",  # Redirect from LawPay, no header possible
    "/api/public/",
    "/api/csrf-token",
    "/health",
    "/docs",
    "/openapi.json",
]


def generate_csrf_token() -> str:
    """Generate a cryptographically secure CSRF token"""
    return secrets.token_urlsafe(32)


def is_path_exempt(path: str) -> bool:
    return any(path.startswith(exempt) for exempt in EXEMPT_PATHS)


def set_csrf_cookie(response: Response, token: str) -> None:
    # Readable by the frontend so it can copy the value into the header
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=False,
        secure=SESSION_COOKIE_SECURE,
        samesite="strict",
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
    )


def _sets_csrf_cookie(response: Response) -> bool:
    return any(
        header.startswith(f"{CSRF_COOKIE_NAME}=") for header in response.headers.getlist("set-cookie")
    )


def _reject(request: Request, reason: str) -> JSONResponse:
    logger.warning(f"🚫 CSRF: {reason} for {request.method} {request.url.path}")
    return JSONResponse(status_code=403, content={"detail": "CSRF token missing or invalid"})


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Rejects unsafe requests whose X-CSRF-Token header does not match the
    csrf_token cookie. Exceptions raised here would bypass FastAPI's
    exception handlers, so rejections are returned as responses.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)

        if request.method in PROTECTED_METHODS and not is_path_exempt(request.url.path):
            csrf_header = request.headers.get(CSRF_HEADER_NAME)
            if not csrf_cookie:
                return _reject(request, "Missing cookie")
            if not csrf_header:
                return _reject(request, "Missing header")
            if not secrets.compare_digest(csrf_cookie, csrf_header):
                return _reject(request, "Token mismatch")

        response = await call_next(request)

        # The token endpoint may already have issued one
        if not csrf_cookie and not _sets_csrf_cookie(response):
            set_csrf_cookie(response, generate_csrf_token())

        return response


async def csrf_token_handler(request: Request, response: Response):
    """Return the current CSRF token, issuing one when the browser has none"""
    existing_token = request.cookies.get(CSRF_COOKIE_NAME)
    if existing_token:
        return {"csrf_token": existing_token}

    new_token = generate_csrf_token()
    set_csrf_cookie(response, new_token)
    return {"csrf_token": new_token}
