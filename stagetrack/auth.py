"""
Authentication gate for the JSON API.

Provides:
    - A before_request hook requiring a valid access token on /api/v1/*
      (except the public auth and health routes)
    - Rejection of deactivated accounts
    - CSRF protection for state-changing requests (non-GET/HEAD/OPTIONS)
    - current_caller(): the CallerContext handed to every service call

Token parsing itself lives in middleware/jwt_auth.py, which must be
installed before init_auth().
"""

import logging

from flask import g, request

from stagetrack.core.exceptions import AuthenticationError
from stagetrack.services.access import CallerContext
from stagetrack.utils.errors import E, api_error

logger = logging.getLogger(__name__)

PUBLIC_PATHS = frozenset({
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/auth/refresh",
    "/api/v1/auth/logout",
    "/api/v1/health",
})


def current_caller() -> CallerContext:
    """CallerContext for the authenticated account of this request."""
    account = getattr(g, "current_account", None)
    if account is None:
        raise AuthenticationError()
    return CallerContext.from_account(account)


def _check_content_type():
    """
    For state-changing requests (POST/PUT/PATCH/DELETE), require
    Content-Type: application/json. HTML forms cannot send that content
    type, which makes it a lightweight CSRF mitigation.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return api_error(
                E.VALIDATION_INVALID,
                "Content-Type must be application/json for state-changing requests",
                status=415,
            )
    return None


def init_auth(app):
    """Install the authentication before_request hook for /api/v1/*."""

    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None

        csrf_error = _check_content_type()
        if csrf_error:
            return csrf_error

        if request.path in PUBLIC_PATHS:
            return None

        account = getattr(g, "current_account", None)
        if account is None:
            return api_error(
                E.UNAUTHENTICATED,
                getattr(g, "jwt_error", None) or "Authentication required",
            )
        if not account.is_active:
            logger.warning("Deactivated account %s rejected on %s", account.id, request.path)
            return api_error(E.FORBIDDEN, "Account is deactivated")
        return None

    logger.info("Auth middleware installed")
