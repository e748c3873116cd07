"""
JWT Auth Middleware: parses the Bearer token and loads the calling account.

Sets on flask.g for every /api/v1/* request:
    g.account_id       int | None
    g.current_account  Account | None
    g.jwt_error        str | None   (why a presented token was rejected)

This hook never rejects a request on its own; stagetrack.auth decides which
paths require an authenticated account.
"""

import jwt as pyjwt
from flask import g, request

from stagetrack.models import db
from stagetrack.models.auth import Account
from stagetrack.services.jwt_service import decode_access_token

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/auth/refresh",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.account_id = None
        g.current_account = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        if path.startswith(JWT_SKIP_PREFIXES):
            return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
            return
        except pyjwt.InvalidTokenError:
            g.jwt_error = "Invalid token"
            return

        try:
            account_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            g.jwt_error = "Invalid token"
            return

        account = db.session.get(Account, account_id)
        if account is None:
            g.jwt_error = "Account no longer exists"
            return

        g.account_id = account.id
        g.current_account = account
