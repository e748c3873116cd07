"""
Auth Blueprint: JWT authentication endpoints.

  POST /api/v1/auth/register    Email + password (+ optional ref) → JWT pair
  POST /api/v1/auth/login       Email + password → JWT pair
  POST /api/v1/auth/refresh     Refresh token → new JWT pair (rotation)
  POST /api/v1/auth/logout      Revoke refresh token
  GET  /api/v1/auth/me          Current account
"""

import jwt as pyjwt
from flask import Blueprint, g, jsonify, request

from stagetrack.services import account_service
from stagetrack.services.jwt_service import (
    create_session,
    decode_refresh_token,
    generate_token_pair,
    get_active_session_by_token,
    hash_token,
    revoke_session,
    revoke_session_by_token,
    rotate_session,
)
from stagetrack.utils.errors import E, api_error

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _token_response(account, status=200):
    tokens = generate_token_pair(account.id, account.role)
    create_session(
        account.id, tokens["token_hash"],
        request.remote_addr, request.headers.get("User-Agent", ""),
        tokens["expires_at"],
    )
    return jsonify({
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "token_type": tokens["token_type"],
        "expires_in": tokens["expires_in"],
        "user": account.to_dict(),
    }), status


@auth_bp.route("/register", methods=["POST"])
def register():
    """
    Create an account and log it in.

    Body: { "email", "password", "name", "ref": <manager id, optional> }
    """
    data = request.get_json(silent=True) or {}
    account = account_service.register_account(
        data.get("email"),
        data.get("password"),
        data.get("name"),
        ref=data.get("ref"),
    )
    return _token_response(account, 201)


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    if not data.get("email") or not data.get("password"):
        return api_error(E.VALIDATION_REQUIRED, "Email and password are required")

    account = account_service.authenticate(data["email"], data["password"])
    return _token_response(account)


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """
    Exchange a refresh token for a new pair (the old one is revoked).

    Body: { "refresh_token": "..." }
    """
    data = request.get_json(silent=True) or {}
    refresh_token = data.get("refresh_token", "")
    if not refresh_token:
        return api_error(E.VALIDATION_REQUIRED, "Refresh token is required")

    try:
        payload = decode_refresh_token(refresh_token)
        account_id = int(payload.get("sub"))
    except (pyjwt.InvalidTokenError, TypeError, ValueError):
        return api_error(E.UNAUTHENTICATED, "Invalid or expired refresh token")

    session = get_active_session_by_token(account_id, hash_token(refresh_token))
    if not session:
        return api_error(E.UNAUTHENTICATED, "Session not found or revoked")
    if session.is_expired:
        revoke_session(session)
        return api_error(E.UNAUTHENTICATED, "Session expired")

    account = account_service.get_account(account_id)
    if not account.is_active:
        revoke_session(session)
        return api_error(E.FORBIDDEN, "Account is deactivated")

    tokens = generate_token_pair(account.id, account.role)
    rotate_session(
        session, account.id, tokens["token_hash"], tokens["expires_at"],
        request.remote_addr, request.headers.get("User-Agent", ""),
    )
    return jsonify({
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "token_type": tokens["token_type"],
        "expires_in": tokens["expires_in"],
    }), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    data = request.get_json(silent=True) or {}
    refresh_token = data.get("refresh_token", "")
    if refresh_token:
        revoke_session_by_token(hash_token(refresh_token))
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route("/me", methods=["GET"])
def me():
    return jsonify(g.current_account.to_dict()), 200
