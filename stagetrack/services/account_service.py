"""
Account Service: registration, login, profile and referred-user management.

Registration without a referral creates a manager. Registration with
``ref=<manager id>`` creates a read-only user whose visibility scope is that
manager.
"""

import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

from stagetrack.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from stagetrack.models import db
from stagetrack.models.auth import ROLE_MANAGER, ROLE_USER, Account
from stagetrack.services.access import CallerContext, require_manager
from stagetrack.services.jwt_service import revoke_all_account_sessions
from stagetrack.utils.crypto import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def normalize_email(email) -> str:
    try:
        valid = validate_email(str(email or "").strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"})
    return valid.normalized.lower()


def _check_password(password, field: str = "password") -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"{field} must be at least {MIN_PASSWORD_LENGTH} characters",
            details={field: "too_short"},
        )
    return password


def _email_taken(email: str, exclude_id: int | None = None) -> bool:
    query = Account.query.filter(Account.email == email)
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    return db.session.query(query.exists()).scalar()


# ═══════════════════════════════════════════════════════════════
# Registration & login
# ═══════════════════════════════════════════════════════════════
def register_account(email, password, name, ref=None) -> Account:
    """Create a manager, or a referred user when ref names a manager."""
    email = normalize_email(email)
    _check_password(password)
    name = str(name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    if _email_taken(email):
        raise ConflictError("Account", "email", email, message="Email is already registered")

    role = ROLE_MANAGER
    referred_by_id = None
    if ref not in (None, ""):
        try:
            manager = db.session.get(Account, int(ref))
        except (TypeError, ValueError):
            manager = None
        if manager is None or not manager.is_manager or not manager.is_active:
            raise ValidationError("Invalid referral link", details={"ref": "invalid"})
        role = ROLE_USER
        referred_by_id = manager.id

    account = Account(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
        referred_by_id=referred_by_id,
    )
    db.session.add(account)
    db.session.commit()
    logger.info("Account %s registered (role=%s, referred_by=%s)", account.id, role, referred_by_id)
    return account


def authenticate(email, password) -> Account:
    """Check credentials; raises AuthenticationError or ForbiddenError (deactivated)."""
    try:
        email = normalize_email(email)
    except ValidationError:
        raise AuthenticationError("Invalid email or password")

    account = Account.query.filter_by(email=email).first()
    if account is None or not verify_password(password or "", account.password_hash):
        logger.warning("Failed login attempt for %s", email)
        raise AuthenticationError("Invalid email or password")
    if not account.is_active:
        raise ForbiddenError("Account is deactivated")

    account.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    return account


def get_account(account_id: int) -> Account:
    account = db.session.get(Account, account_id)
    if account is None:
        raise NotFoundError(resource="Account", resource_id=account_id)
    return account


# ═══════════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════════
def update_profile(caller: CallerContext, data: dict) -> Account:
    account = get_account(caller.account_id)

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty", details={"name": "required"})
        account.name = name
    if "profile_picture" in data:
        account.profile_picture = data.get("profile_picture") or None
    if "email" in data:
        email = normalize_email(data.get("email"))
        if _email_taken(email, exclude_id=account.id):
            raise ConflictError("Account", "email", email, message="Email is already registered")
        account.email = email

    db.session.commit()
    return account


def change_password(caller: CallerContext, current_password, new_password) -> None:
    account = get_account(caller.account_id)
    if not verify_password(current_password or "", account.password_hash):
        raise ValidationError("Current password is incorrect", details={"current_password": "invalid"})
    _check_password(new_password, "new_password")

    account.password_hash = hash_password(new_password)
    db.session.commit()
    revoke_all_account_sessions(account.id)
    logger.info("Password changed for account %s", account.id)


# ═══════════════════════════════════════════════════════════════
# Referred users (manager only)
# ═══════════════════════════════════════════════════════════════
def list_referred_users(caller: CallerContext) -> list[Account]:
    require_manager(caller, "view referred users")
    return (
        Account.query
        .filter_by(referred_by_id=caller.account_id)
        .order_by(Account.created_at.desc(), Account.id.desc())
        .all()
    )


def toggle_account_status(caller: CallerContext, account_id: int) -> Account:
    """Flip is_active on a user referred by the caller; other ids are 404."""
    require_manager(caller, "change user status")
    account = Account.query.filter_by(id=account_id, referred_by_id=caller.account_id).first()
    if account is None:
        raise NotFoundError(resource="Account", resource_id=account_id)

    account.is_active = not account.is_active
    db.session.commit()
    if not account.is_active:
        revoke_all_account_sessions(account.id)

    logger.info("Manager %s set account %s active=%s", caller.account_id, account.id, account.is_active)
    return account


def get_referral_link(caller: CallerContext, frontend_url: str) -> str:
    require_manager(caller, "create referral links")
    return get_account(caller.account_id).referral_link(frontend_url)
