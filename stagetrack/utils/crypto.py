"""
Crypto utilities: bcrypt password hashing.

The work factor comes from BCRYPT_LOG_ROUNDS in the app config (12 by
default, lowered in the testing config so the suite stays fast).
"""

import bcrypt
from flask import current_app

DEFAULT_LOG_ROUNDS = 12


def _log_rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_LOG_ROUNDS", DEFAULT_LOG_ROUNDS))
    except RuntimeError:
        # Outside app context
        return DEFAULT_LOG_ROUNDS


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    salt = bcrypt.gensalt(rounds=_log_rounds())
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash:
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )
