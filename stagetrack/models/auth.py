"""
Auth Models: accounts and refresh-token sessions.

Two roles exist:
    manager: owns projects, catalog stages and email recipients
    user:    read-only member referred by exactly one manager

The referral back-reference (referred_by_id) is what scopes a user's
visibility: a user sees precisely what its manager owns, and nothing when
the back-reference is empty.
"""

import uuid
from datetime import datetime, timezone

from stagetrack.models import db

ROLE_MANAGER = "manager"
ROLE_USER = "user"
VALID_ROLES = (ROLE_MANAGER, ROLE_USER)


# ═══════════════════════════════════════════════════════════════
# 1. ACCOUNTS
# ═══════════════════════════════════════════════════════════════
class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    profile_picture = db.Column(db.String(500))
    role = db.Column(
        db.String(20), nullable=False, default=ROLE_MANAGER,
        comment="manager | user",
    )
    referred_by_id = db.Column(
        db.Integer, db.ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_accounts_referred_by", "referred_by_id"),
    )

    # Relationships
    referred_by = db.relationship(
        "Account", remote_side=[id], backref=db.backref("referred_users", lazy="dynamic"),
    )
    sessions = db.relationship(
        "Session", back_populates="account", lazy="dynamic", cascade="all, delete-orphan",
    )

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    def referral_link(self, frontend_url: str) -> str | None:
        """Sign-up link that attaches new accounts to this manager."""
        if not self.is_manager:
            return None
        return f"{frontend_url.rstrip('/')}/sign-up?ref={self.id}"

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "profile_picture": self.profile_picture,
            "role": self.role,
            "referred_by": self.referred_by_id,
            "is_active": self.is_active,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Account {self.id}: {self.email} ({self.role})>"


# ═══════════════════════════════════════════════════════════════
# 2. SESSIONS (refresh-token tracking)
# ═══════════════════════════════════════════════════════════════
class Session(db.Model):
    __tablename__ = "sessions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = db.Column(
        db.Integer, db.ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    token_hash = db.Column(db.String(256), nullable=False)  # SHA-256 of refresh token
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    expires_at = db.Column(db.DateTime, nullable=False)
    last_used_at = db.Column(db.DateTime)

    account = db.relationship("Account", back_populates="sessions")

    @property
    def is_expired(self):
        return datetime.now(timezone.utc) > self.expires_at.replace(tzinfo=timezone.utc)
