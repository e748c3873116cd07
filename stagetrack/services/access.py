"""
Access Control Predicate: one ownership rule for every resource.

Every project, catalog stage, stage instance, connection and email
recipient belongs to exactly one manager. Who may see or change it:

    manager  → reads and writes what it owns
    user     → reads what its referring manager owns, never writes
    user without a referring manager → sees nothing

Two lookup styles exist and produce different failures:

    * Scoped lookup (query pre-filtered by the visible owner):
      a miss is reported as NotFoundError (404), so it leaks nothing.
      See services.helpers.scoped_queries.
    * Fetch by id, then compare owner (fetch_for_read / fetch_for_write):
      a missing id is NotFoundError (404), an existing record the caller
      may not touch is ForbiddenError (403).

Usage:
    caller = CallerContext.from_account(account)
    project = fetch_for_write(Project, project_id, caller)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from stagetrack.core.exceptions import ForbiddenError, NotFoundError
from stagetrack.models import db
from stagetrack.models.auth import ROLE_MANAGER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    """Authenticated caller passed explicitly into every service call."""

    account_id: int
    role: str
    referred_by_id: int | None = None

    @property
    def is_manager(self) -> bool:
        return self.role == ROLE_MANAGER

    @classmethod
    def from_account(cls, account) -> "CallerContext":
        return cls(
            account_id=account.id,
            role=account.role,
            referred_by_id=account.referred_by_id,
        )


def visible_owner_id(caller: CallerContext) -> int | None:
    """Owner id whose resources the caller may read, or None for an empty scope."""
    if caller.is_manager:
        return caller.account_id
    return caller.referred_by_id


def can_read(caller: CallerContext, owner_id: int | None) -> bool:
    scope = visible_owner_id(caller)
    return scope is not None and owner_id == scope


def can_write(caller: CallerContext, owner_id: int | None) -> bool:
    return caller.is_manager and owner_id == caller.account_id


def require_manager(caller: CallerContext, action: str = "modify resources") -> None:
    """Raise ForbiddenError unless the caller has the manager role."""
    if not caller.is_manager:
        logger.warning(
            "Access denied: account %s (role=%s) tried to %s",
            caller.account_id, caller.role, action,
        )
        raise ForbiddenError(f"Only managers can {action}")


def check_read(caller: CallerContext, owner_id: int | None) -> None:
    if not can_read(caller, owner_id):
        logger.warning(
            "Access denied: account %s cannot read resources of owner %s",
            caller.account_id, owner_id,
        )
        raise ForbiddenError()


def check_write(caller: CallerContext, owner_id: int | None, action: str = "modify resources") -> None:
    require_manager(caller, action)
    if owner_id != caller.account_id:
        logger.warning(
            "Access denied: manager %s cannot modify resources of owner %s",
            caller.account_id, owner_id,
        )
        raise ForbiddenError()


def fetch_for_read(model, pk: int, caller: CallerContext):
    """Load by id, 404 if absent, 403 if outside the caller's read scope."""
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    check_read(caller, obj.owner_id)
    return obj


def fetch_for_write(model, pk: int, caller: CallerContext, action: str = "modify resources"):
    """Load by id, 404 if absent, 403 unless the caller is the owning manager."""
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    check_write(caller, obj.owner_id, action)
    return obj
