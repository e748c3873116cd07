"""
Owner- and project-scoped query helpers.

Get-by-id lookups that must not reveal whether a record exists outside the
caller's scope go through these helpers instead of db.session.get(Model, pk).

Usage:
    # Scope by owner_id (OwnedModel subclasses)
    recipient = get_scoped(EmailRecipient, rid, owner_id=owner_id)

    # Scope by project_id (stage instances, connections)
    ps = get_scoped(ProjectStage, sid, project_id=project_id)

    # Scope by whatever the caller may see
    recipient = get_visible(EmailRecipient, rid, caller)

Scope field resolution:
    Each keyword argument maps directly to a column name on the model.
    If the model does not have that column, a ValueError is raised at
    call time so the bug surfaces during development/testing rather than
    silently allowing an unscoped lookup.
"""

import logging

from sqlalchemy import select

from stagetrack.core.exceptions import NotFoundError
from stagetrack.models import db
from stagetrack.services.access import visible_owner_id

logger = logging.getLogger(__name__)


def get_scoped(
    model,
    pk: int,
    *,
    owner_id: int | None = None,
    project_id: int | None = None,
):
    """Fetch a single entity by PK with mandatory scope filter.

    Out-of-scope access is indistinguishable from a missing record: both
    raise NotFoundError → HTTP 404.

    Raises:
        ValueError: If no scope parameter is provided, or a provided scope
                    names a column the model does not have.
        NotFoundError: If the entity does not exist OR belongs to a
                       different scope.
    """
    provided_scopes = {
        k: v for k, v in (("owner_id", owner_id), ("project_id", project_id))
        if v is not None
    }
    if not provided_scopes:
        raise ValueError(
            f"{model.__name__} id={pk} requires a scope filter (owner_id or project_id). "
            "Unscoped lookups are forbidden."
        )

    missing_fields = [field for field in provided_scopes if not hasattr(model, field)]
    if missing_fields:
        raise ValueError(
            f"{model.__name__} has no scope column(s) {sorted(missing_fields)}; "
            "refusing to perform an unscoped lookup."
        )

    stmt = select(model).where(model.id == pk)
    for field, value in provided_scopes.items():
        stmt = stmt.where(getattr(model, field) == value)

    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug(
            "get_scoped: %s id=%s not found in scope %s",
            model.__name__, pk, provided_scopes,
        )
        raise NotFoundError(resource=model.__name__, resource_id=pk)

    return result


def get_visible(model, pk: int, caller, *, for_write: bool = False):
    """Scoped lookup against the owner the caller may see (or write, with for_write).

    A caller with an empty scope gets NotFoundError, same as a miss.
    """
    owner_id = caller.account_id if for_write else visible_owner_id(caller)
    if owner_id is None:
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return get_scoped(model, pk, owner_id=owner_id)
