"""Project CRUD service with owner-scoped visibility and manager-only writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import extract

from stagetrack.core.exceptions import ConflictError, ValidationError
from stagetrack.models import db
from stagetrack.models.notification import EmailLog
from stagetrack.models.project import (
    PROJECT_STATUS_PENDING,
    PROJECT_STATUSES,
    Project,
    ProjectStage,
    StageConnection,
)
from stagetrack.models.stage import Stage
from stagetrack.services.access import (
    CallerContext,
    fetch_for_read,
    fetch_for_write,
    require_manager,
    visible_owner_id,
)
from stagetrack.utils.helpers import parse_business_date

logger = logging.getLogger(__name__)


def validate_project_status(status) -> str:
    if status not in PROJECT_STATUSES:
        raise ConflictError(
            "Project", "status", status,
            message=f"Invalid status value {status!r}. Allowed: {', '.join(PROJECT_STATUSES)}",
        )
    return status


# ── Partial update ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProjectPatch:
    """Partial project update. None means "leave the field alone"."""

    name: str | None = None
    description: str | None = None
    status: str | None = None
    created_at: date | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "ProjectPatch":
        """Build a patch from a request body, validating only the keys present."""
        name = None
        if "name" in data:
            name = str(data.get("name") or "").strip()
            if not name:
                raise ValidationError("name cannot be empty", details={"name": "required"})

        description = None
        if "description" in data:
            description = str(data.get("description") or "").strip()

        status = None
        if data.get("status"):
            status = validate_project_status(data["status"])

        created_at = None
        if data.get("created_at"):
            created_at = parse_business_date(data["created_at"], "created_at")

        return cls(name=name, description=description, status=status, created_at=created_at)

    def is_empty(self) -> bool:
        return all(
            v is None for v in (self.name, self.description, self.status, self.created_at)
        )


def apply_project_patch(current: dict, patch: ProjectPatch) -> dict:
    """Merge a patch over current field values without touching the database.

    Args:
        current: mapping with name / description / status / created_at.
        patch: fields to overwrite; None fields keep the current value.

    Returns:
        A new mapping with the merged values.
    """
    merged = dict(current)
    for field in ("name", "description", "status", "created_at"):
        value = getattr(patch, field)
        if value is not None:
            merged[field] = value
    return merged


# ── Queries ──────────────────────────────────────────────────────────────────


def list_projects(
    caller: CallerContext,
    *,
    year: int | None = None,
    month: int | None = None,
) -> list[Project]:
    """List projects visible to the caller, newest creation date first.

    month is only honoured together with year.
    """
    owner_id = visible_owner_id(caller)
    if owner_id is None:
        return []

    query = Project.query_for_owner(owner_id)
    if year is not None:
        query = query.filter(extract("year", Project.created_at) == year)
        if month is not None:
            query = query.filter(extract("month", Project.created_at) == month)

    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()


def list_project_years(caller: CallerContext) -> list[int]:
    """Distinct creation years of the caller's visible projects, descending."""
    owner_id = visible_owner_id(caller)
    if owner_id is None:
        return []
    rows = (
        db.session.query(Project.created_at)
        .filter(Project.owner_id == owner_id)
        .all()
    )
    return sorted({row[0].year for row in rows if row[0] is not None}, reverse=True)


def get_project(caller: CallerContext, project_id: int) -> Project:
    """Load a project the caller may read (404 if absent, 403 if not visible)."""
    return fetch_for_read(Project, project_id, caller)


# ── Mutations ────────────────────────────────────────────────────────────────


def create_project(caller: CallerContext, data: dict) -> Project:
    """Create a project owned by the calling manager."""
    require_manager(caller, "create projects")

    name = str(data.get("name", "") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    status = data.get("status") or PROJECT_STATUS_PENDING
    validate_project_status(status)

    created_at = parse_business_date(data.get("created_at"), "created_at") or date.today()

    project = Project(
        name=name,
        description=str(data.get("description", "") or "").strip(),
        status=status,
        created_at=created_at,
        owner_id=caller.account_id,
    )
    db.session.add(project)
    db.session.commit()
    logger.info("Project %s created by manager %s", project.id, caller.account_id,
                extra={"project_id": project.id})
    return project


def update_project(caller: CallerContext, project_id: int, patch: ProjectPatch) -> Project:
    """Apply a partial update to a project the caller owns."""
    project = fetch_for_write(Project, project_id, caller, "update projects")

    merged = apply_project_patch(
        {
            "name": project.name,
            "description": project.description,
            "status": project.status,
            "created_at": project.created_at,
        },
        patch,
    )
    for field, value in merged.items():
        setattr(project, field, value)

    db.session.commit()
    return project


def update_project_status(caller: CallerContext, project_id: int, status) -> Project:
    """Explicit operator status change. Completed and Archived are only reached here."""
    project = fetch_for_write(Project, project_id, caller, "update projects")
    validate_project_status(status)

    old_status = project.status
    project.status = status
    db.session.commit()
    logger.info("Project %s status set %s → %s by manager %s",
                project_id, old_status, status, caller.account_id,
                extra={"project_id": project_id})
    return project


def delete_project(caller: CallerContext, project_id: int) -> None:
    """Delete a project with its connections, stage instances and custom stages."""
    project = fetch_for_write(Project, project_id, caller, "delete projects")

    try:
        StageConnection.query.filter_by(project_id=project_id).delete(synchronize_session=False)
        ProjectStage.query.filter_by(project_id=project_id).delete(synchronize_session=False)
        Stage.query.filter_by(project_id=project_id, is_custom=True).delete(synchronize_session=False)
        EmailLog.query.filter_by(project_id=project_id).update(
            {"project_id": None}, synchronize_session=False,
        )
        db.session.delete(project)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Cascade delete failed for project %s", project_id,
                         extra={"project_id": project_id})
        raise

    logger.info("Project %s deleted by manager %s", project_id, caller.account_id,
                extra={"project_id": project_id})
