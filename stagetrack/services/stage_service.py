"""Stage catalog service."""

from __future__ import annotations

import logging

from sqlalchemy import and_, or_

from stagetrack.core.exceptions import ConflictError, ValidationError
from stagetrack.models import db
from stagetrack.models.project import Project, ProjectStage
from stagetrack.models.stage import Stage
from stagetrack.services.access import (
    CallerContext,
    can_read,
    fetch_for_read,
    fetch_for_write,
    require_manager,
    visible_owner_id,
)

logger = logging.getLogger(__name__)


def list_stages(caller: CallerContext, *, project_id: int | None = None) -> list[Stage]:
    """Global catalog of the visible owner, plus the custom stages of project_id.

    Custom stages are only added when the project exists and is visible to
    the caller; an unknown or foreign project_id silently yields the global
    list.
    """
    owner_id = visible_owner_id(caller)
    if owner_id is None:
        return []

    condition = Stage.is_custom.is_(False)
    if project_id is not None:
        project = db.session.get(Project, project_id)
        if project is not None and can_read(caller, project.owner_id):
            condition = or_(
                condition,
                and_(Stage.is_custom.is_(True), Stage.project_id == project.id),
            )

    return (
        Stage.query_for_owner(owner_id)
        .filter(condition)
        .order_by(Stage.name, Stage.id)
        .all()
    )


def get_stage(caller: CallerContext, stage_id: int) -> Stage:
    return fetch_for_read(Stage, stage_id, caller)


def create_stage(caller: CallerContext, data: dict) -> Stage:
    """Create a global catalog stage, or a custom one bound to a project the caller owns."""
    require_manager(caller, "create stages")

    name = str(data.get("name", "") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    is_custom = bool(data.get("is_custom", False))
    project_id = None
    if is_custom:
        raw_project_id = data.get("project_id")
        if raw_project_id in (None, ""):
            raise ValidationError(
                "project_id is required for custom stages",
                details={"project_id": "required"},
            )
        try:
            raw_project_id = int(raw_project_id)
        except (TypeError, ValueError):
            raise ValidationError("project_id must be an integer", details={"project_id": "invalid"})
        project = fetch_for_write(Project, raw_project_id, caller, "create custom stages")
        project_id = project.id

    stage = Stage(
        name=name,
        description=str(data.get("description", "") or "").strip(),
        is_custom=is_custom,
        project_id=project_id,
        owner_id=caller.account_id,
    )
    db.session.add(stage)
    db.session.commit()
    logger.info("Stage %s created by manager %s (custom=%s)", stage.id, caller.account_id, is_custom,
                extra={"project_id": project_id})
    return stage


def update_stage(caller: CallerContext, stage_id: int, data: dict) -> Stage:
    stage = fetch_for_write(Stage, stage_id, caller, "update stages")

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty", details={"name": "required"})
        stage.name = name
    if "description" in data:
        stage.description = str(data.get("description") or "").strip()

    db.session.commit()
    return stage


def delete_stage(caller: CallerContext, stage_id: int) -> None:
    """Delete a catalog stage that no project instance references."""
    stage = fetch_for_write(Stage, stage_id, caller, "delete stages")

    in_use = ProjectStage.query.filter_by(stage_id=stage.id).count()
    if in_use:
        raise ConflictError(
            "Stage", "id", stage.id,
            message=f"Stage is used by {in_use} project stage(s) and cannot be deleted",
        )

    db.session.delete(stage)
    db.session.commit()
    logger.info("Stage %s deleted by manager %s", stage_id, caller.account_id)
