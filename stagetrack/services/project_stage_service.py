"""
Project-stage instance service.

An instance binds one catalog Stage into a project's ordered list and carries
its own lifecycle:

    create  Ongoing    start_date kept if given, completion_date forced empty
    create  Completed  start_date / completion_date kept if given
    update  → Ongoing   start_date replaced if given, completion_date cleared
    update  → Completed start_date / completion_date replaced if given
    delete             connections touching the instance removed first

Every create / update / delete calls status_engine.on_instance_changed()
after its own commit.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_

from stagetrack.core.exceptions import ConflictError, NotFoundError, ValidationError
from stagetrack.models import db
from stagetrack.models.project import (
    STAGE_STATUS_COMPLETED,
    STAGE_STATUS_ONGOING,
    STAGE_STATUSES,
    Project,
    ProjectStage,
    StageConnection,
)
from stagetrack.models.stage import Stage
from stagetrack.services.access import CallerContext, fetch_for_read, fetch_for_write
from stagetrack.services.helpers.scoped_queries import get_scoped
from stagetrack.services.status_engine import on_instance_changed
from stagetrack.utils.helpers import parse_business_date

logger = logging.getLogger(__name__)


def validate_stage_status(status) -> str:
    if status not in STAGE_STATUSES:
        raise ConflictError(
            "ProjectStage", "status", status,
            message=f"Invalid stage status {status!r}. Allowed: {', '.join(STAGE_STATUSES)}",
        )
    return status


def next_order(project_id: int) -> int:
    """max(order) + 1 within the project, or 1 for an empty project."""
    current = (
        db.session.query(func.max(ProjectStage.order))
        .filter(ProjectStage.project_id == project_id)
        .scalar()
    )
    return (current or 0) + 1


def _resolve_catalog_stage(project: Project, stage_id) -> Stage:
    """A catalog stage usable by this project: same owner, global or custom to it."""
    if stage_id in (None, ""):
        raise ValidationError("stage_id is required", details={"stage_id": "required"})
    try:
        stage_id = int(stage_id)
    except (TypeError, ValueError):
        raise ValidationError("stage_id must be an integer", details={"stage_id": "invalid"})

    stage = get_scoped(Stage, stage_id, owner_id=project.owner_id)
    if stage.is_custom and stage.project_id != project.id:
        raise NotFoundError(resource="Stage", resource_id=stage_id)
    return stage


def list_project_stages(caller: CallerContext, project_id: int) -> list[ProjectStage]:
    """Instances of a visible project, ascending by order."""
    project = fetch_for_read(Project, project_id, caller)
    return project.stage_instances.all()


def add_project_stage(caller: CallerContext, project_id: int, data: dict) -> ProjectStage:
    """Bind a catalog stage into the project at the end of its order."""
    project = fetch_for_write(Project, project_id, caller, "add project stages")
    stage = _resolve_catalog_stage(project, data.get("stage_id"))

    status = validate_stage_status(data.get("status") or STAGE_STATUS_ONGOING)
    start_date = parse_business_date(data.get("start_date"), "start_date")
    completion_date = None
    if status == STAGE_STATUS_COMPLETED:
        completion_date = parse_business_date(data.get("completion_date"), "completion_date")

    instance = ProjectStage(
        project_id=project.id,
        stage_id=stage.id,
        status=status,
        start_date=start_date,
        completion_date=completion_date,
        order=next_order(project.id),
    )
    db.session.add(instance)
    db.session.commit()
    logger.info(
        "Stage instance %s (stage=%s, order=%s) added to project %s",
        instance.id, stage.id, instance.order, project.id,
        extra={"project_id": project.id},
    )

    on_instance_changed(project.id)
    return instance


def update_project_stage(
    caller: CallerContext, project_id: int, instance_id: int, data: dict,
) -> ProjectStage:
    """Apply a lifecycle transition to one instance. No status means no change."""
    project = fetch_for_write(Project, project_id, caller, "update project stages")
    instance = get_scoped(ProjectStage, instance_id, project_id=project.id)

    status = data.get("status")
    if status:
        validate_stage_status(status)
        start_date = parse_business_date(data.get("start_date"), "start_date")

        if status == STAGE_STATUS_ONGOING:
            if start_date is not None:
                instance.start_date = start_date
            instance.completion_date = None
        else:
            completion_date = parse_business_date(data.get("completion_date"), "completion_date")
            if start_date is not None:
                instance.start_date = start_date
            if completion_date is not None:
                instance.completion_date = completion_date

        instance.status = status
        db.session.commit()

    on_instance_changed(project.id)
    return instance


def delete_project_stage(caller: CallerContext, project_id: int, instance_id: int) -> None:
    """Delete an instance together with every connection it is an endpoint of."""
    project = fetch_for_write(Project, project_id, caller, "delete project stages")
    instance = get_scoped(ProjectStage, instance_id, project_id=project.id)

    try:
        removed = (
            StageConnection.query
            .filter(
                StageConnection.project_id == project.id,
                or_(
                    StageConnection.from_stage_id == instance.id,
                    StageConnection.to_stage_id == instance.id,
                ),
            )
            .delete(synchronize_session=False)
        )
        db.session.delete(instance)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception(
            "Cascade delete failed for stage instance %s", instance_id,
            extra={"project_id": project.id},
        )
        raise

    logger.info(
        "Stage instance %s deleted from project %s (%d connections removed)",
        instance_id, project.id, removed,
        extra={"project_id": project.id},
    )
    on_instance_changed(project.id)
