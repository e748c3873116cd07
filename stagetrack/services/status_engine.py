"""
Project Status Derivation

Recomputes a project's aggregate status from the statuses of its stage
instances. Invoked through on_instance_changed() after every stage-instance
create / update / delete.

Precedence (first match wins):
  1. no stage instances               → Pending
  2. any instance Ongoing             → Ongoing
  3. every instance Completed         → current status kept
  4. anything else                    → Pending

Rule 3 never promotes a project to Completed: stage completion is necessary
but not sufficient, and only an explicit operator update marks a project
Completed or Archived. Archived is never produced here.

Usage:
    from stagetrack.services.status_engine import derive_status, on_instance_changed

    derive_status("Ongoing", ["Completed", "Completed"])   # → "Ongoing"
    on_instance_changed(project_id)
"""

import logging
from collections.abc import Iterable

from sqlalchemy.exc import SQLAlchemyError

from stagetrack.models import db
from stagetrack.models.project import (
    PROJECT_STATUS_ONGOING,
    PROJECT_STATUS_PENDING,
    STAGE_STATUS_COMPLETED,
    STAGE_STATUS_ONGOING,
    Project,
    ProjectStage,
)

logger = logging.getLogger(__name__)


def derive_status(current_status: str, instance_statuses: Iterable[str]) -> str:
    """Pure status derivation from the instance-status multiset."""
    statuses = list(instance_statuses)
    if not statuses:
        return PROJECT_STATUS_PENDING
    if STAGE_STATUS_ONGOING in statuses:
        return PROJECT_STATUS_ONGOING
    if all(s == STAGE_STATUS_COMPLETED for s in statuses):
        return current_status
    return PROJECT_STATUS_PENDING


def on_instance_changed(project_id: int) -> str | None:
    """Re-derive and persist a project's status after a stage-instance mutation.

    Best-effort: the triggering mutation is already committed, so failures
    here are logged and swallowed rather than surfaced to the caller.

    Returns:
        The project's status after derivation, or None when the project
        could not be reloaded.
    """
    try:
        project = db.session.get(Project, project_id)
        if project is None:
            logger.warning("Status derivation skipped: project %s not found", project_id)
            return None

        statuses = [
            row[0]
            for row in db.session.query(ProjectStage.status)
            .filter(ProjectStage.project_id == project_id)
            .all()
        ]
        new_status = derive_status(project.status, statuses)
        if new_status != project.status:
            old_status = project.status
            project.status = new_status
            db.session.commit()
            logger.info(
                "Project %s status %s → %s (%d stage instances)",
                project_id, old_status, new_status, len(statuses),
                extra={"project_id": project_id},
            )
        return project.status
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Status derivation failed for project %s", project_id)
        return None
