"""Stage connection service: directed edges between instances of one project.

Connections annotate the ordered stage list for visualisation. There is no
cycle check and no requirement that an edge follows `order`.
"""

from __future__ import annotations

import logging

from stagetrack.core.exceptions import ValidationError
from stagetrack.models import db
from stagetrack.models.project import Project, ProjectStage, StageConnection
from stagetrack.services.access import CallerContext, fetch_for_read, fetch_for_write
from stagetrack.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


def _instance_id(value, field: str) -> int:
    if value in (None, ""):
        raise ValidationError(f"{field} is required", details={field: "required"})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"})


def list_connections(caller: CallerContext, project_id: int) -> list[StageConnection]:
    project = fetch_for_read(Project, project_id, caller)
    return project.connections.all()


def create_connection(caller: CallerContext, project_id: int, from_stage_id, to_stage_id) -> StageConnection:
    """Create the edge from_stage → to_stage.

    Raises:
        NotFoundError: project missing, or an endpoint is not an instance of it.
        ForbiddenError: caller cannot write the project.
        ValidationError: an endpoint id is missing, or the same directed edge
            already exists.
    """
    project = fetch_for_write(Project, project_id, caller, "create stage connections")
    from_id = _instance_id(from_stage_id, "from_stage")
    to_id = _instance_id(to_stage_id, "to_stage")

    source = get_scoped(ProjectStage, from_id, project_id=project.id)
    target = get_scoped(ProjectStage, to_id, project_id=project.id)

    existing = StageConnection.query.filter_by(
        project_id=project.id, from_stage_id=source.id, to_stage_id=target.id,
    ).first()
    if existing:
        raise ValidationError(
            "Connection already exists",
            details={"edge": f"{source.id}->{target.id}"},
        )

    connection = StageConnection(
        project_id=project.id,
        from_stage_id=source.id,
        to_stage_id=target.id,
    )
    db.session.add(connection)
    db.session.commit()
    logger.info(
        "Connection %s created: %s → %s in project %s",
        connection.id, source.id, target.id, project.id,
        extra={"project_id": project.id},
    )
    return connection


def delete_connection(caller: CallerContext, project_id: int, connection_id: int) -> None:
    project = fetch_for_write(Project, project_id, caller, "delete stage connections")
    connection = get_scoped(StageConnection, connection_id, project_id=project.id)
    db.session.delete(connection)
    db.session.commit()
    logger.info("Connection %s deleted from project %s", connection_id, project.id,
                extra={"project_id": project.id})
