"""Connection creation, listing and removal."""

import pytest

from stagetrack.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from stagetrack.models import db as _db
from stagetrack.models.project import ProjectStage, StageConnection
from stagetrack.services import (
    connection_service,
    project_service,
    project_stage_service,
    stage_service,
)


@pytest.fixture()
def wired(manager_caller):
    stage = stage_service.create_stage(manager_caller, {"name": "Build"})
    project = project_service.create_project(manager_caller, {"name": "Graph"})
    a = project_stage_service.add_project_stage(manager_caller, project.id, {"stage_id": stage.id})
    b = project_stage_service.add_project_stage(manager_caller, project.id, {"stage_id": stage.id})
    return project, a, b, stage


def test_edge_is_listed_once_on_each_endpoint(manager_caller, wired):
    project, a, b, _ = wired

    conn = connection_service.create_connection(manager_caller, project.id, a.id, b.id)

    assert conn.from_stage_id == a.id
    assert conn.to_stage_id == b.id
    assert _db.session.get(ProjectStage, a.id).connection_ids == [conn.id]
    assert _db.session.get(ProjectStage, b.id).connection_ids == [conn.id]
    assert [c.id for c in connection_service.list_connections(manager_caller, project.id)] == [conn.id]


def test_reverse_edge_is_a_separate_connection(manager_caller, wired):
    project, a, b, _ = wired

    forward = connection_service.create_connection(manager_caller, project.id, a.id, b.id)
    backward = connection_service.create_connection(manager_caller, project.id, b.id, a.id)

    assert forward.id != backward.id
    assert _db.session.get(ProjectStage, a.id).connection_ids == [forward.id, backward.id]


def test_duplicate_edge_is_rejected(manager_caller, wired):
    project, a, b, _ = wired
    conn = connection_service.create_connection(manager_caller, project.id, a.id, b.id)

    with pytest.raises(ValidationError) as exc:
        connection_service.create_connection(manager_caller, project.id, a.id, b.id)

    assert str(exc.value) == "Connection already exists"
    assert StageConnection.query.filter_by(project_id=project.id).count() == 1
    assert _db.session.get(ProjectStage, a.id).connection_ids == [conn.id]
    assert _db.session.get(ProjectStage, b.id).connection_ids == [conn.id]


def test_endpoint_from_another_project_is_not_found(manager_caller, wired):
    project, a, _, stage = wired
    other = project_service.create_project(manager_caller, {"name": "Elsewhere"})
    foreign = project_stage_service.add_project_stage(manager_caller, other.id, {"stage_id": stage.id})

    with pytest.raises(NotFoundError):
        connection_service.create_connection(manager_caller, project.id, a.id, foreign.id)


def test_missing_endpoint_is_a_validation_error(manager_caller, wired):
    project, a, _, _ = wired

    with pytest.raises(ValidationError):
        connection_service.create_connection(manager_caller, project.id, a.id, None)
    with pytest.raises(ValidationError):
        connection_service.create_connection(manager_caller, project.id, "abc", a.id)


def test_member_cannot_connect(manager_caller, member_caller, wired):
    project, a, b, _ = wired

    with pytest.raises(ForbiddenError):
        connection_service.create_connection(member_caller, project.id, a.id, b.id)


def test_member_can_list(manager_caller, member_caller, wired):
    project, a, b, _ = wired
    connection_service.create_connection(manager_caller, project.id, a.id, b.id)

    assert len(connection_service.list_connections(member_caller, project.id)) == 1


def test_delete_connection_updates_both_endpoints(manager_caller, wired):
    project, a, b, _ = wired
    conn = connection_service.create_connection(manager_caller, project.id, a.id, b.id)

    connection_service.delete_connection(manager_caller, project.id, conn.id)

    assert _db.session.get(ProjectStage, a.id).connection_ids == []
    assert _db.session.get(ProjectStage, b.id).connection_ids == []


def test_delete_connection_of_other_project_is_not_found(manager_caller, wired):
    project, a, b, stage = wired
    conn = connection_service.create_connection(manager_caller, project.id, a.id, b.id)
    other = project_service.create_project(manager_caller, {"name": "Elsewhere"})

    with pytest.raises(NotFoundError):
        connection_service.delete_connection(manager_caller, other.id, conn.id)
