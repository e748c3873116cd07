"""Stage instance lifecycle, ordering and cascade behaviour."""

from datetime import date

import pytest

from stagetrack.core.exceptions import ConflictError, NotFoundError, ValidationError
from stagetrack.models import db as _db
from stagetrack.models.project import Project, ProjectStage, StageConnection
from stagetrack.services import (
    connection_service,
    project_service,
    project_stage_service,
    stage_service,
)


@pytest.fixture()
def project(manager_caller):
    return project_service.create_project(manager_caller, {"name": "Lifecycle"})


@pytest.fixture()
def stage(manager_caller):
    return stage_service.create_stage(manager_caller, {"name": "Design"})


def _add(caller, project, stage, **data):
    return project_stage_service.add_project_stage(
        caller, project.id, {"stage_id": stage.id, **data})


# ── Ordering ─────────────────────────────────────────────────────────────


def test_first_instance_gets_order_one(manager_caller, project, stage):
    assert _add(manager_caller, project, stage).order == 1


def test_order_is_max_plus_one(manager_caller, project, stage):
    first = _add(manager_caller, project, stage)
    second = _add(manager_caller, project, stage)
    project_stage_service.delete_project_stage(manager_caller, project.id, first.id)

    third = _add(manager_caller, project, stage)

    assert second.order == 2
    assert third.order == 3
    assert [ps.order for ps in project_stage_service.list_project_stages(manager_caller, project.id)] == [2, 3]


def test_order_is_per_project(manager_caller, project, stage):
    _add(manager_caller, project, stage)
    _add(manager_caller, project, stage)
    other = project_service.create_project(manager_caller, {"name": "Other"})

    assert _add(manager_caller, other, stage).order == 1


# ── Create transitions ───────────────────────────────────────────────────


def test_create_ongoing_drops_completion_date(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, status="Ongoing",
              start_date="2024-01-01", completion_date="2024-02-01")

    assert ps.status == "Ongoing"
    assert ps.start_date == date(2024, 1, 1)
    assert ps.completion_date is None


def test_create_completed_keeps_both_dates(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, status="Completed",
              start_date="2024-01-01", completion_date="2024-02-01")

    assert ps.start_date == date(2024, 1, 1)
    assert ps.completion_date == date(2024, 2, 1)


def test_create_defaults_to_ongoing(manager_caller, project, stage):
    assert _add(manager_caller, project, stage).status == "Ongoing"


def test_create_rejects_bad_input(manager_caller, project, stage):
    with pytest.raises(ConflictError):
        _add(manager_caller, project, stage, status="Started")
    with pytest.raises(ValidationError):
        project_stage_service.add_project_stage(manager_caller, project.id, {})
    with pytest.raises(NotFoundError):
        project_stage_service.add_project_stage(manager_caller, project.id, {"stage_id": 999})


def test_custom_stage_of_other_project_is_not_usable(manager_caller, project):
    other = project_service.create_project(manager_caller, {"name": "Other"})
    custom = stage_service.create_stage(
        manager_caller, {"name": "Other only", "is_custom": True, "project_id": other.id})

    with pytest.raises(NotFoundError):
        _add(manager_caller, project, custom)


def test_foreign_catalog_stage_is_not_usable(manager_caller, other_caller, project):
    foreign = stage_service.create_stage(other_caller, {"name": "Theirs"})

    with pytest.raises(NotFoundError):
        _add(manager_caller, project, foreign)


# ── Update transitions ───────────────────────────────────────────────────


def test_back_to_ongoing_clears_completion_date(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, status="Completed",
              start_date="2024-01-01", completion_date="2024-01-10")

    ps = project_stage_service.update_project_stage(
        manager_caller, project.id, ps.id, {"status": "Ongoing"})

    assert ps.status == "Ongoing"
    assert ps.start_date == date(2024, 1, 1)
    assert ps.completion_date is None


def test_ongoing_replaces_start_date_when_given(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, start_date="2024-01-01")

    ps = project_stage_service.update_project_stage(
        manager_caller, project.id, ps.id, {"status": "Ongoing", "start_date": "2024-02-02"})

    assert ps.start_date == date(2024, 2, 2)


def test_completed_keeps_prior_start_date_when_omitted(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, start_date="2024-01-01")

    ps = project_stage_service.update_project_stage(
        manager_caller, project.id, ps.id, {"status": "Completed", "completion_date": "2024-03-01"})

    assert ps.status == "Completed"
    assert ps.start_date == date(2024, 1, 1)
    assert ps.completion_date == date(2024, 3, 1)


def test_update_without_status_changes_nothing(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, start_date="2024-01-01")

    ps = project_stage_service.update_project_stage(
        manager_caller, project.id, ps.id, {"start_date": "2025-01-01"})

    assert ps.status == "Ongoing"
    assert ps.start_date == date(2024, 1, 1)


# ── Status derivation end to end ─────────────────────────────────────────


def test_scenario_status_follows_instances(manager_caller, project, stage):
    assert project.status == "Pending"

    s1 = _add(manager_caller, project, stage, status="Ongoing", start_date="2024-01-01")
    assert _db.session.get(Project, project.id).status == "Ongoing"

    project_stage_service.update_project_stage(
        manager_caller, project.id, s1.id, {"status": "Completed", "completion_date": "2024-01-10"})
    assert _db.session.get(Project, project.id).status == "Ongoing"

    project_stage_service.delete_project_stage(manager_caller, project.id, s1.id)
    assert _db.session.get(Project, project.id).status == "Pending"


def test_archived_project_survives_completed_updates(manager_caller, project, stage):
    ps = _add(manager_caller, project, stage, status="Completed",
              start_date="2024-01-01", completion_date="2024-01-02")
    project_service.update_project_status(manager_caller, project.id, "Archived")

    project_stage_service.update_project_stage(
        manager_caller, project.id, ps.id, {"status": "Completed", "completion_date": "2024-01-03"})

    assert _db.session.get(Project, project.id).status == "Archived"


# ── Cascade ──────────────────────────────────────────────────────────────


def test_delete_instance_removes_its_connections(manager_caller, project, stage):
    a = _add(manager_caller, project, stage)
    b = _add(manager_caller, project, stage)
    c = _add(manager_caller, project, stage)
    connection_service.create_connection(manager_caller, project.id, a.id, b.id)
    connection_service.create_connection(manager_caller, project.id, c.id, a.id)
    keep = connection_service.create_connection(manager_caller, project.id, b.id, c.id)
    a_id = a.id

    project_stage_service.delete_project_stage(manager_caller, project.id, a_id)
    _db.session.expire_all()

    remaining = StageConnection.query.filter_by(project_id=project.id).all()
    assert [conn.id for conn in remaining] == [keep.id]
    assert _db.session.get(ProjectStage, a_id) is None
    assert a_id not in _db.session.get(Project, project.id).stage_ids
    assert not StageConnection.query.filter(
        (StageConnection.from_stage_id == a_id) | (StageConnection.to_stage_id == a_id)
    ).count()
    assert _db.session.get(ProjectStage, b.id).connection_ids == [keep.id]


def test_delete_instance_of_other_project_is_not_found(manager_caller, project, stage):
    other = project_service.create_project(manager_caller, {"name": "Other"})
    ps = _add(manager_caller, other, stage)

    with pytest.raises(NotFoundError):
        project_stage_service.delete_project_stage(manager_caller, project.id, ps.id)
