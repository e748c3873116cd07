"""Stage catalog: global and custom stages."""

import pytest

from stagetrack.core.exceptions import ConflictError, ForbiddenError, ValidationError
from stagetrack.models import db as _db
from stagetrack.models.stage import Stage
from stagetrack.services import project_service, project_stage_service, stage_service


@pytest.fixture()
def project(manager_caller):
    return project_service.create_project(manager_caller, {"name": "Catalog"})


def test_global_stage_defaults(manager_caller):
    stage = stage_service.create_stage(manager_caller, {"name": "  Analysis  "})

    assert stage.name == "Analysis"
    assert stage.is_custom is False
    assert stage.project_id is None
    assert stage.owner_id == manager_caller.account_id


def test_custom_stage_requires_project(manager_caller):
    with pytest.raises(ValidationError):
        stage_service.create_stage(manager_caller, {"name": "Odd", "is_custom": True})


def test_custom_stage_requires_own_project(other_caller, project):
    with pytest.raises(ForbiddenError):
        stage_service.create_stage(
            other_caller, {"name": "Odd", "is_custom": True, "project_id": project.id})


def test_member_cannot_create_stage(member_caller):
    with pytest.raises(ForbiddenError):
        stage_service.create_stage(member_caller, {"name": "Nope"})


def test_name_required(manager_caller):
    with pytest.raises(ValidationError):
        stage_service.create_stage(manager_caller, {"name": "   "})


def test_list_adds_custom_stages_only_for_that_project(manager_caller, project):
    stage_service.create_stage(manager_caller, {"name": "Beta"})
    stage_service.create_stage(manager_caller, {"name": "Alpha"})
    stage_service.create_stage(
        manager_caller, {"name": "Custom", "is_custom": True, "project_id": project.id})
    other = project_service.create_project(manager_caller, {"name": "Second"})
    stage_service.create_stage(
        manager_caller, {"name": "Elsewhere", "is_custom": True, "project_id": other.id})

    assert [s.name for s in stage_service.list_stages(manager_caller)] == ["Alpha", "Beta"]
    assert [s.name for s in stage_service.list_stages(manager_caller, project_id=project.id)] == [
        "Alpha", "Beta", "Custom",
    ]


def test_member_sees_manager_catalog(manager_caller, member_caller, project):
    stage_service.create_stage(manager_caller, {"name": "Shared"})

    assert [s.name for s in stage_service.list_stages(member_caller)] == ["Shared"]


def test_update_stage(manager_caller):
    stage = stage_service.create_stage(manager_caller, {"name": "Draft"})

    stage = stage_service.update_stage(manager_caller, stage.id, {"description": "Write it"})

    assert stage.name == "Draft"
    assert stage.description == "Write it"
    with pytest.raises(ValidationError):
        stage_service.update_stage(manager_caller, stage.id, {"name": ""})


def test_delete_unused_stage(manager_caller):
    stage = stage_service.create_stage(manager_caller, {"name": "Temp"})
    stage_id = stage.id

    stage_service.delete_stage(manager_caller, stage_id)

    assert _db.session.get(Stage, stage_id) is None


def test_delete_stage_in_use_conflicts(manager_caller, project):
    stage = stage_service.create_stage(manager_caller, {"name": "Busy"})
    project_stage_service.add_project_stage(manager_caller, project.id, {"stage_id": stage.id})

    with pytest.raises(ConflictError):
        stage_service.delete_stage(manager_caller, stage.id)
