"""Project status derivation: pure precedence rules and the persistence hook."""

from datetime import date

import pytest

from stagetrack.models import db as _db
from stagetrack.models.project import Project, ProjectStage
from stagetrack.models.stage import Stage
from stagetrack.services.status_engine import derive_status, on_instance_changed


@pytest.mark.parametrize(
    "current, statuses, expected",
    [
        ("Ongoing", [], "Pending"),
        ("Completed", [], "Pending"),
        ("Pending", ["Ongoing"], "Ongoing"),
        ("Pending", ["Ongoing", "Completed"], "Ongoing"),
        ("Archived", ["Completed", "Ongoing"], "Ongoing"),
        ("Ongoing", ["Completed", "Completed"], "Ongoing"),
        ("Archived", ["Completed", "Completed"], "Archived"),
        ("Pending", ["Completed"], "Pending"),
        ("Ongoing", ["Completed", "Unknown"], "Pending"),
    ],
)
def test_derive_status_precedence(current, statuses, expected):
    assert derive_status(current, statuses) == expected


def test_derive_status_never_promotes_to_completed():
    assert derive_status("Pending", ["Completed"] * 5) != "Completed"
    assert derive_status("Ongoing", ["Completed"] * 5) != "Completed"


def test_derive_status_is_idempotent():
    statuses = ["Completed", "Ongoing"]
    once = derive_status("Pending", statuses)
    assert derive_status(once, statuses) == once


def test_derive_status_accepts_any_iterable():
    assert derive_status("Pending", (s for s in ["Ongoing"])) == "Ongoing"


def _project_with_instances(owner, *statuses, status="Pending"):
    project = Project(name="Engine", owner_id=owner.id, status=status, created_at=date(2024, 1, 1))
    stage = Stage(name="Build", owner_id=owner.id)
    _db.session.add_all([project, stage])
    _db.session.flush()
    for i, s in enumerate(statuses, 1):
        _db.session.add(ProjectStage(project_id=project.id, stage_id=stage.id, status=s, order=i))
    _db.session.commit()
    return project


def test_on_instance_changed_persists_new_status(manager):
    project = _project_with_instances(manager, "Ongoing", "Completed")

    assert on_instance_changed(project.id) == "Ongoing"
    _db.session.expire_all()
    assert _db.session.get(Project, project.id).status == "Ongoing"


def test_on_instance_changed_keeps_archived_when_all_completed(manager):
    project = _project_with_instances(manager, "Completed", "Completed", status="Archived")

    assert on_instance_changed(project.id) == "Archived"


def test_on_instance_changed_resets_to_pending_without_instances(manager):
    project = _project_with_instances(manager, status="Ongoing")

    assert on_instance_changed(project.id) == "Pending"


def test_on_instance_changed_missing_project_returns_none():
    assert on_instance_changed(9999) is None
