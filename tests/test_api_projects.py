"""Project, stage instance, connection and catalog endpoints over HTTP."""

import pytest


@pytest.fixture()
def mh(manager, auth_headers):
    return auth_headers(manager)


@pytest.fixture()
def stage_id(client, mh):
    return client.post("/api/v1/stages", json={"name": "Plan"}, headers=mh).get_json()["id"]


def _create(client, headers, **body):
    body.setdefault("name", "Website")
    return client.post("/api/v1/projects", json=body, headers=headers)


# ── Projects ─────────────────────────────────────────────────────────────


def test_create_and_get_project(client, mh):
    resp = _create(client, mh, description="Relaunch", created_at="2024-03-15")

    assert resp.status_code == 201
    data = resp.get_json()
    assert data["status"] == "Pending"
    assert data["created_at"] == "2024-03-15"
    assert data["stages"] == []
    assert data["owner"]["name"] == "Mia Manager"

    resp = client.get(f"/api/v1/projects/{data['id']}", headers=mh)
    assert resp.status_code == 200
    assert resp.get_json()["description"] == "Relaunch"


def test_create_requires_name(client, mh):
    resp = client.post("/api/v1/projects", json={"description": "x"}, headers=mh)

    assert resp.status_code == 400
    assert resp.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_member_cannot_create(client, member, auth_headers):
    assert _create(client, auth_headers(member)).status_code == 403


def test_member_reads_manager_projects(client, mh, member, auth_headers):
    project_id = _create(client, mh).get_json()["id"]

    resp = client.get("/api/v1/projects", headers=auth_headers(member))
    assert [p["id"] for p in resp.get_json()] == [project_id]
    assert client.get(f"/api/v1/projects/{project_id}", headers=auth_headers(member)).status_code == 200
    assert client.delete(f"/api/v1/projects/{project_id}", headers=auth_headers(member)).status_code == 403


def test_foreign_and_missing_project(client, mh, other_manager, auth_headers):
    project_id = _create(client, mh).get_json()["id"]
    other = auth_headers(other_manager)

    assert client.get(f"/api/v1/projects/{project_id}", headers=other).status_code == 403
    assert client.put(f"/api/v1/projects/{project_id}", json={"name": "x"}, headers=other).status_code == 403
    assert client.get("/api/v1/projects/424242", headers=mh).status_code == 404
    assert client.get("/api/v1/projects", headers=other).get_json() == []


def test_update_project(client, mh):
    project_id = _create(client, mh).get_json()["id"]

    resp = client.put(f"/api/v1/projects/{project_id}",
                      json={"name": "Renamed", "created_at": "15.01.2023"}, headers=mh)

    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Renamed"
    assert resp.get_json()["created_at"] == "2023-01-15"


def test_update_with_bad_status(client, mh):
    project_id = _create(client, mh).get_json()["id"]

    resp = client.put(f"/api/v1/projects/{project_id}", json={"status": "Done"}, headers=mh)

    assert resp.status_code == 409


def test_patch_status(client, mh):
    project_id = _create(client, mh).get_json()["id"]

    resp = client.patch(f"/api/v1/projects/{project_id}/status", json={"status": "Archived"}, headers=mh)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "Archived"

    assert client.patch(f"/api/v1/projects/{project_id}/status", json={}, headers=mh).status_code == 400


def test_filter_by_year_and_month(client, mh):
    _create(client, mh, name="Old", created_at="2023-05-01")
    _create(client, mh, name="New", created_at="2024-05-01")
    _create(client, mh, name="Newer", created_at="2024-06-01")

    names = lambda resp: [p["name"] for p in resp.get_json()]  # noqa: E731
    assert names(client.get("/api/v1/projects?year=2024", headers=mh)) == ["Newer", "New"]
    assert names(client.get("/api/v1/projects?year=2024&month=5", headers=mh)) == ["New"]
    assert client.get("/api/v1/projects/years", headers=mh).get_json() == [2024, 2023]


def test_bad_month_is_rejected(client, mh):
    assert client.get("/api/v1/projects?year=2024&month=13", headers=mh).status_code == 400


def test_delete_project(client, mh, stage_id):
    project_id = _create(client, mh).get_json()["id"]
    client.post(f"/api/v1/projects/{project_id}/stages", json={"stage_id": stage_id}, headers=mh)

    assert client.delete(f"/api/v1/projects/{project_id}", headers=mh).status_code == 200
    assert client.get(f"/api/v1/projects/{project_id}", headers=mh).status_code == 404
    # the global catalog stage is untouched
    assert client.get(f"/api/v1/stages/{stage_id}", headers=mh).status_code == 200


# ── Stage instances & connections ────────────────────────────────────────


def test_stage_instance_flow(client, mh, stage_id):
    project_id = _create(client, mh).get_json()["id"]

    resp = client.post(f"/api/v1/projects/{project_id}/stages",
                       json={"stage_id": stage_id, "start_date": "2024-01-01"}, headers=mh)
    assert resp.status_code == 201
    first = resp.get_json()
    assert first["order"] == 1
    assert first["status"] == "Ongoing"
    assert first["stage"]["name"] == "Plan"
    assert client.get(f"/api/v1/projects/{project_id}", headers=mh).get_json()["status"] == "Ongoing"

    second = client.post(f"/api/v1/projects/{project_id}/stages",
                         json={"stage_id": stage_id}, headers=mh).get_json()
    assert second["order"] == 2

    resp = client.put(f"/api/v1/projects/{project_id}/stages/{first['id']}",
                      json={"status": "Completed", "completion_date": "2024-02-01"}, headers=mh)
    assert resp.status_code == 200
    assert resp.get_json()["start_date"] == "2024-01-01"
    assert resp.get_json()["completion_date"] == "2024-02-01"

    listed = client.get(f"/api/v1/projects/{project_id}/stages", headers=mh).get_json()
    assert [ps["id"] for ps in listed] == [first["id"], second["id"]]

    project = client.get(f"/api/v1/projects/{project_id}", headers=mh).get_json()
    assert [ps["id"] for ps in project["stages"]] == [first["id"], second["id"]]


def test_connection_flow(client, mh, stage_id):
    project_id = _create(client, mh).get_json()["id"]
    a = client.post(f"/api/v1/projects/{project_id}/stages", json={"stage_id": stage_id}, headers=mh).get_json()
    b = client.post(f"/api/v1/projects/{project_id}/stages", json={"stage_id": stage_id}, headers=mh).get_json()

    resp = client.post(f"/api/v1/projects/{project_id}/connections",
                       json={"from_stage": a["id"], "to_stage": b["id"]}, headers=mh)
    assert resp.status_code == 201
    conn_id = resp.get_json()["id"]

    dup = client.post(f"/api/v1/projects/{project_id}/connections",
                      json={"from_stage": a["id"], "to_stage": b["id"]}, headers=mh)
    assert dup.status_code == 400
    assert dup.get_json()["code"] == "ERR_VALIDATION_INVALID"
    assert dup.get_json()["error"] == "Connection already exists"

    listed = client.get(f"/api/v1/projects/{project_id}/connections", headers=mh).get_json()
    assert listed[0]["from_stage"]["id"] == a["id"]
    assert listed[0]["to_stage"]["id"] == b["id"]

    stages = client.get(f"/api/v1/projects/{project_id}/stages", headers=mh).get_json()
    assert [ps["connections"] for ps in stages] == [[conn_id], [conn_id]]

    resp = client.delete(f"/api/v1/projects/{project_id}/stages/{a['id']}", headers=mh)
    assert resp.status_code == 200
    assert client.get(f"/api/v1/projects/{project_id}/connections", headers=mh).get_json() == []


def test_instance_in_wrong_project_is_404(client, mh, stage_id):
    p1 = _create(client, mh).get_json()["id"]
    p2 = _create(client, mh, name="Other").get_json()["id"]
    ps = client.post(f"/api/v1/projects/{p1}/stages", json={"stage_id": stage_id}, headers=mh).get_json()

    resp = client.put(f"/api/v1/projects/{p2}/stages/{ps['id']}", json={"status": "Completed"}, headers=mh)

    assert resp.status_code == 404


# ── Catalog & export ─────────────────────────────────────────────────────


def test_catalog_endpoints(client, mh, stage_id):
    assert [s["name"] for s in client.get("/api/v1/stages", headers=mh).get_json()] == ["Plan"]

    resp = client.put(f"/api/v1/stages/{stage_id}", json={"name": "Planning"}, headers=mh)
    assert resp.get_json()["name"] == "Planning"

    project_id = _create(client, mh).get_json()["id"]
    client.post(f"/api/v1/projects/{project_id}/stages", json={"stage_id": stage_id}, headers=mh)
    assert client.delete(f"/api/v1/stages/{stage_id}", headers=mh).status_code == 409


@pytest.mark.parametrize("fmt, mimetype, magic", [
    ("pdf", "application/pdf", b"%PDF"),
    ("excel", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", b"PK"),
])
def test_export(client, mh, member, auth_headers, fmt, mimetype, magic):
    project_id = _create(client, mh).get_json()["id"]

    resp = client.get(f"/api/v1/projects/{project_id}/export?format={fmt}", headers=auth_headers(member))

    assert resp.status_code == 200
    assert resp.mimetype == mimetype
    assert resp.data.startswith(magic)
    assert "attachment" in resp.headers["Content-Disposition"]


def test_export_unknown_format(client, mh):
    project_id = _create(client, mh).get_json()["id"]

    assert client.get(f"/api/v1/projects/{project_id}/export?format=csv", headers=mh).status_code == 400


def test_unknown_route(client, mh):
    resp = client.get("/api/v1/nothing-here", headers=mh)

    assert resp.status_code == 404
