"""Business date parsing and rendering."""

from datetime import date, datetime, timedelta, timezone

import pytest

from stagetrack.core.exceptions import ValidationError
from stagetrack.utils.helpers import format_business_date, parse_business_date


@pytest.mark.parametrize("raw, expected", [
    ("2024-03-15", date(2024, 3, 15)),
    ("2024-03-15T23:30:00-05:00", date(2024, 3, 15)),
    ("2024-03-15T00:30:00+09:00", date(2024, 3, 15)),
    ("2024-03-15T12:00:00Z", date(2024, 3, 15)),
    ("15.03.2024", date(2024, 3, 15)),
    ("  2024-03-15 ", date(2024, 3, 15)),
])
def test_parse_keeps_calendar_fields(raw, expected):
    assert parse_business_date(raw) == expected


def test_parse_accepts_date_objects():
    assert parse_business_date(date(2024, 3, 15)) == date(2024, 3, 15)
    aware = datetime(2024, 3, 15, 23, 0, tzinfo=timezone(timedelta(hours=-8)))
    assert parse_business_date(aware) == date(2024, 3, 15)


@pytest.mark.parametrize("raw", [None, ""])
def test_parse_empty_is_none(raw):
    assert parse_business_date(raw) is None


@pytest.mark.parametrize("raw", ["2024-13-01", "tomorrow", "15/03/2024", "2024-02-30"])
def test_parse_rejects_garbage(raw):
    with pytest.raises(ValidationError) as exc:
        parse_business_date(raw, "start_date")
    assert "start_date" in exc.value.details


def test_round_trip_is_stable():
    assert format_business_date(parse_business_date("2024-03-15")) == "2024-03-15"
    assert format_business_date(parse_business_date("05.01.0999")) == "0999-01-05"


def test_format_none():
    assert format_business_date(None) is None


def test_stored_date_survives_api_round_trip(client, manager, auth_headers):
    resp = client.post(
        "/api/v1/projects",
        json={"name": "Dated", "created_at": "2024-03-15T23:30:00-05:00"},
        headers=auth_headers(manager),
    )
    assert resp.status_code == 201
    project_id = resp.get_json()["id"]

    resp = client.get(f"/api/v1/projects/{project_id}", headers=auth_headers(manager))
    assert resp.get_json()["created_at"] == "2024-03-15"
