"""Shared utility functions.

parse_business_date:   request value → calendar date (raises ValidationError)
format_business_date:  calendar date → "YYYY-MM-DD" built from y/m/d fields
"""
from datetime import date, datetime

from stagetrack.core.exceptions import ValidationError


def parse_business_date(value, field: str = "date"):
    """Parse a business date (project creation, stage start/completion).

    Business dates are calendar days, so they are stored as ``date`` objects
    with no time-of-day and no timezone. Accepted inputs:

    - YYYY-MM-DD
    - ISO date-time (``2024-03-15T08:00:00-05:00``, trailing ``Z`` allowed):
      the calendar fields are kept exactly as written, never shifted to UTC
    - DD.MM.YYYY
    - ``date`` / ``datetime`` objects

    Returns None for empty input, raises ValidationError on anything else.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    raw = str(value).strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        iso = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        return datetime.fromisoformat(iso).date()
    except ValueError:
        pass
    try:
        return datetime.strptime(raw, "%d.%m.%Y").date()
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {field}. Use YYYY-MM-DD.",
            details={field: raw},
        ) from exc


def format_business_date(value):
    """Render a business date as YYYY-MM-DD from its year/month/day fields."""
    if value is None:
        return None
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"

