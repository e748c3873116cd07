"""
Stage Tracker
Blueprint helpers.
"""

from flask import request

from stagetrack.core.exceptions import ValidationError


def query_int(name, *, minimum=None, maximum=None):
    """Read an optional integer query parameter.

    Returns None when the parameter is absent or empty, raises
    ValidationError when it is not an integer within [minimum, maximum].
    """
    raw = request.args.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", details={name: raw})
    if (minimum is not None and value < minimum) or (maximum is not None and value > maximum):
        raise ValidationError(f"{name} is out of range", details={name: raw})
    return value
