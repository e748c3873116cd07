"""
Platform-wide exception hierarchy.

Services raise these types; the application factory registers one handler
per type so every blueprint gets the same HTTP status codes.

Usage:
    from stagetrack.core.exceptions import NotFoundError, ForbiddenError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ForbiddenError("Only managers can create projects")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's scope.

    Used for BOTH genuinely missing records AND records filtered out by an
    owner-scoped query. The two cases are intentionally indistinguishable.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Stage").
        resource_id: The PK that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ForbiddenError(Exception):
    """Raised when a resource was fetched by id but the caller may not touch it.

    Covers both role failures (a user attempting a write) and ownership
    failures (a manager addressing another manager's project).

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class ValidationError(Exception):
    """Raised when input is missing or malformed (required field, bad date).

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation violates a domain rule.

    Duplicate connection, duplicate email, invalid status value, deleting a
    catalog stage that is still in use. Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field whose value conflicts.
        value: The conflicting value.
        message: Optional override of the generated message.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class AuthenticationError(Exception):
    """Raised when credentials or tokens are missing, invalid or expired.

    Maps to HTTP 401.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)
