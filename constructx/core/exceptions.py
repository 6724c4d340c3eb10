"""
Exception hierarchy raised by the service layer.

Services never build HTTP responses. They raise one of these types and the
blueprints translate them once, via ``constructx.blueprints.handle_service_error``:

    NotFoundError    → 404
    ValidationError  → 422 (well-formed input that breaks a business rule)
    ConflictError    → 409
    ValueError       → 400 (malformed input; plain built-in)

Usage:
    from constructx.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Budget", resource_id=7)
    raise ValidationError("Only Draft budgets can be deleted")
"""


class NotFoundError(Exception):
    """Raised when a record is missing or soft-deleted.

    Args:
        resource: Entity name used in the message (e.g. "Budget").
        resource_id: Looked-up primary key; kept for logs.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ValidationError(Exception):
    """Raised when a state transition or business rule is violated.

    Args:
        message: Human-readable reason, returned to the caller as-is.
        details: Optional field → problem mapping.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write would duplicate a unique value."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")
