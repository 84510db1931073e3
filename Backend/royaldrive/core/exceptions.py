"""
Domain exceptions raised by the service layer.

Routes never build error responses for these by hand; the handlers
registered in main.py translate them into HTTP status codes.
"""
from typing import Any, Dict, List, Optional


class DealershipError(Exception):
    """Base class for all back-office domain errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DealershipError):
    """No document matches the given id/slug."""

    status_code = 404

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} '{key}' not found")
        self.entity = entity
        self.key = key


class ConflictError(DealershipError):
    """A unique constraint (VIN, slug, stock number) was violated."""

    status_code = 409

    def __init__(self, field: str, value: Optional[Any] = None):
        if value is not None:
            message = f"Vehicle with this {field} already exists: {value}"
        else:
            message = f"Vehicle with this {field} already exists"
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidTransitionError(DealershipError):
    """Illegal sales transaction state change."""

    status_code = 400

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot move sale from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class InvalidUpdateError(DealershipError):
    """A patch would leave the stored document invalid."""

    status_code = 422

    def __init__(self, entity: str, errors: List[Dict[str, Any]]):
        fields = ", ".join(".".join(str(p) for p in e.get("loc", ())) for e in errors)
        super().__init__(f"Invalid {entity} update: {fields}")
        self.errors = errors
