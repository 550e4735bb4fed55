from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timetabler.schemas.conflict import ConflictReason


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when input is missing or malformed. Always correctable by the caller."""
    code = "invalid"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(
            f"{field}: {reason}",
            status_code=422,
            details={"field": field, "reason": reason, "code": self.code},
        )


class NoSelectionError(ValidationError):
    """Raised when a bulk operation is given an empty selection."""
    code = "no_selection"

    def __init__(self):
        super().__init__("ids", "No timetable entries selected")


class NotFoundError(AppError):
    """Raised when an entry or catalog resource does not exist or is inactive."""
    def __init__(self, resource_type: str, resource_id: str, field: str | None = None, reason: str | None = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.field = field
        message = reason or f"{resource_type} with id {resource_id} not found"
        details: dict = {"resource_type": resource_type, "resource_id": resource_id}
        if field is not None:
            details["field"] = field
        super().__init__(message, status_code=404, details=details)


class ConflictError(AppError):
    """Raised when a write would double-book a faculty member, classroom or section."""
    def __init__(self, reasons: list[ConflictReason]):
        self.reasons = list(reasons)
        summary = "; ".join(reason.message for reason in self.reasons) or "Scheduling conflict detected"
        super().__init__(
            summary,
            status_code=409,
            details={"conflicts": [reason.model_dump(mode="json") for reason in self.reasons]},
        )


class StorageError(AppError):
    """Raised for infrastructure failures that are not uniqueness violations."""
    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, status_code=503)
