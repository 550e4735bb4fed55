from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from timetabler.core.exceptions import AppError

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Outcome of a write operation.

    Expected failures (validation, missing references, conflicts) travel in ``error``
    instead of being raised, so callers can branch on ``ok`` and render the
    structured error. ``warnings`` carries advisories that never block a write.
    """

    value: T | None = None
    error: AppError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None, warnings: list[str] | None = None) -> "OperationResult[T]":
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: AppError) -> "OperationResult[T]":
        return cls(error=error)

    def unwrap(self) -> T | None:
        if self.error is not None:
            raise self.error
        return self.value
