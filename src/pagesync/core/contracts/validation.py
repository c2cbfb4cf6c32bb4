"""Validation result contracts.

Validators in :mod:`pagesync.core.validation` never raise; they return a
:class:`ValidationResult` holding every problem found, in encounter order.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A single problem attached to a payload field."""

    field: str
    message: str


class ValidationResult(BaseModel):
    """Outcome of validating a page, menu or element tree."""

    is_valid: bool = True
    errors: list[FieldError] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: Iterable[FieldError]) -> ValidationResult:
        collected = list(errors)
        return cls(is_valid=not collected, errors=collected)

    def by_field(self) -> dict[str, str]:
        """Return the errors grouped per field (see `format_validation_errors`)."""
        return format_validation_errors(self.errors)


def format_validation_errors(errors: Iterable[FieldError]) -> dict[str, str]:
    """Join messages of the same field with ``", "``, keeping encounter order."""
    formatted: dict[str, str] = {}
    for error in errors:
        if error.field in formatted:
            formatted[error.field] += f", {error.message}"
        else:
            formatted[error.field] = error.message
    return formatted


__all__ = ["FieldError", "ValidationResult", "format_validation_errors"]
