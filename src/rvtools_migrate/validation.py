"""Validation result records shared by the sizing and cost engines.

Validation problems are returned to the caller as data rather than raised,
so a UI or CLI can list every offending field at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


@dataclass
class ValidationResult:
    valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[ValidationError]) -> ValidationResult:
        return cls(valid=not errors, errors=list(errors))

    def merge(self, other: ValidationResult) -> ValidationResult:
        return ValidationResult.from_errors(self.errors + other.errors)

    def messages(self) -> list[str]:
        return [f"{e.field}: {e.message}" for e in self.errors]


@dataclass
class Outcome(Generic[T]):
    """Either a computed value or the validation errors that prevented it."""
    value: T | None = None
    validation: ValidationResult = field(default_factory=ValidationResult)

    @property
    def ok(self) -> bool:
        return self.validation.valid and self.value is not None


def check_range(
    errors: list[ValidationError],
    name: str,
    value: float,
    low: float,
    high: float,
    *,
    integer: bool = False,
) -> None:
    """Append an error when *value* falls outside [low, high]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(ValidationError(name, f"must be a number between {low:g} and {high:g}"))
        return
    if value != value:  # NaN
        errors.append(ValidationError(name, f"must be a number between {low:g} and {high:g}"))
        return
    if integer and int(value) != value:
        errors.append(ValidationError(name, f"must be a whole number between {low:g} and {high:g}"))
        return
    if value < low or value > high:
        errors.append(ValidationError(name, f"{value:g} is out of range; valid range is {low:g} to {high:g}"))
