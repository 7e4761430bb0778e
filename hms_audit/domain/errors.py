from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


class AppError(RuntimeError):
    """Base application-level error."""


@dataclass(frozen=True, slots=True)
class MissingRequiredField:
    field: str

    @property
    def message(self) -> str:
        return f"{self.field}: required field is missing"


@dataclass(frozen=True, slots=True)
class TypeMismatch:
    field: str
    expected: str
    actual: str

    @property
    def message(self) -> str:
        return f"{self.field}: expected {self.expected}, got {self.actual}"


@dataclass(frozen=True, slots=True)
class InvalidEnumValue:
    field: str
    value: Any
    allowed: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"{self.field}: {self.value!r} is not one of {', '.join(self.allowed)}"


@dataclass(frozen=True, slots=True)
class ReservedField:
    field: str

    @property
    def message(self) -> str:
        return f"{self.field}: field is assigned by the store"


Violation = MissingRequiredField | TypeMismatch | InvalidEnumValue | ReservedField


class UnknownEntityFamilyError(AppError):
    def __init__(self, family: str) -> None:
        super().__init__(f"Unknown entity family: {family}")
        self.family = family


class DocumentValidationError(AppError):
    """Document rejected by its schema; carries every violation found."""

    def __init__(self, family: str, violations: Sequence[Violation]) -> None:
        self.family = family
        self.violations = tuple(violations)
        summary = "; ".join(item.message for item in self.violations)
        super().__init__(f"{family} document rejected: {summary}")


class ImmutableEntityError(AppError):
    def __init__(self, family: str) -> None:
        super().__init__(f"{family} is append-only; documents cannot be changed")
        self.family = family


class ImmutableFieldError(AppError):
    def __init__(self, family: str, field: str) -> None:
        super().__init__(f"{family}.{field} cannot be changed after insert")
        self.family = family
        self.field = field


class IllegalTransitionError(AppError):
    def __init__(self, family: str, field: str, detail: str) -> None:
        super().__init__(f"{family}.{field}: {detail}")
        self.family = family
        self.field = field


class StaleWriteError(AppError):
    def __init__(self, family: str, document_id: int) -> None:
        super().__init__(f"{family} #{document_id} was updated after the supplied updatedAt; re-fetch and retry")
        self.family = family
        self.document_id = document_id


class DocumentNotFoundError(AppError):
    def __init__(self, family: str, document_id: int) -> None:
        super().__init__(f"{family} #{document_id} not found")
        self.family = family
        self.document_id = document_id


class SoftDeleteUnsupportedError(AppError):
    def __init__(self, family: str) -> None:
        super().__init__(f"{family} has no isActive flag for logical deletion")
        self.family = family


class UnindexedQueryError(AppError):
    def __init__(self, family: str, fields: Sequence[str]) -> None:
        super().__init__(f"No index on {family} serves a query over {', '.join(fields) or '<none>'}")
        self.family = family
        self.fields = tuple(fields)


class InvalidQueryError(AppError):
    def __init__(self, family: str, detail: str) -> None:
        super().__init__(f"Invalid query on {family}: {detail}")
        self.family = family
        self.detail = detail


class StorageError(AppError):
    """Failure reported by the underlying store; the caller decides whether to retry."""
