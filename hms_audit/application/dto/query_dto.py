from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hms_audit.domain.models.schema import IndexDirection

RANGE_OPERATORS = frozenset({"$gt", "$gte", "$lt", "$lte"})
SET_OPERATORS = frozenset({"$in"})


class FindQuery(BaseModel):
    """Shape of a ``find`` call: equality/range criteria, sort keys and a row cap."""

    model_config = ConfigDict(frozen=True)

    criteria: dict[str, Any] = Field(default_factory=dict)
    sort: list[tuple[str, IndexDirection]] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=1)

    @field_validator("criteria")
    @classmethod
    def _validate_criteria(cls, value: dict[str, Any]) -> dict[str, Any]:
        for field, condition in value.items():
            if not field.isidentifier():
                raise ValueError(f"Invalid field name: {field!r}")
            if isinstance(condition, dict):
                if not condition:
                    raise ValueError(f"{field}: empty operator document")
                unknown = set(condition) - RANGE_OPERATORS - SET_OPERATORS
                if unknown:
                    raise ValueError(f"{field}: unsupported operators {', '.join(sorted(unknown))}")
                if "$in" in condition and (len(condition) > 1 or not isinstance(condition["$in"], (list, tuple))):
                    raise ValueError(f"{field}: $in takes a list and cannot be combined")
        return value

    @field_validator("sort")
    @classmethod
    def _validate_sort(cls, value: list[tuple[str, IndexDirection]]) -> list[tuple[str, IndexDirection]]:
        names = [name for name, _ in value]
        if len(set(names)) != len(names):
            raise ValueError("Sort keys must be unique")
        for name in names:
            if not name.isidentifier():
                raise ValueError(f"Invalid field name: {name!r}")
        return value

    @model_validator(mode="after")
    def _single_range_field(self) -> FindQuery:
        if len(self.range_fields()) > 1:
            raise ValueError("Only one field may carry range operators")
        return self

    def range_fields(self) -> list[str]:
        return [
            field
            for field, condition in self.criteria.items()
            if isinstance(condition, dict) and set(condition) & RANGE_OPERATORS
        ]

    def equality_fields(self) -> list[str]:
        return [field for field in self.criteria if field not in self.range_fields()]

    @property
    def range_field(self) -> str | None:
        fields = self.range_fields()
        return fields[0] if fields else None
