from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from types import MappingProxyType


class FieldType(StrEnum):
    """Field types, named after the BSON types of the collection validators."""

    STRING = "string"
    INT = "int"
    LONG = "long"
    DOUBLE = "double"
    BOOL = "bool"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


class IndexDirection(IntEnum):
    ASC = 1
    DESC = -1


@dataclass(frozen=True, slots=True)
class IndexSpec:
    """Ordered (field, direction) keys of one secondary index."""

    keys: tuple[tuple[str, IndexDirection], ...]

    def __post_init__(self) -> None:
        if not self.keys:
            raise ValueError("IndexSpec requires at least one key")

    @classmethod
    def of(cls, *keys: tuple[str, int]) -> IndexSpec:
        return cls(tuple((name, IndexDirection(direction)) for name, direction in keys))

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.keys)

    def name_for(self, family: str) -> str:
        parts = [f"{name}_{'asc' if direction is IndexDirection.ASC else 'desc'}" for name, direction in self.keys]
        return f"ix_{family}__" + "__".join(parts)


@dataclass(frozen=True, slots=True)
class QueryPattern:
    """An anticipated access path: equality-filtered fields, then one ranged/sorted field."""

    equality: tuple[str, ...] = ()
    range_field: str | None = None
    direction: IndexDirection = IndexDirection.ASC

    def __post_init__(self) -> None:
        if not self.equality and self.range_field is None:
            raise ValueError("QueryPattern needs an equality field or a range field")


@dataclass(frozen=True, slots=True)
class FlagTransition:
    """One-way boolean flag; ``stamp_field`` is set exactly once when the flag turns on."""

    flag: str
    stamp_field: str


@dataclass(frozen=True, slots=True)
class Schema:
    family: str
    fields: Mapping[str, FieldType]
    required: frozenset[str]
    enums: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))
    query_patterns: tuple[QueryPattern, ...] = ()
    append_only: bool = False
    flag_transitions: tuple[FlagTransition, ...] = ()
    soft_delete_field: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "required", frozenset(self.required))
        object.__setattr__(
            self,
            "enums",
            MappingProxyType({name: frozenset(values) for name, values in self.enums.items()}),
        )
        object.__setattr__(self, "query_patterns", tuple(self.query_patterns))
        object.__setattr__(self, "flag_transitions", tuple(self.flag_transitions))

    @property
    def mutable(self) -> bool:
        return not self.append_only

    def date_fields(self) -> tuple[str, ...]:
        return tuple(name for name, kind in self.fields.items() if kind is FieldType.DATE)
