from __future__ import annotations

from collections.abc import Iterable, Sequence

from hms_audit.domain.models.schema import IndexDirection, IndexSpec, QueryPattern


def index_for_pattern(pattern: QueryPattern) -> IndexSpec:
    # equality keys first: a range key ahead of them would end the usable prefix
    keys: list[tuple[str, IndexDirection]] = [(name, IndexDirection.ASC) for name in pattern.equality]
    if pattern.range_field is not None:
        keys.append((pattern.range_field, pattern.direction))
    return IndexSpec(tuple(keys))


def plan_indexes(patterns: Iterable[QueryPattern]) -> tuple[IndexSpec, ...]:
    planned: list[IndexSpec] = []
    seen: set[tuple[str, ...]] = set()
    for pattern in patterns:
        spec = index_for_pattern(pattern)
        identity = tuple(f"{name}:{int(direction)}" for name, direction in spec.keys)
        if identity in seen:
            continue
        seen.add(identity)
        planned.append(spec)
    return tuple(planned)


def _sort_matches(
    keys: Sequence[tuple[str, IndexDirection]],
    sort: Sequence[tuple[str, IndexDirection]],
) -> bool:
    if len(sort) > len(keys):
        return False
    window = keys[: len(sort)]
    if [name for name, _ in window] != [name for name, _ in sort]:
        return False
    same = all(a == b for (_, a), (_, b) in zip(window, sort))
    reversed_ = all(a == -b for (_, a), (_, b) in zip(window, sort))
    return same or reversed_


def index_serves(spec: IndexSpec, equality: Iterable[str], range_field: str | None = None) -> bool:
    """True when a key prefix of ``spec`` answers the filter without a scan."""
    eq = set(equality)
    if not eq and range_field is None:
        return False
    keys = list(spec.keys)
    if len(eq) > len(keys) or {name for name, _ in keys[: len(eq)]} != eq:
        return False
    if range_field is None:
        return True
    rest = keys[len(eq) :]
    return bool(rest) and rest[0][0] == range_field


def index_orders(
    spec: IndexSpec,
    equality: Iterable[str],
    sort: Sequence[tuple[str, IndexDirection]],
) -> bool:
    """True when walking ``spec`` (either way) yields rows already in ``sort`` order."""
    eq = set(equality)
    # sorting on an equality-pinned key is free
    wanted = [item for item in sort if item[0] not in eq]
    if not wanted:
        return True
    keys = list(spec.keys)
    if {name for name, _ in keys[: len(eq)]} != eq:
        return False
    return _sort_matches(keys[len(eq) :], wanted)


def select_index(
    specs: Iterable[IndexSpec],
    equality: Iterable[str],
    range_field: str | None = None,
    sort: Sequence[tuple[str, IndexDirection]] = (),
) -> IndexSpec | None:
    equality = tuple(equality)
    specs = tuple(specs)
    if equality or range_field is not None:
        candidates = [spec for spec in specs if index_serves(spec, equality, range_field)]
    elif sort:
        candidates = [spec for spec in specs if index_orders(spec, (), sort)]
    else:
        return None
    if not candidates:
        return None
    # prefer an index that also yields the sort order, then the narrowest one
    return min(
        candidates,
        key=lambda spec: (not index_orders(spec, equality, sort), len(spec.keys)),
    )
