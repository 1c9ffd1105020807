"""In-memory evaluation of query filters.

Filters are compiled once per query against the collection schema: the
operator is checked and every raw value is cast to the field's type before
any document is looked at. Documents are then tested against the compiled
conditions.
"""

from __future__ import annotations

import operator
import types
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel

from practice_api.domain.query import SortKey
from practice_api.infra.errors import CastError

COMPARATORS = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}
SUPPORTED_OPERATORS = frozenset({"eq", "ne", "in", *COMPARATORS})

# Stored on every document but not part of the record schemas.
META_FIELD_TYPES: dict[str, type] = {
    "id": str,
    "created_at": datetime,
    "updated_at": datetime,
    "version": int,
}


def parse_datetime(raw: str) -> datetime:
    return datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))


def cast_value(kind: type, raw: Any, path: str) -> Any:
    """Convert a query-string value to the type stored at ``path``."""
    if not isinstance(raw, str):
        return raw
    try:
        if issubclass(kind, bool):
            lowered = raw.strip().lower()
            if lowered in {"true", "1"}:
                return True
            if lowered in {"false", "0"}:
                return False
            raise ValueError(raw)
        if issubclass(kind, int):
            number = float(raw)
            return int(number) if number.is_integer() else number
        if issubclass(kind, float):
            return float(raw)
        if issubclass(kind, datetime):
            return parse_datetime(raw)
    except ValueError as exc:
        raise CastError(path, raw) from exc
    return raw


def _scalar_type(annotation: Any) -> type:
    # Unwraps Optional, Annotated, list[...] and Literal down to the stored scalar type.
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            annotation = get_args(annotation)[0]
        elif origin is Union or origin is types.UnionType:
            annotation = next(arg for arg in get_args(annotation) if arg is not type(None))
        elif origin in (list, tuple, set, frozenset):
            args = get_args(annotation)
            annotation = args[0] if args else str
        elif origin is Literal:
            annotation = type(get_args(annotation)[0])
        else:
            break
    return annotation if isinstance(annotation, type) else str


def field_type(schema: type[BaseModel], path: str) -> type | None:
    """Scalar type stored at ``path``, or None when the collection has no such field."""
    if path in META_FIELD_TYPES:
        return META_FIELD_TYPES[path]
    info = schema.model_fields.get(path)
    if info is None:
        return None
    return _scalar_type(info.annotation)


def _split_candidates(raw: Any) -> list[Any]:
    if isinstance(raw, (list, tuple, set, frozenset)):
        return list(raw)
    return [part for part in str(raw).split(",") if part]


@dataclass(frozen=True)
class Condition:
    path: str
    op: str
    # Already cast; a tuple of candidates for ``in``.
    target: Any


@dataclass(frozen=True)
class CompiledFilter:
    conditions: tuple[Condition, ...] = ()
    # Set when a condition names a field the collection does not have.
    matches_nothing: bool = False

    def matches(self, document: Mapping[str, Any]) -> bool:
        if self.matches_nothing:
            return False
        return all(_test(document.get(condition.path), condition.op, condition.target) for condition in self.conditions)


def compile_filters(schema: type[BaseModel], filters: Mapping[str, Any]) -> CompiledFilter:
    conditions: list[Condition] = []
    matches_nothing = False
    for path, condition in filters.items():
        pairs = condition.items() if isinstance(condition, Mapping) else [("eq", condition)]
        for op, raw in pairs:
            if op not in SUPPORTED_OPERATORS:
                raise CastError(path, {op: raw})
            kind = field_type(schema, path)
            if kind is None:
                matches_nothing = True
                continue
            if op == "in":
                target: Any = tuple(cast_value(kind, candidate, path) for candidate in _split_candidates(raw))
            else:
                target = cast_value(kind, raw, path)
            conditions.append(Condition(path, op, target))
    return CompiledFilter(tuple(conditions), matches_nothing)


def _align_timezones(value: Any, target: Any) -> Any:
    if not isinstance(value, datetime) or not isinstance(target, datetime):
        return target
    if value.tzinfo is not None and target.tzinfo is None:
        return target.replace(tzinfo=timezone.utc)
    if value.tzinfo is None and target.tzinfo is not None:
        return target.astimezone(timezone.utc).replace(tzinfo=None)
    return target


def _test(value: Any, op: str, target: Any) -> bool:
    if op == "in":
        return any(_test(value, "eq", candidate) for candidate in target)
    if op == "ne":
        return not _test(value, "eq", target)
    if isinstance(value, list):
        return any(_test(item, op, target) for item in value)
    if value is None:
        return op == "eq" and target is None
    target = _align_timezones(value, target)
    if op == "eq":
        return value == target
    try:
        return COMPARATORS[op](value, target)
    except TypeError:
        return False


def _sort_value(value: Any) -> tuple[int, Any]:
    # None sorts first, then numbers, strings and dates.
    if value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, datetime):
        aware = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        return (3, aware.timestamp())
    return (4, repr(value))


def sort_documents(documents: Iterable[Mapping[str, Any]], keys: Iterable[SortKey]) -> list[Any]:
    ordered = list(documents)
    for key in reversed(tuple(keys)):
        ordered.sort(key=lambda document: _sort_value(document.get(key.field)), reverse=key.descending)
    return ordered
