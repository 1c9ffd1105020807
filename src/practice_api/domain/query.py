"""List query descriptors.

A request's query string is turned into an immutable ``QuerySpec`` by four
pure steps applied in a fixed order: filter, sort, select, paginate. Each step
takes the current spec plus the raw parameters and returns a new spec, so the
repositories only ever see a finished value.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

RESERVED_KEYS = frozenset({"page", "limit", "sort", "fields"})

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100
CREATED_AT_FIELD = "created_at"
VERSION_FIELD = "version"
ID_FIELD = "id"

_BRACKET_KEY = re.compile(r"^(?P<field>[^\[\]]+)\[(?P<operator>[^\[\]]+)\]$")
_LIST_SEPARATOR = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


DEFAULT_SORT = (SortKey(CREATED_AT_FIELD, descending=True),)


@dataclass(frozen=True)
class Projection:
    """Field selection applied to every returned document.

    ``include`` lists the only fields to keep (``id`` is always kept);
    ``exclude`` lists fields to drop. An empty ``include`` keeps everything.
    """

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    def apply(self, document: Mapping[str, Any]) -> dict[str, Any]:
        if self.include:
            keep = {ID_FIELD, *self.include}
            selected = {key: value for key, value in document.items() if key in keep}
        else:
            selected = dict(document)
        for key in self.exclude:
            if key != ID_FIELD:
                selected.pop(key, None)
        return selected


DEFAULT_PROJECTION = Projection(exclude=(VERSION_FIELD,))


@dataclass(frozen=True)
class QuerySpec:
    filters: Mapping[str, Any] = field(default_factory=dict)
    sort: tuple[SortKey, ...] = ()
    projection: Projection | None = None
    skip: int = 0
    limit: int | None = None


def parse_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Build a nested mapping from query-string pairs.

    ``price[gte]=100`` becomes ``{"price": {"gte": "100"}}``. A repeated key
    keeps its last value.
    """
    params: dict[str, Any] = {}
    for key, value in items:
        match = _BRACKET_KEY.match(key)
        if match is None:
            params[key] = value
            continue
        name = match.group("field")
        current = params.get(name)
        if not isinstance(current, dict):
            current = {}
            params[name] = current
        current[match.group("operator")] = value
    return params


def _split_list(raw: Any) -> list[str]:
    if raw is None:
        return []
    return [part for part in _LIST_SEPARATOR.split(str(raw)) if part]


def _coerce_count(raw: Any, default: int) -> int:
    """Numeric coercion with a fallback: ``raw * 1 || default``."""
    if raw is None or isinstance(raw, bool):
        return default
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number < 1:
        return default
    return int(number)


def filter_step(spec: QuerySpec, params: Mapping[str, Any]) -> QuerySpec:
    filters = {key: value for key, value in params.items() if key not in RESERVED_KEYS}
    return replace(spec, filters=filters)


def sort_step(spec: QuerySpec, params: Mapping[str, Any]) -> QuerySpec:
    keys = tuple(
        SortKey(part[1:], descending=True) if part.startswith("-") else SortKey(part)
        for part in _split_list(params.get("sort"))
        if part.lstrip("-")
    )
    return replace(spec, sort=keys or DEFAULT_SORT)


def select_step(spec: QuerySpec, params: Mapping[str, Any]) -> QuerySpec:
    fields = _split_list(params.get("fields"))
    if not fields:
        return replace(spec, projection=DEFAULT_PROJECTION)
    include = tuple(name for name in fields if not name.startswith("-"))
    exclude = tuple(name[1:] for name in fields if name.startswith("-") and len(name) > 1)
    return replace(spec, projection=Projection(include=include, exclude=exclude))


def paginate_step(spec: QuerySpec, params: Mapping[str, Any]) -> QuerySpec:
    page = _coerce_count(params.get("page"), DEFAULT_PAGE)
    limit = _coerce_count(params.get("limit"), DEFAULT_LIMIT)
    return replace(spec, skip=(page - 1) * limit, limit=limit)


PIPELINE = (filter_step, sort_step, select_step, paginate_step)


def build_query(params: Mapping[str, Any], base: QuerySpec | None = None) -> QuerySpec:
    spec = base or QuerySpec()
    for step in PIPELINE:
        spec = step(spec, params)
    return spec
