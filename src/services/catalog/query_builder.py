"""Translate query-string parameters into document store queries.

Filters are parsed into typed expressions first and only then compiled to
MongoDB operators, so arbitrary client input never reaches the query as raw
operator syntax.

Supported parameter shapes::

    ?brand=acme                  -> Equals("brand", "acme")
    ?price[gte]=100&price[lt]=500 -> Range("price", gte=100.0, lt=500.0)
    ?color=red&color=blue         -> In("color", ["red", "blue"])
    ?tags[in]=summer,sale         -> In("tags", ["summer", "sale"])

``page``, ``limit``, ``sort`` and ``fields`` are control parameters and
never become filters.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pymongo import ASCENDING, DESCENDING

from src.errors import ValidationError

CONTROL_PARAMS = frozenset({"page", "sort", "limit", "fields"})

DEFAULT_SORT: list[tuple[str, int]] = [("createdAt", DESCENDING)]
DEFAULT_PROJECTION: dict[str, int] = {"__v": 0}

# Query strings only carry text; these fields are stored as numbers.
NUMERIC_FIELDS: dict[str, type] = {
    "price": float,
    "quantity": int,
    "totalrating": int,
}

RANGE_OPERATORS = ("gte", "gt", "lte", "lt")

_FIELD_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*"
_PARAM_RE = re.compile(
    rf"^(?P<field>{_FIELD_PATTERN})(?:\[(?P<op>gte|gt|lte|lt|in)\])?$"
)
_FIELD_RE = re.compile(rf"^{_FIELD_PATTERN}$")


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class NotEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    field: str
    gte: Any = None
    gt: Any = None
    lte: Any = None
    lt: Any = None

    def bounds(self) -> dict[str, Any]:
        return {
            f"${op}": getattr(self, op)
            for op in RANGE_OPERATORS
            if getattr(self, op) is not None
        }


@dataclass(frozen=True)
class In:
    field: str
    values: tuple[Any, ...]


FilterExpression = Equals | NotEquals | Range | In


@dataclass
class ProductQuery:
    """Filter, ordering, projection and paging for one collection read."""

    filters: list[FilterExpression] = field(default_factory=list)
    sort: list[tuple[str, int]] = field(default_factory=lambda: list(DEFAULT_SORT))
    projection: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_PROJECTION)
    )
    page: int | None = None
    limit: int | None = None
    page_requested: bool = False

    @property
    def skip(self) -> int:
        if self.page is None or self.limit is None:
            return 0
        return (self.page - 1) * self.limit

    def to_filter(self) -> dict[str, Any]:
        return compile_filters(self.filters)


def compile_filters(expressions: Sequence[FilterExpression]) -> dict[str, Any]:
    """Compile typed expressions into a MongoDB filter document."""

    compiled: dict[str, Any] = {}
    for expression in expressions:
        if isinstance(expression, Equals):
            clause: Any = expression.value
        elif isinstance(expression, NotEquals):
            clause = {"$ne": expression.value}
        elif isinstance(expression, Range):
            clause = expression.bounds()
        elif isinstance(expression, In):
            clause = {"$in": list(expression.values)}
        else:
            raise TypeError(f"Unsupported filter expression: {expression!r}")

        existing = compiled.get(expression.field)
        if existing is None:
            compiled[expression.field] = clause
        elif _is_operator_doc(existing) and _is_operator_doc(clause):
            compiled[expression.field] = {**existing, **clause}
        else:
            raise ValidationError(
                f"Conflicting filters supplied for field '{expression.field}'"
            )
    return compiled


def build_product_query(
    params: Mapping[str, str | Sequence[str]],
    *,
    default_limit: int = 10,
) -> ProductQuery:
    """Build a full query (filters and controls) from raw query parameters."""

    query = parse_controls(params, default_limit=default_limit)
    query.filters = parse_filters(params)
    return query


def parse_filters(
    params: Mapping[str, str | Sequence[str]],
    *,
    ignore: frozenset[str] = frozenset(),
) -> list[FilterExpression]:
    """Turn every non-control parameter into a typed filter expression."""

    ranges: dict[str, dict[str, Any]] = {}
    expressions: list[FilterExpression] = []

    for key, raw in params.items():
        if key in CONTROL_PARAMS or key in ignore:
            continue
        match = _PARAM_RE.match(key)
        if match is None:
            raise ValidationError(f"Unsupported filter parameter '{key}'")

        name, op = match.group("field"), match.group("op")
        values = _as_list(raw)

        if op in RANGE_OPERATORS:
            if len(values) != 1:
                raise ValidationError(f"'{key}' accepts a single value")
            ranges.setdefault(name, {})[op] = _coerce(name, values[0])
        elif op == "in":
            items = [item for value in values for item in value.split(",") if item]
            expressions.append(In(name, tuple(_coerce(name, v) for v in items)))
        elif len(values) > 1:
            expressions.append(In(name, tuple(_coerce(name, v) for v in values)))
        else:
            expressions.append(Equals(name, _coerce(name, values[0])))

    expressions.extend(Range(name, **bounds) for name, bounds in ranges.items())
    return expressions


def parse_controls(
    params: Mapping[str, str | Sequence[str]],
    *,
    default_limit: int = 10,
    default_page: int | None = None,
) -> ProductQuery:
    """Parse ``sort``, ``fields``, ``page`` and ``limit``.

    Without ``page`` and ``limit`` (and no ``default_page``) the read is not
    paginated. A ``page`` without ``limit`` uses ``default_limit``.
    """

    query = ProductQuery()

    sort = _single(params, "sort")
    if sort:
        query.sort = parse_sort(sort)

    fields = _single(params, "fields")
    if fields:
        query.projection = parse_projection(fields)

    page = _positive_int(params, "page")
    limit = _positive_int(params, "limit")
    query.page_requested = page is not None

    if page is None and limit is None and default_page is None:
        return query

    query.page = page or default_page or 1
    query.limit = limit or default_limit
    return query


def parse_sort(value: str) -> list[tuple[str, int]]:
    """``"-price,title"`` -> ``[("price", -1), ("title", 1)]``."""

    order: list[tuple[str, int]] = []
    for token in value.split(","):
        token = token.strip()
        if not token:
            continue
        direction = ASCENDING
        if token.startswith("-"):
            direction = DESCENDING
            token = token[1:]
        _check_field(token, "sort")
        order.append((token, direction))
    return order or list(DEFAULT_SORT)


def parse_projection(value: str) -> dict[str, int]:
    """``"title,price"`` includes, ``"-ratings"`` excludes."""

    projection: dict[str, int] = {}
    for token in value.split(","):
        token = token.strip()
        if not token:
            continue
        flag = 1
        if token.startswith("-"):
            flag = 0
            token = token[1:]
        _check_field(token, "fields")
        projection[token] = flag

    if not projection:
        return dict(DEFAULT_PROJECTION)

    flags = {flag for name, flag in projection.items() if name != "_id"}
    if len(flags) > 1:
        raise ValidationError("Cannot mix included and excluded fields")
    return projection


def _coerce(name: str, value: str) -> Any:
    caster = NUMERIC_FIELDS.get(name)
    if caster is None:
        return value
    try:
        return caster(value)
    except ValueError as exc:
        raise ValidationError(
            f"Filter value for '{name}' must be numeric, got {value!r}"
        ) from exc


def _check_field(name: str, param: str) -> None:
    if not _FIELD_RE.match(name):
        raise ValidationError(f"Invalid field name {name!r} in '{param}'")


def _positive_int(params: Mapping[str, str | Sequence[str]], key: str) -> int | None:
    raw = _single(params, key)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"'{key}' must be an integer") from exc
    if value < 1:
        raise ValidationError(f"'{key}' must be at least 1")
    return value


def _single(params: Mapping[str, str | Sequence[str]], key: str) -> str | None:
    raw = params.get(key)
    if raw is None:
        return None
    values = _as_list(raw)
    return values[-1] if values else None


def _as_list(raw: str | Sequence[str]) -> list[str]:
    if isinstance(raw, str):
        return [raw]
    return [str(item) for item in raw]


def _is_operator_doc(clause: Any) -> bool:
    return isinstance(clause, dict) and all(key.startswith("$") for key in clause)
