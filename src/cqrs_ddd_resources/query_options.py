"""
ResourceQueryOptions: parsed query string for one request.

Understands bracket-style parameters::

    ?page[number]=2&page[size]=10
    &sort=-name,email
    &fields[$self]=name,email
    &include=author,group
    &filter[name][$like]=wil%          (values stay strings)
    &filter={"group_id": {"$in": [1, 2]}}   (JSON keeps types)

Instances are immutable; ``clone`` returns a new instance with an
override deep-merged in, which is how pagination links are built.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvalidFilterError, InvalidPageError, InvalidQueryError

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_SAFE_CHARS = "[]$,"


class PageSpec(BaseModel):
    """Validated page descriptor. Query-string digits are coerced to int."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(default=1, ge=1)
    size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)


@dataclass(frozen=True)
class ResourceQueryOptions:
    """
    Immutable container for pagination, sort, sparse fieldsets, filter
    and include.

    Attributes:
        page_spec: Current page.
        sort_spec: ``(field, direction)`` pairs, direction ``1`` or ``-1``.
        fieldsets: Sparse fieldsets keyed by scope (``"$self"`` for the
            resource itself).
        filter_spec: Mongo-style filter mapping, or ``None``.
        include_names: Relationship names to include.
        max_page_size: Page sizes above this are clamped.
    """

    page_spec: PageSpec = field(default_factory=PageSpec)
    sort_spec: tuple[tuple[str, int], ...] = ()
    fieldsets: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    filter_spec: Mapping[str, Any] | None = None
    include_names: tuple[str, ...] = ()
    max_page_size: int = MAX_PAGE_SIZE

    # ------------------------------------------------------------------ #
    # Construction                                                        #
    # ------------------------------------------------------------------ #

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any] | None = None,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> ResourceQueryOptions:
        """
        Build options from already-nested parameters.

        Raises:
            InvalidPageError: page number/size is not a positive integer.
            InvalidFilterError: ``filter`` is neither a mapping nor JSON
                describing one.
            InvalidQueryError: a ``sort`` mapping holds an unknown direction.
        """
        params = params or {}
        return cls(
            page_spec=_parse_page(
                params.get("page"), default_page_size, max_page_size
            ),
            sort_spec=_parse_sort(params.get("sort")),
            fieldsets=_parse_fieldsets(params.get("fields")),
            filter_spec=_parse_filter(params.get("filter")),
            include_names=_split(params.get("include")),
            max_page_size=max_page_size,
        )

    @classmethod
    def from_query_string(
        cls,
        query_string: str,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> ResourceQueryOptions:
        """Parse a raw query string (with or without the leading ``?``)."""
        pairs = parse_qsl(query_string.lstrip("?"), keep_blank_values=True)
        return cls.from_params(
            nest_params(pairs),
            default_page_size=default_page_size,
            max_page_size=max_page_size,
        )

    # ------------------------------------------------------------------ #
    # IQueryOptions accessors                                             #
    # ------------------------------------------------------------------ #

    def page(self) -> PageSpec:
        return self.page_spec

    def sort(self) -> dict[str, int] | None:
        if not self.sort_spec:
            return None
        return dict(self.sort_spec)

    def fields_for(self, scope: str) -> list[str] | None:
        fields = self.fieldsets.get(scope)
        return list(fields) if fields else None

    def filter(self) -> Mapping[str, Any] | None:
        return self.filter_spec

    def include(self) -> list[str] | None:
        return list(self.include_names) or None

    # ------------------------------------------------------------------ #
    # Derivation and serialisation                                        #
    # ------------------------------------------------------------------ #

    def clone(self, override: Mapping[str, Any]) -> ResourceQueryOptions:
        """Return a copy with *override* deep-merged into the parameters."""
        merged = _deep_merge(self.to_params(), override)
        return ResourceQueryOptions(
            page_spec=_parse_page(
                merged.get("page"), self.page_spec.size, self.max_page_size
            ),
            sort_spec=_parse_sort(merged.get("sort")),
            fieldsets=_parse_fieldsets(merged.get("fields")),
            filter_spec=_parse_filter(merged.get("filter")),
            include_names=_split(merged.get("include")),
            max_page_size=self.max_page_size,
        )

    def to_params(self) -> dict[str, Any]:
        """Nested parameter form, the inverse of :meth:`from_params`."""
        params: dict[str, Any] = {
            "page": {"number": self.page_spec.number, "size": self.page_spec.size}
        }
        if self.sort_spec:
            params["sort"] = ",".join(
                f"-{f}" if d < 0 else f for f, d in self.sort_spec
            )
        if self.fieldsets:
            params["fields"] = {k: ",".join(v) for k, v in self.fieldsets.items()}
        if self.filter_spec:
            params["filter"] = dict(self.filter_spec)
        if self.include_names:
            params["include"] = ",".join(self.include_names)
        return params

    def to_query_string(self) -> str:
        """Produce ``?page[number]=1&...`` for links."""
        pairs: list[tuple[str, str]] = []
        params = self.to_params()
        for key in ("page", "sort", "fields", "include"):
            if key in params:
                pairs.extend(_flatten_param(key, params[key]))
        if "filter" in params:
            pairs.append(
                ("filter", json.dumps(params["filter"], separators=(",", ":")))
            )
        if not pairs:
            return ""
        return "?" + urlencode(pairs, safe=_SAFE_CHARS, quote_via=quote)

    def __str__(self) -> str:
        return self.to_query_string()


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def nest_params(pairs: list[tuple[str, str]]) -> dict[str, Any]:
    """
    Turn ``[("page[number]", "2")]`` into ``{"page": {"number": "2"}}``.

    Repeated plain keys keep the last value.
    """
    nested: dict[str, Any] = {}
    for raw_key, value in pairs:
        head, _, rest = raw_key.partition("[")
        path = [head]
        if rest:
            path.extend(p for p in rest.rstrip("]").split("][") if p)
        target = nested
        for part in path[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[path[-1]] = value
    return nested


def _parse_page(raw: Any, default_size: int, max_size: int) -> PageSpec:
    raw = raw if isinstance(raw, Mapping) else {}
    try:
        page = PageSpec(
            number=raw.get("number", 1),
            size=raw.get("size", default_size),
        )
    except PydanticValidationError as exc:
        raise InvalidPageError(
            "; ".join(
                f"page.{'.'.join(str(p) for p in e['loc'])}: {e['msg']}"
                for e in exc.errors()
            )
        ) from exc
    if page.size > max_size:
        page = PageSpec(number=page.number, size=max_size)
    return page


def _split(raw: Any) -> tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return tuple(p.strip() for p in raw.split(",") if p.strip())
    return tuple(str(p) for p in raw)


_SORT_DIRECTIONS = {"asc": 1, "desc": -1, "1": 1, "-1": -1}


def _parse_sort(raw: Any) -> tuple[tuple[str, int], ...]:
    if isinstance(raw, Mapping):
        return tuple((str(k), _sort_direction(k, v)) for k, v in raw.items())
    out: list[tuple[str, int]] = []
    for part in _split(raw):
        if part.startswith("-"):
            out.append((part[1:], -1))
        else:
            out.append((part.lstrip("+"), 1))
    return tuple(out)


def _sort_direction(key: Any, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value in (1, -1):
        return value
    direction = _SORT_DIRECTIONS.get(str(value).strip().lower())
    if direction is None:
        raise InvalidQueryError(
            f"sort.{key}: direction must be 'asc', 'desc', 1 or -1, got {value!r}"
        )
    return direction


def _parse_fieldsets(raw: Any) -> dict[str, tuple[str, ...]]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(scope): _split(fields) for scope, fields in raw.items()}


def _parse_filter(raw: Any) -> Mapping[str, Any] | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidFilterError(f"Invalid JSON: {exc}", path="<root>") from exc
    if not isinstance(raw, Mapping):
        raise InvalidFilterError(
            "Top-level filter value must be an object", path="<root>"
        )
    return raw or None


def _flatten_param(key: str, value: Any) -> list[tuple[str, str]]:
    if isinstance(value, Mapping):
        pairs: list[tuple[str, str]] = []
        for k, v in value.items():
            pairs.extend(_flatten_param(f"{key}[{k}]", v))
        return pairs
    return [(key, str(value))]


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(dict(current), value)
        else:
            merged[key] = value
    return merged
