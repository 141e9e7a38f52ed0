"""Versioned REST paths and query-string encoding for the Engine API."""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import quote

import jsonschema

from .errors import InvalidInputError


class Category(Enum):
    """Resource category; SYSTEM endpoints have no path prefix."""

    CONTAINERS = "containers"
    IMAGES = "images"
    VOLUMES = "volumes"
    SYSTEM = ""


# Docker's filter convention: {"name": ["value", ...]}. A bare string is
# accepted as shorthand for a one-element list.
FILTERS_SCHEMA = {
    "type": "object",
    "additionalProperties": {
        "oneOf": [
            {"type": "string"},
            {"type": "array", "items": {"type": "string"}},
        ]
    },
    "propertyNames": {"minLength": 1},
}

FilterValue = Union[str, Iterable[str]]


def normalize_filters(filters: Optional[Mapping[str, FilterValue]]) -> Dict[str, List[str]]:
    """Validate a filter mapping and return it with every value as a list.

    Raises InvalidInputError when a key is empty or a value is neither a
    string nor a sequence of strings.
    """
    if not filters:
        return {}
    if not isinstance(filters, Mapping):
        raise InvalidInputError(f"filters must be a mapping, got {type(filters).__name__}")

    candidate: Dict[str, Any] = {}
    for key, value in filters.items():
        if isinstance(value, (tuple, set, frozenset)):
            value = list(value)
        candidate[key] = value
    try:
        jsonschema.validate(candidate, FILTERS_SCHEMA)
    except jsonschema.ValidationError as e:
        raise InvalidInputError(f"Invalid filters: {e.message}") from e

    normalized = {}
    for key, value in candidate.items():
        if isinstance(value, str):
            value = [value]
        elif isinstance(filters[key], (set, frozenset)):
            value = sorted(value)
        normalized[key] = value
    return normalized


def to_int(value: Any, what: str) -> int:
    """*value* as an int; InvalidInputError names *what* when it is not one."""
    if isinstance(value, bool):
        raise InvalidInputError(f"{what} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{what} must be an integer, got {value!r}") from e


def to_timestamp(value: Any) -> Optional[int]:
    """Unix seconds from an int, a numeric string or a datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return int(value.timestamp())
    return to_int(value, "Unix timestamp")


def format_param(value: Any) -> Optional[str]:
    """Render one query value as text, or None when it should be omitted."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return str(int(value.timestamp()))
    if isinstance(value, bool):
        return "true" if value else None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    value = str(value)
    return value or None


class QueryParams:
    """Ordered (key, value) pairs; order only affects URL readability."""

    def __init__(self, pairs: Optional[Iterable[Tuple[str, Any]]] = None):
        self._pairs: List[Tuple[str, str]] = []
        for key, value in pairs or ():
            self.add(key, value)

    def add(self, key: str, value: Any) -> "QueryParams":
        """Add *key* unless the value is absent, empty or False."""
        if not key:
            raise InvalidInputError("Query parameter key must not be empty")
        text = format_param(value)
        if text is not None:
            self._pairs.append((key, text))
        return self

    def add_flag(self, key: str, value: bool) -> "QueryParams":
        """Add a boolean that the daemon needs to see even when false."""
        self._pairs.append((key, "true" if value else "false"))
        return self

    def add_filters(self, filters: Optional[Mapping[str, FilterValue]],
                    key: str = "filters") -> "QueryParams":
        normalized = normalize_filters(filters)
        if normalized:
            self._pairs.append((key, json.dumps(normalized, separators=(",", ":"))))
        return self

    def add_json(self, key: str, value: Optional[Mapping[str, Any]]) -> "QueryParams":
        """Add a JSON-encoded object parameter such as buildargs or labels."""
        if value:
            self._pairs.append((key, json.dumps(dict(value), separators=(",", ":"))))
        return self

    def get(self, key: str) -> Optional[str]:
        for k, v in self._pairs:
            if k == key:
                return v
        return None

    def encode(self) -> str:
        return "&".join(f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in self._pairs)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, key: str) -> bool:
        return any(k == key for k, _ in self._pairs)

    def __repr__(self):
        return f"QueryParams({self._pairs!r})"


def build_path(api_version: str, category: Category, method: str,
               resource_id: Optional[str] = None) -> str:
    """Compose ``/v{api}/{category}/[{id}/]{method}``.

    SYSTEM contributes no category segment. An empty *method* addresses the
    resource itself, e.g. ``DELETE /v1.39/containers/{id}``.
    """
    if resource_id is not None and not str(resource_id).strip():
        raise InvalidInputError("Resource id must not be empty")
    segments = [f"v{api_version}"]
    if category.value:
        segments.append(category.value)
    if resource_id is not None:
        # image references keep their registry/repo:tag@digest separators;
        # any other id is a single path segment
        safe = "/:@" if category is Category.IMAGES else ""
        segments.append(quote(str(resource_id), safe=safe))
    if method:
        # method may itself be a sub-path such as "system/df"
        segments.append(quote(method, safe="/_"))
    return "/" + "/".join(segments)


def build_url(base: str, path: str, params: Optional[QueryParams] = None) -> str:
    """Join a base (empty for unix sockets), a path and an encoded query."""
    url = f"{base}{path}"
    if params:
        url += "?" + params.encode()
    return url
