"""
Record Metadata - validation and filter matching

Record metadata is a string-keyed map whose values are restricted to a
small closed set: str, int, float, bool, or a nested map of the same.
Anything else (None, lists, objects) is rejected at insert time so that
equality and JSON serialisation stay well-defined.

Filters are either a mapping (every key must match by equality; nested
values are addressed with dotted paths such as "source.page") or a
callable predicate receiving the metadata dict.

Usage:
    from vector_store.metadata import validate_metadata, matches_filter

    clean = validate_metadata({"source": {"file": "a.txt", "page": 3}})
    matches_filter(clean, {"source.page": 3})  # True
"""

import copy
import math
from typing import Any, Callable, Mapping, Optional, Union

from .exceptions import InvalidMetadataError

MetadataFilter = Union[Mapping[str, Any], Callable[[dict[str, Any]], bool]]

_SCALAR_TYPES = (str, int, float, bool)
_MISSING = object()


def validate_metadata(
    metadata: Optional[Mapping[str, Any]],
    path: str = "",
) -> dict[str, Any]:
    """
    Validate metadata and return a detached copy.

    Args:
        metadata: Metadata mapping (None is treated as empty).
        path: Dotted prefix used in error messages for nested maps.

    Returns:
        A new dict with the same content.

    Raises:
        InvalidMetadataError: For non-string keys, unsupported value types
            or non-finite floats.
    """
    if metadata is None:
        return {}
    if not isinstance(metadata, Mapping):
        raise InvalidMetadataError(path or "<root>", "metadata must be a mapping")

    clean: dict[str, Any] = {}
    for key, value in metadata.items():
        if not isinstance(key, str):
            raise InvalidMetadataError(f"{path}{key!r}", "keys must be strings")
        dotted = f"{path}.{key}" if path else key

        if isinstance(value, Mapping):
            clean[key] = validate_metadata(value, dotted)
        elif isinstance(value, _SCALAR_TYPES):
            if isinstance(value, float) and not math.isfinite(value):
                raise InvalidMetadataError(dotted, "floats must be finite")
            clean[key] = value
        else:
            raise InvalidMetadataError(
                dotted, f"unsupported value type {type(value).__name__}"
            )
    return clean


def lookup(metadata: Mapping[str, Any], key: str) -> Any:
    """Resolve a key, falling back to a dotted path through nested maps."""
    if key in metadata:
        return metadata[key]

    current: Any = metadata
    for part in key.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches_filter(
    metadata: dict[str, Any],
    metadata_filter: Optional[MetadataFilter],
) -> bool:
    """Return True if metadata satisfies the filter (None matches everything)."""
    if metadata_filter is None:
        return True
    if callable(metadata_filter):
        return bool(metadata_filter(copy.deepcopy(metadata)))

    for key, expected in metadata_filter.items():
        value = lookup(metadata, key)
        if value is _MISSING or value != expected:
            return False
        # True == 1 in Python; keep bools and numbers apart
        if isinstance(value, bool) != isinstance(expected, bool):
            return False
    return True
