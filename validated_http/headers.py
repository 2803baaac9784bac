"""Header normalization and the validated-header merge policy.

Every accepted header shape is reduced to one canonical form before anything
else looks at it: a fresh ``dict`` of lower-cased names to string values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Union

import httpx

from validated_http.coercion import as_mapping, coerce_value
from validated_http.errors import HeaderValueError
from validated_http.models import HeaderValidationMode, ValueMode

HeadersInput = Union[httpx.Headers, Mapping[Any, Any], Iterable[tuple[Any, Any]], None]


def _header_name(name: Any) -> str:
    if isinstance(name, bytes):
        name = name.decode("latin-1")
    return str(name).lower()


def normalize_headers(
    headers: HeadersInput,
    value_mode: ValueMode = ValueMode.NATIVE,
) -> dict[str, str]:
    """Convert any accepted header shape into a lower-cased name -> value dict.

    Accepted shapes:
    - ``httpx.Headers``: repeated names arrive comma-joined, as httpx reports them.
    - Any mapping: keys are lower-cased.
    - An iterable of ``(name, value)`` pairs: when a name repeats
      (case-insensitively) the last occurrence wins.

    Args:
        headers: Headers in any accepted shape, or None.
        value_mode: Coercion policy for non-string values.

    Returns:
        A new dict. Never shared with the caller's object.

    Raises:
        HeaderValueError: If a header value is None.
        TypeError: If a pair-sequence entry is not a (name, value) pair.
    """
    if headers is None:
        return {}

    if isinstance(headers, (httpx.Headers, Mapping)):
        entries: Iterable[Any] = headers.items()
    else:
        entries = headers

    result: dict[str, str] = {}
    for entry in entries:
        if isinstance(entry, (str, bytes)) or len(entry) != 2:
            raise TypeError(f"Header entries must be (name, value) pairs, got {entry!r}")
        name, value = entry
        key = _header_name(name)
        if value is None:
            raise HeaderValueError(f"Header '{key}' has no value")
        result[key] = coerce_value(value, value_mode, f"header '{key}'")
    return result


def merge_validated_headers(
    original: Mapping[str, str],
    validated: Any,
    mode: HeaderValidationMode,
    value_mode: ValueMode = ValueMode.NATIVE,
) -> dict[str, str]:
    """Combine the caller's headers with the header schema's output.

    PRESERVE keeps every original header and overlays the validated values.
    STRICT keeps only the names the schema emitted. In both modes a None
    validated value removes that header.

    Raises:
        UnrepresentableResultError: If the schema did not produce a mapping.
    """
    validated_map = as_mapping(validated, "Request header validation")

    merged = dict(original) if mode is HeaderValidationMode.PRESERVE else {}
    for name, value in validated_map.items():
        key = _header_name(name)
        if value is None:
            merged.pop(key, None)
            continue
        merged[key] = coerce_value(value, value_mode, f"header '{key}'")
    return merged
