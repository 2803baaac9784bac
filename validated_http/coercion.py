"""Turning validated values back into wire strings.

Schemas may transform header or form values into non-strings (an integer
age, a boolean flag). Before those values go back on the wire they are
converted according to the client's ValueMode.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from validated_http.errors import UnrepresentableResultError, ValueCoercionError
from validated_http.models import ValueMode


def coerce_value(value: Any, mode: ValueMode, context: str) -> str:
    """Convert a single validated value to its wire string.

    Both modes accept strings, bytes (latin-1, the HTTP header charset),
    booleans (``true``/``false``) and numbers. NATIVE stringifies everything
    else; STRICT raises ValueCoercionError naming *context*.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("latin-1")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if mode is ValueMode.STRICT:
        raise ValueCoercionError(
            f"{context}: cannot convert {type(value).__name__} to a string "
            f"with strict value coercion"
        )
    if value is None:
        return "null"
    return str(value)


def as_mapping(value: Any, context: str) -> dict[Any, Any]:
    """Return a validated result as a plain dict.

    Pydantic models are dumped by alias so that field aliases such as
    ``x-api-key`` come back as the wire names. Anything that is not a mapping
    cannot be rebuilt into headers or form fields.
    """
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    raise UnrepresentableResultError(
        f"{context} produced {type(value).__name__}, expected a mapping"
    )
