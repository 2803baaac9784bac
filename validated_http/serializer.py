"""Body serializers and the structured content-type predicate.

A serializer is a per-client value: it encodes structured values into the
request body, decodes response text for ``json()``, and decides which
content-types count as structured. The default is JSON.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

from pydantic_core import to_jsonable_python

JSON_MEDIA_TYPE = "application/json"


def media_type(content_type: str | None) -> str:
    """Return the lower-cased media type with any ``;`` parameters removed."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_json_content_type(content_type: str | None) -> bool:
    """True for ``application/json`` and vendor types like ``application/vnd.api+json``.

    ``application/jsonp`` is not JSON.
    """
    mtype = media_type(content_type)
    if mtype == JSON_MEDIA_TYPE:
        return True
    main, _, subtype = mtype.partition("/")
    return main == "application" and subtype.endswith("+json") and len(subtype) > len("+json")


class Serializer(Protocol):
    """Encode/decode pair plus the content-type predicate that selects it."""

    content_type: str

    def encode(self, value: Any) -> str: ...

    def decode(self, text: str) -> Any: ...

    def is_structured_content_type(self, content_type: str | None) -> bool: ...


class JsonSerializer:
    """Default serializer.

    Output is compact (no whitespace after separators) and keeps non-ASCII
    characters, which is what httpx produces for ``json=``. Values the json
    module cannot encode natively (pydantic models, datetimes, UUIDs) go
    through pydantic's jsonable conversion.
    """

    content_type = JSON_MEDIA_TYPE

    def encode(self, value: Any) -> str:
        return json.dumps(
            value,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=False,
            default=to_jsonable_python,
        )

    def decode(self, text: str) -> Any:
        return json.loads(text)

    def is_structured_content_type(self, content_type: str | None) -> bool:
        return is_json_content_type(content_type)
