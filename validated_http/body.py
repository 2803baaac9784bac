"""Outgoing body classification, validation pre-image, and re-encoding.

Every outgoing body is classified into a BodyTag. The tag decides two
things: what plain structure a schema sees (the pre-image), and how the
validated result is turned back into something httpx can send (the wire
form). The wire form is expressed as keyword arguments for
``httpx.Client.build_request`` (``content=`` or ``files=``).

    Tag         Pre-image                       Wire form
    ABSENT      (no validation)                 nothing
    TEXT        decoded if structured/unset     str as-is, or serializer output
    BINARY      (no validation)                 content=, unchanged
    FORM_DATA   flattened multi-value dict      files= (multipart)
    URL_PARAMS  flattened multi-value dict      content= url-encoded text
    STRUCTURED  the value itself                serializer output
    OTHER       (no validation)                 content=, unchanged
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel

from validated_http.errors import BodyDecodeError
from validated_http.form_data import (
    URLENCODED_CONTENT_TYPE,
    FormData,
    build_form_data,
    build_query_params,
    flatten_form_data,
    flatten_query_params,
    form_data_to_files,
)
from validated_http.models import ValueMode
from validated_http.serializer import Serializer


class BodyTag(str, Enum):
    """Structural classification of an outgoing body."""

    ABSENT = "absent"
    TEXT = "text"
    BINARY = "binary"  # bytes-like, file-like or byte stream
    FORM_DATA = "form_data"
    URL_PARAMS = "url_params"
    STRUCTURED = "structured"  # dict / list / tuple / pydantic model
    OTHER = "other"  # handed to httpx untouched


# Tags whose bodies a schema can see
VALIDATABLE_TAGS = frozenset({
    BodyTag.TEXT,
    BodyTag.FORM_DATA,
    BodyTag.URL_PARAMS,
    BodyTag.STRUCTURED,
})


@dataclass
class WireBody:
    """A body ready for httpx.

    Attributes:
        tag: Classification of the original body.
        kwargs: ``content=`` / ``files=`` arguments for build_request.
        default_content_type: Content-type to add when the request has none.
    """

    tag: BodyTag
    kwargs: dict[str, Any] = field(default_factory=dict)
    default_content_type: str | None = None


def classify_body(body: Any) -> BodyTag:
    """Return the BodyTag for an outgoing body."""
    if body is None:
        return BodyTag.ABSENT
    if isinstance(body, str):
        return BodyTag.TEXT
    if isinstance(body, (bytes, bytearray, memoryview)):
        return BodyTag.BINARY
    if isinstance(body, FormData):
        return BodyTag.FORM_DATA
    # QueryParams is itself a Mapping, so it must be checked first
    if isinstance(body, httpx.QueryParams):
        return BodyTag.URL_PARAMS
    if isinstance(body, (Mapping, list, tuple, BaseModel)):
        return BodyTag.STRUCTURED
    if hasattr(body, "read") or isinstance(body, (Iterable, AsyncIterable)):
        return BodyTag.BINARY
    return BodyTag.OTHER


def validation_preimage(
    body: Any,
    tag: BodyTag,
    serializer: Serializer,
    content_type: str | None,
) -> tuple[Any, bool]:
    """Flatten a body into the plain structure a schema validates.

    Args:
        body: The outgoing body.
        tag: Its classification (must be in VALIDATABLE_TAGS).
        serializer: Decoder for structured text bodies.
        content_type: The request's content-type after header validation.

    Returns:
        Tuple of (pre-image, decoded). ``decoded`` is True when a TEXT body
        was decoded by the serializer rather than passed through as a string.

    Raises:
        BodyDecodeError: If a TEXT body with a structured content-type does
            not decode.
    """
    if tag is BodyTag.FORM_DATA:
        return flatten_form_data(body), False
    if tag is BodyTag.URL_PARAMS:
        return flatten_query_params(body), False
    if tag is BodyTag.STRUCTURED:
        if isinstance(body, BaseModel):
            return body.model_dump(by_alias=True), False
        return body, False

    structured = serializer.is_structured_content_type(content_type)
    if content_type and not structured:
        return body, False
    try:
        return serializer.decode(body), True
    except Exception as e:
        if structured:
            raise BodyDecodeError(f"Invalid JSON request body: {e}") from e
        # No content-type: an undecodable string is just a string
        return body, False


def encode_validated(
    validated: Any,
    tag: BodyTag,
    serializer: Serializer,
    value_mode: ValueMode,
    decoded: bool,
) -> WireBody:
    """Rebuild the wire form of a validated body, keeping the original container.

    Raises:
        UnrepresentableResultError: If a form result is not a mapping.
        ValueCoercionError: If strict coercion refuses a form value.
    """
    if tag is BodyTag.FORM_DATA:
        form = build_form_data(validated, value_mode)
        return WireBody(tag, {"files": form_data_to_files(form)})
    if tag is BodyTag.URL_PARAMS:
        params = build_query_params(validated, value_mode)
        return WireBody(tag, {"content": str(params)}, URLENCODED_CONTENT_TYPE)
    if tag is BodyTag.TEXT:
        if isinstance(validated, str) and not decoded:
            return WireBody(tag, {"content": validated})
        return WireBody(tag, {"content": serializer.encode(validated)})
    return WireBody(
        tag, {"content": serializer.encode(validated)}, serializer.content_type
    )


def encode_unvalidated(body: Any, tag: BodyTag, serializer: Serializer) -> WireBody:
    """Wire form of a body no schema looked at."""
    if tag is BodyTag.ABSENT:
        return WireBody(tag)
    if tag is BodyTag.STRUCTURED:
        return WireBody(tag, {"content": serializer.encode(body)}, serializer.content_type)
    if tag is BodyTag.FORM_DATA:
        return WireBody(tag, {"files": form_data_to_files(body)})
    if tag is BodyTag.URL_PARAMS:
        return WireBody(tag, {"content": str(body)}, URLENCODED_CONTENT_TYPE)
    if isinstance(body, (bytearray, memoryview)):
        # httpx only accepts bytes for in-memory binary content
        return WireBody(tag, {"content": bytes(body)})
    return WireBody(tag, {"content": body})
