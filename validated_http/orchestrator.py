"""Request Orchestrator - Turns one call's arguments into an outgoing request.

Sequence, all before any transport I/O:
1. Resolve a request handle (httpx.Request) into method/url/headers/body defaults.
2. Normalize headers (client defaults under call headers), then validate them (if a request header schema exists)
   and merge according to the header validation mode.
3. Decide the content-type from the merged headers.
4. Classify the body, validate its pre-image (if a request body schema
   exists), and re-encode it into its wire form.
5. Add a default content-type where the body needs one and none is set.

Any failure raises here, so a rejected request never reaches the network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from validated_http.adapters import ValidationAdapter, run_validation
from validated_http.body import (
    VALIDATABLE_TAGS,
    BodyTag,
    classify_body,
    encode_unvalidated,
    encode_validated,
    validation_preimage,
)
from validated_http.headers import HeadersInput, merge_validated_headers, normalize_headers
from validated_http.models import ClientConfig, ValidationBlock
from validated_http.serializer import Serializer

logger = logging.getLogger(__name__)

CONTENT_TYPE = "content-type"

_DERIVED_HEADERS = frozenset({"host", "content-length", "transfer-encoding"})


@dataclass
class PreparedRequest:
    """The validated, encoded pieces of one outgoing request."""

    method: str
    url: httpx.URL | str
    headers: dict[str, str]
    body_tag: BodyTag
    body_kwargs: dict[str, Any] = field(default_factory=dict)

    def build_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``httpx.Client.build_request``."""
        return {
            "method": self.method,
            "url": self.url,
            "headers": self.headers,
            **self.body_kwargs,
        }


def _resolve_request_handle(
    target: httpx.Request,
    method: str | None,
    headers: HeadersInput,
    body: Any,
) -> tuple[str, httpx.URL, HeadersInput, Any]:
    """Use an httpx.Request's fields wherever the call left them unset."""
    if headers is None:
        # httpx recomputes these for the request it builds
        headers = [
            (name, value)
            for name, value in target.headers.items()
            if name.lower() not in _DERIVED_HEADERS
        ]
    if body is None:
        try:
            body = target.content or None
        except httpx.RequestNotRead:
            body = target.stream
    return method or target.method, target.url, headers, body


def prepare_request(
    target: str | httpx.URL | httpx.Request,
    *,
    method: str | None,
    body: Any,
    headers: HeadersInput,
    validation: ValidationBlock,
    adapter: ValidationAdapter,
    serializer: Serializer,
    config: ClientConfig,
    default_headers: HeadersInput = None,
) -> PreparedRequest:
    """Validate and encode one call's request.

    Args:
        target: URL or a request handle.
        method: HTTP method; defaults to the handle's method, else GET.
        body: Outgoing body in any accepted shape (see body.BodyTag).
        headers: Headers in any accepted shape (see headers.normalize_headers).
        validation: Schema slots for this call.
        adapter: Validation adapter.
        serializer: Structured body serializer.
        config: Client configuration (header and value modes).
        default_headers: Headers the transport client adds to every request.
            Call headers override them, and header validation sees both.

    Returns:
        PreparedRequest ready to be built and sent.

    Raises:
        Exception: The adapter's validation error, unchanged.
        BodyDecodeError: If a structured text body does not decode.
        HeaderValueError: If a caller header has no value.
        UnrepresentableResultError: If a header or form result is not a mapping.
        ValueCoercionError: If strict value coercion refuses a value.
        AsyncValidationError: If the adapter returns an awaitable.
    """
    if isinstance(target, httpx.Request):
        method, url, headers, body = _resolve_request_handle(target, method, headers, body)
    else:
        url = target
    method = (method or "GET").upper()

    header_map = normalize_headers(default_headers, config.value_mode)
    header_map.update(normalize_headers(headers, config.value_mode))

    header_schema = validation.request.headers
    headers_owned = header_schema is not None
    if headers_owned:
        validated_headers = run_validation(adapter, header_schema, header_map)
        header_map = merge_validated_headers(
            header_map, validated_headers, config.header_mode, config.value_mode
        )

    content_type = header_map.get(CONTENT_TYPE)
    tag = classify_body(body)
    body_schema = validation.request.body

    if body_schema is not None and tag in VALIDATABLE_TAGS:
        preimage, decoded = validation_preimage(body, tag, serializer, content_type)
        validated_body = run_validation(adapter, body_schema, preimage)
        wire = encode_validated(
            validated_body, tag, serializer, config.value_mode, decoded
        )
    else:
        if body_schema is not None and tag is not BodyTag.ABSENT:
            logger.debug("Request body schema skipped for %s body", tag.value)
        wire = encode_unvalidated(body, tag, serializer)

    # A header schema owns content-type; structured encoding must not add one
    if wire.default_content_type and CONTENT_TYPE not in header_map:
        if not (headers_owned and tag is BodyTag.STRUCTURED):
            header_map[CONTENT_TYPE] = wire.default_content_type

    logger.debug(
        "Prepared %s %s (body=%s, validated headers=%s, validated body=%s)",
        method,
        url,
        tag.value,
        headers_owned,
        body_schema is not None and tag in VALIDATABLE_TAGS,
    )

    return PreparedRequest(
        method=method,
        url=url,
        headers=header_map,
        body_tag=tag,
        body_kwargs=wire.kwargs,
    )
