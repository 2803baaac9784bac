"""Validation-aware response decorators.

ValidatedResponse (sync) and AsyncValidatedResponse wrap an httpx.Response
by composition. They own three pieces of state:
- the wrapped response,
- the validated-headers cache, filled at most once,
- a body_used flag.

Header validation is eager: with a response header schema, construction
validates and a failure propagates out of the client call. Body validation
is lazy: it runs inside the body-reading method that needs it. Each
decorator allows one body read in total, whichever method is used; clone()
produces an independent decorator with its own flag and cache.
"""

from __future__ import annotations

import copy
import logging
from datetime import timedelta
from typing import Any

import httpx

from validated_http.adapters import ValidationAdapter, run_validation
from validated_http.errors import BodyConsumedError, BodyDecodeError
from validated_http.form_data import (
    FormData,
    build_form_data,
    build_query_params,
    flatten_form_data,
    flatten_query_params,
    parse_form_body,
    parse_urlencoded,
)
from validated_http.headers import normalize_headers
from validated_http.models import ValueMode
from validated_http.serializer import JsonSerializer, Serializer

logger = logging.getLogger(__name__)

_UNSET = object()


class _ResponseState:
    """State and read-independent behavior shared by both decorators."""

    def __init__(
        self,
        response: httpx.Response,
        adapter: ValidationAdapter,
        body_schema: Any = None,
        headers_schema: Any = None,
        serializer: Serializer | None = None,
        value_mode: ValueMode = ValueMode.NATIVE,
    ) -> None:
        """Wrap *response*; validates headers now if *headers_schema* is set.

        Raises:
            Exception: The adapter's header validation error, unchanged.
        """
        self._response = response
        self._adapter = adapter
        self._body_schema = body_schema
        self._headers_schema = headers_schema
        self._serializer = serializer or JsonSerializer()
        self._value_mode = value_mode
        self._body_used = False
        self._validated_headers: Any = _UNSET

        if headers_schema is not None:
            self._validated_headers = self._validate_headers()

    # -------------------------
    # Headers
    # -------------------------

    def _validate_headers(self) -> Any:
        logger.debug("Validating response headers (status %s)", self._response.status_code)
        return run_validation(self._adapter, self._headers_schema, self.raw_headers())

    @property
    def validated_headers(self) -> Any:
        """Schema-validated headers, or raw_headers() when there is no schema.

        The adapter runs at most once per decorator. Each access returns a copy,
        so the cached value never changes.
        """
        if self._headers_schema is None:
            return self.raw_headers()
        if self._validated_headers is _UNSET:
            self._validated_headers = self._validate_headers()
        return copy.deepcopy(self._validated_headers)

    def raw_headers(self) -> dict[str, str]:
        """Response headers as a lower-cased name -> value dict."""
        return normalize_headers(self._response.headers)

    # -------------------------
    # Passthrough properties
    # -------------------------

    @property
    def response(self) -> httpx.Response:
        """The wrapped httpx.Response."""
        return self._response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def reason_phrase(self) -> str:
        return self._response.reason_phrase

    @property
    def is_success(self) -> bool:
        return self._response.is_success

    @property
    def ok(self) -> bool:
        return self._response.is_success

    @property
    def is_redirect(self) -> bool:
        return self._response.is_redirect

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> httpx.URL:
        return self._response.url

    @property
    def request(self) -> httpx.Request:
        return self._response.request

    @property
    def http_version(self) -> str:
        return self._response.http_version

    @property
    def elapsed(self) -> timedelta:
        return self._response.elapsed

    @property
    def history(self) -> list[httpx.Response]:
        return self._response.history

    @property
    def body_used(self) -> bool:
        return self._body_used

    def raise_for_status(self) -> Any:
        """Raise httpx.HTTPStatusError for 4xx/5xx; otherwise return self."""
        self._response.raise_for_status()
        return self

    def clone(self) -> Any:
        """Return an independent decorator over the same response.

        The clone has its own body_used flag and its own copy of the
        validated-headers cache.

        Raises:
            BodyConsumedError: If this decorator's body was already read.
        """
        if self._body_used:
            raise BodyConsumedError("Cannot clone a response whose body has been consumed")
        twin = copy.copy(self)
        if self._validated_headers is not _UNSET:
            twin._validated_headers = copy.deepcopy(self._validated_headers)
        return twin

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self.status_code} {self.reason_phrase}]>"

    # -------------------------
    # Body decoding (after the read)
    # -------------------------

    def _mark_used(self) -> None:
        if self._body_used:
            raise BodyConsumedError("Response body has already been consumed")
        self._body_used = True

    def _validate_body(self, data: Any, reader: str) -> Any:
        if self._body_schema is None:
            return data
        logger.debug("Validating response body from %s()", reader)
        return run_validation(self._adapter, self._body_schema, data)

    def _decode_json(self) -> Any:
        try:
            data = self._serializer.decode(self._response.text)
        except Exception as e:
            raise BodyDecodeError(f"Invalid JSON response body: {e}") from e
        return self._validate_body(data, "json")

    def _decode_form_data(self, content: bytes) -> FormData:
        form = parse_form_body(content, self._response.headers.get("content-type"))
        if self._body_schema is None:
            return form
        validated = self._validate_body(flatten_form_data(form), "form_data")
        return build_form_data(validated, self._value_mode)

    def _decode_url_search_params(self, content: bytes) -> httpx.QueryParams:
        params = parse_urlencoded(content)
        if self._body_schema is None:
            return params
        validated = self._validate_body(flatten_query_params(params), "url_search_params")
        return build_query_params(validated, self._value_mode)


class ValidatedResponse(_ResponseState):
    """Sync decorator returned by ValidatedClient.

    Body methods (one call in total per instance):
        json()              serializer decode, then body schema
        text()              raw text, not validated
        read()              raw bytes, not validated
        form_data()         multipart or url-encoded -> FormData, body schema
        url_search_params() url-encoded -> httpx.QueryParams, body schema
    """

    def _read(self) -> bytes:
        self._mark_used()
        return self._response.read()

    def json(self) -> Any:
        self._read()
        return self._decode_json()

    def text(self) -> str:
        self._read()
        return self._response.text

    def read(self) -> bytes:
        return self._read()

    def form_data(self) -> FormData:
        return self._decode_form_data(self._read())

    def url_search_params(self) -> httpx.QueryParams:
        return self._decode_url_search_params(self._read())

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> ValidatedResponse:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()


class AsyncValidatedResponse(_ResponseState):
    """Async decorator returned by AsyncValidatedClient.

    Same surface as ValidatedResponse with awaitable body methods.
    """

    async def _aread(self) -> bytes:
        self._mark_used()
        return await self._response.aread()

    async def json(self) -> Any:
        await self._aread()
        return self._decode_json()

    async def text(self) -> str:
        await self._aread()
        return self._response.text

    async def read(self) -> bytes:
        return await self._aread()

    async def form_data(self) -> FormData:
        return self._decode_form_data(await self._aread())

    async def url_search_params(self) -> httpx.QueryParams:
        return self._decode_url_search_params(await self._aread())

    async def aclose(self) -> None:
        await self._response.aclose()

    async def __aenter__(self) -> AsyncValidatedResponse:
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.aclose()
