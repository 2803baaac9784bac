"""Client - Validating drop-in front ends for httpx.Client and httpx.AsyncClient.

Usage:
    client = ValidatedClient(PydanticAdapter(), base_url="https://api.example.com")
    response = client.post(
        "/users",
        body={"name": "Ada"},
        validate={"request": {"body": NewUser}, "response": {"body": User}},
    )
    user = response.json()

Or with context manager:
    with ValidatedClient(PydanticAdapter()) as client:
        response = client.get("https://api.example.com/users/1")

A call without ``validate=`` behaves like the same call on the wrapped
httpx client. Every option the pipeline does not consume (``params``,
``cookies``, ``timeout``, ``extensions``, ``auth``, ``follow_redirects``,
``stream``, ...) is forwarded to httpx unmodified.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from validated_http.adapters import ValidationAdapter
from validated_http.headers import HeadersInput
from validated_http.models import (
    ClientConfig,
    HeaderValidationMode,
    TransportConfig,
    ValidationBlock,
    ValueMode,
)
from validated_http.orchestrator import PreparedRequest, prepare_request
from validated_http.response import AsyncValidatedResponse, ValidatedResponse
from validated_http.serializer import JsonSerializer, Serializer

logger = logging.getLogger(__name__)

# Options accepted by httpx.Client.send rather than build_request
_SEND_OPTIONS = frozenset({"auth", "follow_redirects", "stream"})

# httpx body options that would compete with body=
_BODY_OPTIONS = ("content", "data", "files", "json")

Target = str | httpx.URL | httpx.Request


def build_client_kwargs(transport: TransportConfig) -> dict[str, Any]:
    """Build kwargs for httpx.Client / httpx.AsyncClient from a TransportConfig."""
    kwargs: dict[str, Any] = {
        "base_url": transport.base_url,
        "headers": transport.headers,
        "timeout": transport.timeout,
        "follow_redirects": transport.follow_redirects,
    }

    if transport.ca_bundle:
        kwargs["verify"] = transport.ca_bundle
    elif not transport.verify_ssl:
        kwargs["verify"] = False
    # else: use httpx default (True)

    return kwargs


def _check_body_options(body: Any, options: dict[str, Any]) -> None:
    conflicting = [name for name in _BODY_OPTIONS if name in options]
    if body is not None and conflicting:
        raise TypeError(
            f"Pass the request body either as body= or as {conflicting[0]}=, not both"
        )


def _drop_removed_defaults(
    request: httpx.Request, defaults: httpx.Headers, kept: dict[str, str]
) -> None:
    """Remove client default headers that header validation dropped.

    httpx merges its default headers back into every built request.
    """
    for name in defaults.keys():
        if name not in kept and name in request.headers:
            del request.headers[name]


def _split_options(options: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    build_options = {k: v for k, v in options.items() if k not in _SEND_OPTIONS}
    send_options = {k: v for k, v in options.items() if k in _SEND_OPTIONS}
    return build_options, send_options


class _ClientBase:
    """Configuration and request preparation shared by both clients."""

    def __init__(
        self,
        adapter: ValidationAdapter,
        serializer: Serializer | None = None,
        header_mode: HeaderValidationMode | str = HeaderValidationMode.PRESERVE,
        value_mode: ValueMode | str = ValueMode.NATIVE,
        config: ClientConfig | None = None,
    ) -> None:
        self._adapter = adapter
        self._serializer = serializer or JsonSerializer()
        self._config = config or ClientConfig(
            header_mode=HeaderValidationMode(header_mode),
            value_mode=ValueMode(value_mode),
        )

    @property
    def adapter(self) -> ValidationAdapter:
        return self._adapter

    @property
    def serializer(self) -> Serializer:
        return self._serializer

    @property
    def config(self) -> ClientConfig:
        return self._config

    def _prepare(
        self,
        target: Target,
        method: str | None,
        body: Any,
        headers: HeadersInput,
        validation: ValidationBlock,
    ) -> PreparedRequest:
        return prepare_request(
            target,
            method=method,
            body=body,
            headers=headers,
            validation=validation,
            adapter=self._adapter,
            serializer=self._serializer,
            config=self._config,
            default_headers=self._client.headers,
        )

    def _wrap_kwargs(self, validation: ValidationBlock) -> dict[str, Any]:
        return {
            "adapter": self._adapter,
            "body_schema": validation.response.body,
            "headers_schema": validation.response.headers,
            "serializer": self._serializer,
            "value_mode": self._config.value_mode,
        }


class ValidatedClient(_ClientBase):
    """Sync client wrapping httpx.Client."""

    def __init__(
        self,
        adapter: ValidationAdapter,
        *,
        serializer: Serializer | None = None,
        header_mode: HeaderValidationMode | str = HeaderValidationMode.PRESERVE,
        value_mode: ValueMode | str = ValueMode.NATIVE,
        config: ClientConfig | None = None,
        client: httpx.Client | None = None,
        **client_kwargs: Any,
    ) -> None:
        """Initialize the client.

        Args:
            adapter: Validation adapter (mandatory).
            serializer: Body serializer; JSON when omitted.
            header_mode: Request header merge policy.
            value_mode: Value coercion policy for headers and form fields.
            config: Full ClientConfig; overrides header_mode/value_mode.
            client: An existing httpx.Client to wrap. It is not closed by close().
            **client_kwargs: Arguments for a new httpx.Client (when client is None).
        """
        if client is not None and client_kwargs:
            raise TypeError("Pass either an httpx client or client kwargs, not both")
        super().__init__(adapter, serializer, header_mode, value_mode, config)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(**client_kwargs)

    @classmethod
    def from_config(
        cls,
        adapter: ValidationAdapter,
        config: ClientConfig,
        serializer: Serializer | None = None,
    ) -> ValidatedClient:
        """Create a client (and its httpx.Client) from a ClientConfig."""
        client_kwargs = build_client_kwargs(config.transport) if config.transport else {}
        return cls(adapter, serializer=serializer, config=config, **client_kwargs)

    @property
    def client(self) -> httpx.Client:
        """The wrapped httpx.Client."""
        return self._client

    def __enter__(self) -> ValidatedClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the wrapped httpx.Client if this client created it."""
        if self._owns_client:
            self._client.close()

    def fetch(
        self,
        target: Target,
        *,
        method: str | None = None,
        body: Any = None,
        headers: HeadersInput = None,
        validate: ValidationBlock | dict[str, Any] | None = None,
        **options: Any,
    ) -> ValidatedResponse:
        """Send one request with optional request/response validation.

        Args:
            target: URL, or an httpx.Request whose fields fill in anything
                not given explicitly.
            method: HTTP method (default: the request's method, else GET).
            body: str, bytes-like, stream, FormData, httpx.QueryParams,
                dict/list/tuple/pydantic model, or None.
            headers: Mapping, (name, value) pairs, or httpx.Headers.
            validate: ValidationBlock or the equivalent nested dict.
            **options: Forwarded to httpx unmodified.

        Returns:
            ValidatedResponse wrapping the httpx response.

        Raises:
            Exception: Validation errors from the adapter, unchanged. Request
                side failures are raised before any I/O.
            httpx.HTTPError: Transport errors, unchanged.
            TypeError: If body= is combined with content=, data=, files= or json=.
        """
        _check_body_options(body, options)
        validation = ValidationBlock.from_option(validate)
        prepared = self._prepare(target, method, body, headers, validation)
        build_options, send_options = _split_options(options)

        request = self._client.build_request(**prepared.build_kwargs(), **build_options)
        _drop_removed_defaults(request, self._client.headers, prepared.headers)
        response = self._client.send(request, **send_options)
        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)

        try:
            return ValidatedResponse(response, **self._wrap_kwargs(validation))
        except BaseException:
            response.close()
            raise

    def request(self, method: str, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.fetch(url, method=method, **kwargs)

    def get(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("GET", url, **kwargs)

    def head(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("HEAD", url, **kwargs)

    def options(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("OPTIONS", url, **kwargs)

    def post(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("POST", url, **kwargs)

    def put(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("PUT", url, **kwargs)

    def patch(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: Target, **kwargs: Any) -> ValidatedResponse:
        return self.request("DELETE", url, **kwargs)


class AsyncValidatedClient(_ClientBase):
    """Async client wrapping httpx.AsyncClient.

    Cancellation is the caller's asyncio task cancellation; nothing is added.
    """

    def __init__(
        self,
        adapter: ValidationAdapter,
        *,
        serializer: Serializer | None = None,
        header_mode: HeaderValidationMode | str = HeaderValidationMode.PRESERVE,
        value_mode: ValueMode | str = ValueMode.NATIVE,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
        **client_kwargs: Any,
    ) -> None:
        if client is not None and client_kwargs:
            raise TypeError("Pass either an httpx client or client kwargs, not both")
        super().__init__(adapter, serializer, header_mode, value_mode, config)
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(**client_kwargs)

    @classmethod
    def from_config(
        cls,
        adapter: ValidationAdapter,
        config: ClientConfig,
        serializer: Serializer | None = None,
    ) -> AsyncValidatedClient:
        client_kwargs = build_client_kwargs(config.transport) if config.transport else {}
        return cls(adapter, serializer=serializer, config=config, **client_kwargs)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def __aenter__(self) -> AsyncValidatedClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(
        self,
        target: Target,
        *,
        method: str | None = None,
        body: Any = None,
        headers: HeadersInput = None,
        validate: ValidationBlock | dict[str, Any] | None = None,
        **options: Any,
    ) -> AsyncValidatedResponse:
        """Async counterpart of ValidatedClient.fetch."""
        _check_body_options(body, options)
        validation = ValidationBlock.from_option(validate)
        prepared = self._prepare(target, method, body, headers, validation)
        build_options, send_options = _split_options(options)

        request = self._client.build_request(**prepared.build_kwargs(), **build_options)
        _drop_removed_defaults(request, self._client.headers, prepared.headers)
        response = await self._client.send(request, **send_options)
        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)

        try:
            return AsyncValidatedResponse(response, **self._wrap_kwargs(validation))
        except BaseException:
            await response.aclose()
            raise

    async def request(self, method: str, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.fetch(url, method=method, **kwargs)

    async def get(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("GET", url, **kwargs)

    async def head(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("HEAD", url, **kwargs)

    async def options(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("OPTIONS", url, **kwargs)

    async def post(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: Target, **kwargs: Any) -> AsyncValidatedResponse:
        return await self.request("DELETE", url, **kwargs)


def create_client(adapter: ValidationAdapter, **kwargs: Any) -> ValidatedClient:
    """Convenience factory for ValidatedClient."""
    return ValidatedClient(adapter, **kwargs)
