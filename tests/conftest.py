"""Pytest configuration and fixtures for validated-http tests.

This file provides:
- RecordingTransport: httpx.MockTransport handler that keeps every request
- Fixtures: a recorder, sync/async client factories, common adapters
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from validated_http.adapters import CallableAdapter
from validated_http.client import AsyncValidatedClient, ValidatedClient

BASE_URL = "https://api.example.com"


def json_response(request: httpx.Request) -> httpx.Response:
    """Default responder: 200 with a small JSON body."""
    return httpx.Response(200, json={"success": True})


class RecordingTransport:
    """Callable handler for httpx.MockTransport that records requests.

    Request bodies are already read by MockTransport before the handler runs,
    so ``request.content`` is always available on recorded requests.

    Usage:
        recorder = RecordingTransport(lambda request: httpx.Response(204))
        client = httpx.Client(transport=httpx.MockTransport(recorder))
    """

    def __init__(
        self,
        responder: Callable[[httpx.Request], httpx.Response] = json_response,
    ) -> None:
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def last(self) -> httpx.Request:
        assert self.requests, "no request was sent"
        return self.requests[-1]


@pytest.fixture
def recorder() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_client(recorder: RecordingTransport) -> Callable[..., ValidatedClient]:
    """Factory for a ValidatedClient whose httpx.Client talks to *recorder*.

    Keyword arguments are passed to ValidatedClient (adapter defaults to
    CallableAdapter, so schemas in tests are plain functions).
    """
    created: list[httpx.Client] = []

    def factory(adapter: Any = None, **kwargs: Any) -> ValidatedClient:
        http_client = httpx.Client(transport=httpx.MockTransport(recorder), base_url=BASE_URL)
        created.append(http_client)
        return ValidatedClient(adapter or CallableAdapter(), client=http_client, **kwargs)

    yield factory

    for http_client in created:
        http_client.close()


@pytest.fixture
def make_async_client(recorder: RecordingTransport) -> Callable[..., AsyncValidatedClient]:
    """Factory for an AsyncValidatedClient talking to *recorder*.

    The caller owns the returned client; tests close it inside their event loop.
    """

    def factory(adapter: Any = None, **kwargs: Any) -> AsyncValidatedClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder), base_url=BASE_URL)
        return AsyncValidatedClient(adapter or CallableAdapter(), client=http_client, **kwargs)

    return factory

