"""Tests for ValidatedResponse and AsyncValidatedResponse.

Tests cover:
- Eager header validation and the validated-headers cache
- Lazy body validation per body-reading method
- One body read per decorator, clone() independence
- Form and url-encoded decoding with rebuilt containers
- Custom serializers for json()
"""

import asyncio
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from validated_http.adapters import CallableAdapter
from validated_http.errors import BodyConsumedError, BodyDecodeError, UnrepresentableResultError
from validated_http.form_data import FormData
from validated_http.response import AsyncValidatedResponse, ValidatedResponse

URL = "https://api.example.com/users/1"


def make_response(status_code: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("GET", URL), **kwargs)


def wrap(response: httpx.Response, **kwargs: Any) -> ValidatedResponse:
    return ValidatedResponse(response, CallableAdapter(), **kwargs)


def identity(data: Any) -> Any:
    return data


class LineSerializer:
    """Serializer for ``key: value`` lines."""

    content_type = "text/x-lines"

    def encode(self, value: Any) -> str:
        return "\n".join(f"{k}: {v}" for k, v in value.items())

    def decode(self, text: str) -> Any:
        return dict(line.split(": ", 1) for line in text.splitlines())

    def is_structured_content_type(self, content_type: str | None) -> bool:
        return (content_type or "").startswith(self.content_type)


class TestHeaders:
    """Header validation and caching."""

    def test_raw_headers_lower_cased(self) -> None:
        response = wrap(make_response(headers={"X-Request-Id": "r-1"}))
        assert response.raw_headers()["x-request-id"] == "r-1"
        assert "X-Request-Id" not in response.raw_headers()

    def test_validated_headers_without_schema_are_raw(self) -> None:
        response = wrap(make_response(headers={"X-Request-Id": "r-1"}))
        assert response.validated_headers == response.raw_headers()

    def test_schema_runs_once_at_construction(self) -> None:
        schema = MagicMock(side_effect=lambda h: {"request_id": h["x-request-id"]})
        response = wrap(make_response(headers={"X-Request-Id": "r-1"}), headers_schema=schema)
        assert schema.call_count == 1
        assert response.validated_headers == {"request_id": "r-1"}
        assert response.validated_headers == {"request_id": "r-1"}
        assert schema.call_count == 1

    def test_failure_raises_from_construction(self) -> None:
        def schema(headers: Any) -> Any:
            raise ValueError("x-request-id missing")

        with pytest.raises(ValueError, match="x-request-id missing"):
            wrap(make_response(), headers_schema=schema)

    def test_clone_does_not_revalidate(self) -> None:
        schema = MagicMock(side_effect=lambda h: {"id": h["x-request-id"]})
        response = wrap(make_response(headers={"X-Request-Id": "r-1"}), headers_schema=schema)
        twin = response.clone()
        assert twin.validated_headers == {"id": "r-1"}
        assert schema.call_count == 1

    def test_clone_cache_is_independent(self) -> None:
        response = wrap(make_response(headers={"X-Request-Id": "r-1"}), headers_schema=dict)
        twin = response.clone()
        twin.validated_headers["x-request-id"] = "changed"
        assert response.validated_headers["x-request-id"] == "r-1"

    def test_mutating_result_leaves_cache_intact(self) -> None:
        schema = MagicMock(side_effect=lambda h: {"ids": [h["x-request-id"]]})
        response = wrap(make_response(headers={"X-Request-Id": "r-1"}), headers_schema=schema)
        first = response.validated_headers
        first["ids"].append("r-2")
        first["extra"] = "x"
        assert response.validated_headers == {"ids": ["r-1"]}
        assert schema.call_count == 1


class TestBodyReads:
    """Body-reading methods and the single-read rule."""

    def test_json_validated(self) -> None:
        schema = MagicMock(side_effect=lambda b: {"id": int(b["id"])})
        response = wrap(make_response(json={"id": "7"}), body_schema=schema)
        schema.assert_not_called()
        assert response.json() == {"id": 7}
        schema.assert_called_once_with({"id": "7"})

    def test_json_without_schema(self) -> None:
        assert wrap(make_response(json=[1, 2])).json() == [1, 2]

    def test_json_failure_propagates(self) -> None:
        def schema(body: Any) -> Any:
            raise ValueError("id must be an integer")

        response = wrap(make_response(json={"id": "x"}), body_schema=schema)
        with pytest.raises(ValueError, match="id must be an integer"):
            response.json()

    def test_invalid_json(self) -> None:
        response = wrap(make_response(text="{invalid-json}"))
        with pytest.raises(BodyDecodeError, match="Invalid JSON response body"):
            response.json()

    def test_text_not_validated(self) -> None:
        schema = MagicMock(side_effect=identity)
        response = wrap(make_response(text="hello"), body_schema=schema)
        assert response.text() == "hello"
        schema.assert_not_called()

    def test_read_not_validated(self) -> None:
        schema = MagicMock(side_effect=identity)
        response = wrap(make_response(content=b"\x00\x01"), body_schema=schema)
        assert response.read() == b"\x00\x01"
        schema.assert_not_called()

    @pytest.mark.parametrize("second", ["json", "text", "read", "form_data", "url_search_params"])
    def test_second_read_fails(self, second: str) -> None:
        response = wrap(make_response(json={"a": 1}))
        response.json()
        assert response.body_used is True
        with pytest.raises(BodyConsumedError):
            getattr(response, second)()

    def test_clone_reads_independently(self) -> None:
        response = wrap(make_response(json={"a": 1}))
        twin = response.clone()
        assert response.json() == {"a": 1}
        assert twin.text() == '{"a":1}'
        assert twin.body_used is True

    def test_clone_after_consume_fails(self) -> None:
        response = wrap(make_response(json={"a": 1}))
        response.read()
        with pytest.raises(BodyConsumedError):
            response.clone()

    def test_custom_serializer(self) -> None:
        response = wrap(
            make_response(text="name: Ada\nrole: admin"),
            serializer=LineSerializer(),
            body_schema=identity,
        )
        assert response.json() == {"name": "Ada", "role": "admin"}


class TestFormBodies:
    """form_data() and url_search_params()."""

    urlencoded = {"content-type": "application/x-www-form-urlencoded"}

    def test_form_data_without_schema(self) -> None:
        response = wrap(make_response(content=b"a=1&a=2", headers=self.urlencoded))
        assert response.form_data() == FormData([("a", "1"), ("a", "2")])

    def test_form_data_transformed_value_is_coerced(self) -> None:
        schema = MagicMock(side_effect=lambda f: {**f, "age": int(f["age"])})
        response = wrap(
            make_response(content=b"name=Ada&age=123", headers=self.urlencoded),
            body_schema=schema,
        )
        form = response.form_data()
        schema.assert_called_once_with({"name": "Ada", "age": "123"})
        assert form.get("age") == "123"

    def test_form_data_multipart(self) -> None:
        request = httpx.Request(
            "POST", URL, files=[("tags", (None, "a")), ("tags", (None, "b"))]
        )
        response = wrap(
            make_response(content=request.read(), headers={"content-type": request.headers["content-type"]}),
            body_schema=identity,
        )
        assert response.form_data().get_all("tags") == ["a", "b"]

    def test_form_data_non_mapping_result(self) -> None:
        response = wrap(
            make_response(content=b"a=1", headers=self.urlencoded),
            body_schema=lambda f: "a=1",
        )
        with pytest.raises(UnrepresentableResultError):
            response.form_data()

    def test_form_data_wrong_content_type(self) -> None:
        response = wrap(make_response(json={"a": 1}))
        with pytest.raises(BodyDecodeError):
            response.form_data()

    def test_url_search_params(self) -> None:
        response = wrap(
            make_response(content=b"q=x&q=y&page=1", headers=self.urlencoded),
            body_schema=lambda p: {**p, "page": int(p["page"]) + 1},
        )
        params = response.url_search_params()
        assert params.get_list("q") == ["x", "y"]
        assert params["page"] == "2"


class TestPassthrough:
    """Response attributes delegated to httpx."""

    def test_status_and_flags(self) -> None:
        response = wrap(make_response(201))
        assert response.status_code == 201
        assert response.ok is True
        assert response.is_success is True
        assert response.reason_phrase == "Created"
        assert response.url == httpx.URL(URL)
        assert response.request.method == "GET"

    def test_raise_for_status(self) -> None:
        assert wrap(make_response(204)).raise_for_status().status_code == 204
        with pytest.raises(httpx.HTTPStatusError):
            wrap(make_response(404)).raise_for_status()

    def test_context_manager_closes(self) -> None:
        with wrap(make_response(json={})) as response:
            assert response.status_code == 200
        assert response.response.is_closed is True


class TestAsyncValidatedResponse:
    """Async decorator mirrors the sync one."""

    def test_json_validated_once(self) -> None:
        async def run() -> None:
            response = AsyncValidatedResponse(
                make_response(json={"id": "7"}),
                CallableAdapter(),
                body_schema=lambda b: {"id": int(b["id"])},
            )
            assert await response.json() == {"id": 7}
            with pytest.raises(BodyConsumedError):
                await response.text()

        asyncio.run(run())

    def test_clone_and_form_data(self) -> None:
        async def run() -> None:
            response = AsyncValidatedResponse(
                make_response(
                    content=b"a=1",
                    headers={"content-type": "application/x-www-form-urlencoded"},
                ),
                CallableAdapter(),
            )
            twin = response.clone()
            assert (await response.form_data()).get("a") == "1"
            assert (await twin.url_search_params())["a"] == "1"
            await response.aclose()

        asyncio.run(run())
