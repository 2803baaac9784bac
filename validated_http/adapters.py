"""Validation adapters.

The pipeline needs exactly one capability from a validation library:
``parse(schema, data) -> validated`` that raises on invalid data. Adapters
are passed explicitly to the client; the pipeline never inspects a schema to
guess which library owns it.

Shipped adapters:
- PydanticAdapter: schema is a pydantic model class, a TypeAdapter, or any
  type pydantic can validate (``dict[str, int]``, ``Annotated[...]``).
- JsonSchemaAdapter: schema is a JSON Schema dict. Returns data unchanged.
- CallableAdapter: schema is any callable taking the data.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Protocol

from jsonschema import FormatChecker
from jsonschema.validators import validator_for
from pydantic import BaseModel, TypeAdapter

from validated_http.errors import AsyncValidationError


class ValidationAdapter(Protocol):
    """The single capability the pipeline needs from a validation library."""

    def parse(self, schema: Any, data: Any) -> Any: ...


def run_validation(adapter: ValidationAdapter, schema: Any, data: Any) -> Any:
    """Invoke the adapter and insist on a synchronous result.

    Validation completes before the transport call. An awaitable result is
    rejected, never awaited.

    Raises:
        AsyncValidationError: If the adapter returned an awaitable.
        Exception: Whatever the adapter raises for invalid data, unchanged.
    """
    result = adapter.parse(schema, data)
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            # Avoid the "coroutine was never awaited" warning
            result.close()
        raise AsyncValidationError(
            f"{type(adapter).__name__}.parse returned an awaitable; "
            f"asynchronous validation is not supported"
        )
    return result


class PydanticAdapter:
    """Validate with pydantic.

    Model classes use ``model_validate``; TypeAdapter instances are used
    directly; any other type is wrapped in a TypeAdapter, built once per
    schema and reused.
    """

    def __init__(self, strict: bool | None = None) -> None:
        self._strict = strict
        self._type_adapters: dict[Any, TypeAdapter[Any]] = {}

    def parse(self, schema: Any, data: Any) -> Any:
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            return schema.model_validate(data, strict=self._strict)
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(data, strict=self._strict)
        return self._type_adapter(schema).validate_python(data, strict=self._strict)

    def _type_adapter(self, schema: Any) -> TypeAdapter[Any]:
        try:
            cached = self._type_adapters.get(schema)
        except TypeError:
            # Unhashable type expression
            return TypeAdapter(schema)
        if cached is None:
            cached = TypeAdapter(schema)
            self._type_adapters[schema] = cached
        return cached


class JsonSchemaAdapter:
    """Validate against a JSON Schema dict.

    The draft is picked from the schema's ``$schema`` keyword (latest draft
    when absent). JSON Schema only checks data, so the data itself is the
    validated result.
    """

    def __init__(self, check_formats: bool = True) -> None:
        self._check_formats = check_formats

    def parse(self, schema: Any, data: Any) -> Any:
        validator_cls = validator_for(schema)
        validator_cls.check_schema(schema)
        format_checker = FormatChecker() if self._check_formats else None
        validator_cls(schema, format_checker=format_checker).validate(data)
        return data


class CallableAdapter:
    """Treat the schema as a function: ``schema(data) -> validated``."""

    def parse(self, schema: Callable[[Any], Any], data: Any) -> Any:
        return schema(data)
