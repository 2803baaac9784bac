"""Exception taxonomy for validated-http.

Schema validation errors are not wrapped: whatever the validation adapter
raises reaches the caller unchanged. Transport errors (``httpx.HTTPError``)
are likewise passed through untouched. The classes below cover failures
that originate in the pipeline itself.
"""

from __future__ import annotations


class ValidatedHttpError(Exception):
    """Base class for errors raised by the pipeline itself."""


class BodyDecodeError(ValidatedHttpError, ValueError):
    """Raised when a body that claims a structured content-type cannot be decoded."""


class UnrepresentableResultError(ValidatedHttpError, TypeError):
    """Raised when a validated value cannot be rebuilt into its wire container."""


class BodyConsumedError(ValidatedHttpError, RuntimeError):
    """Raised when a response body is read (or cloned) after it was consumed."""


class AsyncValidationError(ValidatedHttpError, TypeError):
    """Raised when a validation adapter returns an awaitable result."""


class HeaderValueError(ValidatedHttpError, TypeError):
    """Raised when a caller-supplied header has no value."""


class ValueCoercionError(ValidatedHttpError, TypeError):
    """Raised when strict value coercion refuses a value."""


class ConfigError(ValidatedHttpError):
    """Raised when configuration loading fails."""
