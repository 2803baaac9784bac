"""Configuration and per-call option models for validated-http.

All models use Pydantic v2. Schema handles inside the validation block are
opaque to the pipeline: they are stored as-is and only ever handed to the
configured validation adapter.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Policies
# =============================================================================


class HeaderValidationMode(str, Enum):
    """How validated request headers are merged with the caller's headers."""

    PRESERVE = "preserve"  # Validated values overlay the originals (default)
    STRICT = "strict"  # Only headers emitted by the schema survive


class ValueMode(str, Enum):
    """How non-string validated values become wire strings.

    Applies to header values and to form-data / url-encoded values rebuilt
    after validation.
    """

    NATIVE = "native"  # Permissive: anything is stringified
    STRICT = "strict"  # Only scalars are accepted; everything else raises


# =============================================================================
# Validation Block
# =============================================================================


class RequestValidation(BaseModel):
    """Schemas applied to the outgoing request. None means pass through."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    body: Any = Field(default=None, description="Schema for the request body")
    headers: Any = Field(default=None, description="Schema for the request headers")


class ResponseValidation(BaseModel):
    """Schemas applied to the incoming response. None means pass through."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    body: Any = Field(default=None, description="Schema for the response body")
    headers: Any = Field(default=None, description="Schema for the response headers")


class ValidationBlock(BaseModel):
    """All schema slots for one call, grouped by direction.

    Accepts the nested-dict form too:
        {"request": {"body": ..., "headers": ...}, "response": {...}}
    """

    model_config = ConfigDict(extra="forbid")

    request: RequestValidation = Field(
        default_factory=RequestValidation, description="Outgoing request schemas"
    )
    response: ResponseValidation = Field(
        default_factory=ResponseValidation, description="Incoming response schemas"
    )

    @classmethod
    def from_option(cls, value: ValidationBlock | dict[str, Any] | None) -> ValidationBlock:
        """Normalize the per-call ``validate=`` option into a ValidationBlock."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.model_validate(value)


# =============================================================================
# Client Configuration
# =============================================================================


class TransportConfig(BaseModel):
    """httpx client settings used when the client is built from config."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(default="", description="Base URL prepended to relative URLs")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Default headers (supports ${ENV_VAR} substitution)",
    )
    timeout: float = Field(default=30.0, description="Default timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify server certificates")
    ca_bundle: str | None = Field(default=None, description="Path to a CA bundle")
    follow_redirects: bool = Field(default=False, description="Follow redirects by default")


class ClientConfig(BaseModel):
    """Immutable client-level configuration shared by every call."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    header_mode: HeaderValidationMode = Field(
        default=HeaderValidationMode.PRESERVE, description="Request header merge policy"
    )
    value_mode: ValueMode = Field(
        default=ValueMode.NATIVE, description="Value coercion policy for headers and forms"
    )
    transport: TransportConfig | None = Field(
        default=None, description="httpx client settings (optional)"
    )
