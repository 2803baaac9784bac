"""validated-http - httpx with optional runtime schema validation.

Public API re-exported from the submodules.
"""

from validated_http.adapters import (
    CallableAdapter,
    JsonSchemaAdapter,
    PydanticAdapter,
    ValidationAdapter,
    run_validation,
)
from validated_http.client import AsyncValidatedClient, ValidatedClient, create_client
from validated_http.config_loader import load_client_config
from validated_http.errors import (
    AsyncValidationError,
    BodyConsumedError,
    BodyDecodeError,
    ConfigError,
    HeaderValueError,
    UnrepresentableResultError,
    ValidatedHttpError,
    ValueCoercionError,
)
from validated_http.form_data import FormData, FormFile
from validated_http.models import (
    ClientConfig,
    HeaderValidationMode,
    RequestValidation,
    ResponseValidation,
    TransportConfig,
    ValidationBlock,
    ValueMode,
)
from validated_http.response import AsyncValidatedResponse, ValidatedResponse
from validated_http.serializer import JsonSerializer, Serializer, is_json_content_type

__version__ = "0.1.0"

__all__ = [
    "AsyncValidatedClient",
    "AsyncValidatedResponse",
    "AsyncValidationError",
    "BodyConsumedError",
    "BodyDecodeError",
    "CallableAdapter",
    "ClientConfig",
    "ConfigError",
    "FormData",
    "FormFile",
    "HeaderValidationMode",
    "HeaderValueError",
    "JsonSchemaAdapter",
    "JsonSerializer",
    "PydanticAdapter",
    "RequestValidation",
    "ResponseValidation",
    "Serializer",
    "TransportConfig",
    "UnrepresentableResultError",
    "ValidatedClient",
    "ValidatedHttpError",
    "ValidatedResponse",
    "ValidationAdapter",
    "ValidationBlock",
    "ValueCoercionError",
    "ValueMode",
    "create_client",
    "is_json_content_type",
    "load_client_config",
    "run_validation",
]
