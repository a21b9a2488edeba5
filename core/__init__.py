"""Core utilities for md2gdocs."""

from core.config import ConverterConfig, configure_logging, get_config, reload_config
from core.errors import (
    APIError,
    AuthenticationError,
    ConverterError,
    ImageDecodeError,
    PermissionDeniedError,
    RateLimitError,
    RenderError,
    ResourceNotFoundError,
    UnsupportedBlockError,
    ValidationError,
    format_error,
    handle_http_error,
)
from core.utils import (
    extract_bearer_token,
    handle_http_errors,
    redact_token,
    strip_code_fence,
    validate_markdown,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "configure_logging",
    "ConverterConfig",
    "ConverterError",
    "extract_bearer_token",
    "format_error",
    "get_config",
    "handle_http_error",
    "handle_http_errors",
    "ImageDecodeError",
    "PermissionDeniedError",
    "RateLimitError",
    "redact_token",
    "reload_config",
    "RenderError",
    "ResourceNotFoundError",
    "strip_code_fence",
    "UnsupportedBlockError",
    "validate_markdown",
    "ValidationError",
]
