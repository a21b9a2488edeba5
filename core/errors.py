"""
Custom error types for markdown conversion.

Provides user-friendly error messages and structured error handling.
"""

from typing import Any

# =============================================================================
# Base Exception Hierarchy
# =============================================================================


class ConverterError(Exception):
    """Base exception for all md2gdocs errors."""

    pass


# =============================================================================
# Input Errors
# =============================================================================


class ValidationError(ConverterError):
    """Raised when input validation fails."""

    pass


class AuthenticationError(ConverterError):
    """Raised when the Authorization header is missing or malformed."""

    pass


# =============================================================================
# Compiler Errors
# =============================================================================


class ImageDecodeError(ConverterError):
    """Raised when an embedded base64 image payload cannot be decoded."""

    def __init__(self, encoding: str, reason: str):
        super().__init__(f"Could not decode embedded {encoding} image: {reason}")
        self.encoding = encoding
        self.reason = reason


class UnsupportedBlockError(ConverterError):
    """Raised when a sink or emitter is handed a node kind it does not know."""

    def __init__(self, kind: Any):
        super().__init__(f"Unsupported block kind: {type(kind).__name__}")
        self.kind = kind


class RenderError(ConverterError):
    """Raised when a document tree cannot be serialized."""

    pass


# =============================================================================
# API Errors
# =============================================================================


class APIError(ConverterError):
    """Raised for general Google API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ResourceNotFoundError(APIError):
    """Raised when a requested resource doesn't exist (404)."""

    pass


class PermissionDeniedError(APIError):
    """Raised when the user lacks permission for an operation (401/403)."""

    pass


class RateLimitError(APIError):
    """Raised when API rate limits are exceeded (429)."""

    pass


def handle_http_error(error: Exception, status_code: int | None = None, resource_id: str | None = None) -> APIError:
    """
    Convert Google API HTTP errors to user-friendly APIError subclasses.
    """
    error_str = str(error)
    if status_code is None:
        for candidate in (404, 403, 401, 429):
            if str(candidate) in error_str:
                status_code = candidate
                break

    if status_code == 404:
        return ResourceNotFoundError(f"Document not found: {resource_id or 'unknown'}", 404, error)
    elif status_code == 403:
        return PermissionDeniedError("Permission denied. The token may lack the Docs or Drive scope.", 403, error)
    elif status_code == 401:
        return PermissionDeniedError("Authentication expired or invalid. Please supply a fresh token.", 401, error)
    elif status_code == 429:
        return RateLimitError("Rate limit exceeded. Please wait and try again.", 429, error)
    else:
        return APIError(f"Google API error: {error_str}", status_code or 500, error)


def format_error(operation: str, error: ConverterError) -> str:
    """Format an error for display to the user."""
    return f"{operation} failed: {error}"
