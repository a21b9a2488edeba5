import functools
import logging

from googleapiclient.errors import HttpError

from core.errors import AuthenticationError, ValidationError, handle_http_error

logger = logging.getLogger(__name__)

MARKDOWN_FENCE_OPENERS = ("```markdown\n", "```md\n", "```\n")
CODE_FENCE_CLOSER = "```"


def validate_markdown(markdown_text: str | None, param_name: str = "output") -> str:
    """Validate that markdown content was supplied."""
    if markdown_text is None:
        raise ValidationError(f"Missing required field: {param_name}")

    if not isinstance(markdown_text, str):
        raise ValidationError(f"{param_name} must be a string")

    if not markdown_text.strip():
        raise ValidationError(f"{param_name} cannot be empty")

    return markdown_text


def strip_code_fence(markdown_text: str) -> str:
    """
    Remove a fenced code block wrapper around the whole document.

    LLM-produced markdown frequently arrives as ```markdown ... ``` or ``` ... ```.
    Only a wrapper enclosing the entire input is removed; inner fences are kept.
    """
    text = markdown_text.strip()
    for opener in MARKDOWN_FENCE_OPENERS:
        if text.startswith(opener) and text.endswith(CODE_FENCE_CLOSER) and len(text) >= len(opener) + 3:
            logger.info(f"Removing {opener.strip() or '```'} code block wrapper")
            return text[len(opener) : -len(CODE_FENCE_CLOSER)]
    return markdown_text


def extract_bearer_token(auth_header: str | None) -> str:
    """Return the access token from an `Authorization: Bearer <token>` header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid authorization header")

    token = auth_header[len("Bearer ") :].strip()
    if not token:
        raise AuthenticationError("Missing or invalid authorization header")
    return token


def redact_token(value: str | None, keep: int = 10) -> str | None:
    """Shorten a secret for log output."""
    if not value:
        return value
    return f"{value[:keep]}..."


def handle_http_errors(operation: str, resource_kwarg: str | None = None):
    """
    A decorator to handle Google API HttpErrors in a standardized way.

    It wraps an async service call, catches HttpError, logs a detailed error message,
    and raises the matching APIError subclass. No retries are attempted: a failed
    batch update leaves the caller to decide whether to resubmit the whole document.

    Args:
        operation (str): Name of the wrapped operation, used in log messages.
        resource_kwarg (str): Optional keyword argument holding the resource ID for 404 messages.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except ValidationError as e:
                logger.warning(f"Input error in {operation}: {e}")
                raise
            except HttpError as error:
                status = getattr(getattr(error, "resp", None), "status", None)
                resource_id = kwargs.get(resource_kwarg) if resource_kwarg else None
                mapped = handle_http_error(error, status_code=int(status) if status else None, resource_id=resource_id)
                logger.error(f"API error in {operation}: {error}", exc_info=True)
                raise mapped from error

        return wrapper

    return decorator
