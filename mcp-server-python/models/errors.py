"""
Error model for the Lever MCP tools.

Provides structured error codes, sanitized error messages and the mapping from
Lever client failures to tool errors.
"""

from enum import Enum
from typing import Optional
import re

from lever.errors import (
    ClientRequestError,
    EmptyResourceError,
    LeverAPIError,
    MalformedResponseError,
    NetworkError,
    RateLimitExceededError,
    TransientServerError,
    truncate_body,
)


class ErrorCode(str, Enum):
    """Structured error codes for the MCP tools."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(Exception):
    """
    Failure reported to the MCP client as an error payload instead of a result.

    Attributes:
        code: Category the client can branch on
        message: Human-readable, credential-free description
        retryable: True when repeating the same call may succeed
        original_error: Exception this error was derived from, if any
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable
        self.original_error = original_error

    def to_dict(self) -> dict:
        """Payload returned by a tool: ``{"error": {code, message, retryable}}``."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retryable": self.retryable,
            }
        }


_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-+/=]+", re.IGNORECASE)


def sanitize_credentials(error_msg: str) -> str:
    """Replace any bearer token in ``error_msg`` with ``[redacted]``."""
    return _BEARER_PATTERN.sub(r"\1[redacted]", error_msg)


def sanitize_stack_trace(error_msg: str) -> str:
    """Keep only the first line of a possibly multi-line message."""
    first_line, _, _ = error_msg.partition("\n")
    return first_line.strip()


def create_validation_error(message: str) -> ToolError:
    """Bad tool arguments; never retryable."""
    return ToolError(ErrorCode.VALIDATION_ERROR, message, retryable=False)


def create_not_found_error(resource: str, identifier: str) -> ToolError:
    """
    Create a not found error for a named resource.

    Args:
        resource: Kind of resource (e.g., "Candidate", "Requisition")
        identifier: The id or code that was looked up

    Returns:
        ToolError with NOT_FOUND code
    """
    return ToolError(
        code=ErrorCode.NOT_FOUND,
        message=f"{resource} not found: {identifier}",
        retryable=False
    )


def create_config_error(message: str, original_error: Optional[Exception] = None) -> ToolError:
    """Create a configuration error (e.g., missing API key)."""
    return ToolError(
        code=ErrorCode.CONFIG_ERROR,
        message=f"Configuration error: {message}",
        retryable=False,
        original_error=original_error
    )


def create_upstream_error(error: LeverAPIError) -> ToolError:
    """
    Map a classified Lever client failure to a tool error.

    Args:
        error: The failure raised by the Lever client

    Returns:
        ToolError with NOT_FOUND, RATE_LIMITED, NETWORK_ERROR or UPSTREAM_ERROR code
    """
    message = sanitize_credentials(sanitize_stack_trace(str(error)))

    if isinstance(error, EmptyResourceError):
        return ToolError(ErrorCode.NOT_FOUND, message, retryable=False, original_error=error)

    if isinstance(error, ClientRequestError) and error.is_not_found:
        path = error.path or "the requested resource"
        return ToolError(
            ErrorCode.NOT_FOUND,
            f"Resource not found at {path}",
            retryable=False,
            original_error=error
        )

    if isinstance(error, RateLimitExceededError):
        return ToolError(
            ErrorCode.RATE_LIMITED,
            f"Lever API rate limit exceeded after {error.attempts} attempts. Try again shortly.",
            retryable=True,
            original_error=error
        )

    if isinstance(error, NetworkError):
        return ToolError(ErrorCode.NETWORK_ERROR, message, retryable=True, original_error=error)

    if isinstance(error, TransientServerError):
        return ToolError(ErrorCode.UPSTREAM_ERROR, message, retryable=True, original_error=error)

    if isinstance(error, MalformedResponseError):
        return ToolError(
            ErrorCode.UPSTREAM_ERROR,
            truncate_body(message, 300),
            retryable=False,
            original_error=error
        )

    return ToolError(ErrorCode.UPSTREAM_ERROR, message, retryable=False, original_error=error)


def create_internal_error(message: str, original_error: Optional[Exception] = None) -> ToolError:
    """
    Wrap an exception no other mapping recognised.

    Internal errors are marked retryable since they are usually not caused
    by the arguments.
    """
    return ToolError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Internal error: {sanitize_credentials(sanitize_stack_trace(message))}",
        retryable=True,
        original_error=original_error,
    )
