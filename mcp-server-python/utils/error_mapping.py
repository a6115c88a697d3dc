"""Convert exceptions raised inside tool handlers into the ToolError contract."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from lever.errors import LeverAPIError, LeverConfigError
from models.errors import (
    ToolError,
    create_config_error,
    create_internal_error,
    create_upstream_error,
    create_validation_error,
)

logger = logging.getLogger(__name__)


def _loc_to_field(loc: tuple[Any, ...]) -> str:
    parts = [str(part) for part in loc if part != "__root__"]
    return ".".join(parts)


def _clean_pydantic_message(message: str) -> str:
    if message.startswith("Value error, "):
        return message[len("Value error, ") :]
    return message


def map_pydantic_validation_error(error: ValidationError) -> ToolError:
    """Map the first issue of a pydantic ValidationError to a VALIDATION_ERROR."""
    issues = error.errors()
    if not issues:
        return create_validation_error("Invalid input")

    first = issues[0]
    field = _loc_to_field(first.get("loc", ()))
    message = _clean_pydantic_message(first.get("msg", "Invalid input"))

    if field and not message.startswith("Invalid "):
        return create_validation_error(f"Invalid {field}: {message}")
    return create_validation_error(message)


def map_tool_exception(error: Exception, tool_name: str) -> ToolError:
    """
    Classify any exception escaping a tool handler.

    Args:
        error: The exception
        tool_name: Tool name, for the log line

    Returns:
        ToolError ready for ``to_dict()``
    """
    if isinstance(error, ToolError):
        return error
    if isinstance(error, ValidationError):
        return map_pydantic_validation_error(error)
    if isinstance(error, LeverConfigError):
        logger.error(f"{tool_name}: {error}")
        return create_config_error(str(error), original_error=error)
    if isinstance(error, LeverAPIError):
        logger.warning(f"{tool_name}: Lever API failure: {error}")
        return create_upstream_error(error)

    logger.exception(f"{tool_name}: unexpected error")
    return create_internal_error(str(error), original_error=error)
