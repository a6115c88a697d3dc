"""
Input validation helpers and limits shared by the Lever MCP tool schemas.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

# Candidate search
DEFAULT_SEARCH_LIMIT = 50
MAX_SEARCH_LIMIT = 500
QUICK_MODE_MAX_FETCH = 500
COMPREHENSIVE_MODE_MAX_FETCH = 5000
QUICK_MODE_MULTIPLIER = 3
COMPREHENSIVE_MODE_MULTIPLIER = 10

# Name scans
NAME_SCAN_MAX_CANDIDATES = 500
QUICK_FIND_MAX_PAGES = 3
QUICK_FIND_MAX_MATCHES = 5
POSTING_SCAN_MAX_CANDIDATES = 1000

# Single upstream page (Lever's own maximum)
MAX_PAGE_LIMIT = 100

# Postings and requisitions
DEFAULT_POSTING_LIMIT = 50
MAX_POSTING_LIMIT = 500
OWNER_SCAN_MAX_POSTINGS = 500
DEFAULT_REQUISITION_LIMIT = 25

# Interview insights
DEFAULT_INSIGHTS_LIMIT = 25
MAX_INSIGHTS_LIMIT = 200
INSIGHTS_MAX_CANDIDATES = 25

POSTING_STATES = ("published", "internal", "closed", "draft", "pending", "rejected")
REQUISITION_STATUSES = ("open", "closed", "onHold", "draft")
CONFIDENTIALITY_VALUES = ("confidential", "non-confidential", "all")


def validate_non_empty_str(value: Optional[str], field_name: str) -> Optional[str]:
    """Strip an optional string; reject one that is empty or whitespace."""
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"Invalid {field_name}: cannot be empty")
    return stripped


def validate_range(value: int, field_name: str, minimum: int, maximum: int) -> int:
    if value < minimum:
        raise ValueError(f"Invalid {field_name}: {value} is below minimum of {minimum}")
    if value > maximum:
        raise ValueError(f"Invalid {field_name}: {value} exceeds maximum of {maximum}")
    return value


def split_csv(value: Optional[str]) -> List[str]:
    """
    Split a comma-separated filter into lowercase, trimmed, non-empty terms.

    Examples:
        >>> split_csv("Python, Go ,,rust")
        ['python', 'go', 'rust']
    """
    if not value:
        return []
    return [part.strip().lower() for part in value.split(",") if part.strip()]


def to_epoch_ms(value: Any, field_name: str) -> Optional[int]:
    """
    Normalize a date filter to epoch milliseconds.

    Accepts epoch milliseconds as an integer, or an ISO date / datetime string
    (``2024-01-31`` or ``2024-01-31T12:00:00Z``). Naive values are taken as UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a date
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid {field_name}: expected a date or epoch milliseconds")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Invalid {field_name}: epoch milliseconds cannot be negative")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(
                f"Invalid {field_name}: '{value}' is not an ISO date (YYYY-MM-DD)"
            ) from e
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return int(moment.timestamp() * 1000)
    raise ValueError(f"Invalid {field_name}: expected a date or epoch milliseconds")
