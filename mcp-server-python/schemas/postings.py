"""Pydantic schemas for posting and reference-data tools."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import field_validator, model_validator

from schemas.common import AggregationInfo, StrictIgnoreRequest, StrictResponse
from utils.validation import (
    DEFAULT_POSTING_LIMIT,
    MAX_POSTING_LIMIT,
    POSTING_STATES,
    validate_non_empty_str,
    validate_range,
)


class ListOpenRolesRequest(StrictIgnoreRequest):
    """Request schema for lever_list_open_roles."""

    team: Optional[str] = None
    department: Optional[str] = None
    location: Optional[str] = None
    commitment: Optional[str] = None
    include_owner_details: bool = False
    limit: int = DEFAULT_POSTING_LIMIT

    @field_validator("team", "department", "location", "commitment")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_POSTING_LIMIT)


class FindPostingsByOwnerRequest(StrictIgnoreRequest):
    """Request schema for lever_find_postings_by_owner. Exactly one of owner_name/owner_id."""

    owner_name: Optional[str] = None
    owner_id: Optional[str] = None
    state: str = "published"
    limit: int = DEFAULT_POSTING_LIMIT

    @field_validator("owner_name", "owner_id")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("state")
    @classmethod
    def validate_state(cls, value: str) -> str:
        if value not in POSTING_STATES:
            raise ValueError(
                f"Invalid state: '{value}'. Allowed values: {', '.join(POSTING_STATES)}"
            )
        return value

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_POSTING_LIMIT)

    @model_validator(mode="after")
    def validate_owner(self) -> "FindPostingsByOwnerRequest":
        if not self.owner_name and not self.owner_id:
            raise ValueError("Invalid owner: provide owner_name or owner_id")
        if self.owner_name and self.owner_id:
            raise ValueError("Invalid owner: provide only one of owner_name or owner_id")
        return self


class PostingListResponse(StrictResponse):
    """Response for the posting list tools."""

    postings: List[Dict[str, Any]]
    count: int
    message: Optional[str] = None
    aggregation: AggregationInfo
