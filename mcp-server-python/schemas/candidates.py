"""Pydantic schemas for candidate search and candidate tools."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import field_validator, model_validator

from schemas.common import (
    AggregationInfo,
    OpportunityIdMixin,
    PerformAsMixin,
    StrictIgnoreRequest,
    StrictResponse,
    coerce_epoch_ms,
)
from utils.validation import (
    COMPREHENSIVE_MODE_MAX_FETCH,
    COMPREHENSIVE_MODE_MULTIPLIER,
    DEFAULT_SEARCH_LIMIT,
    MAX_PAGE_LIMIT,
    MAX_SEARCH_LIMIT,
    QUICK_MODE_MAX_FETCH,
    QUICK_MODE_MULTIPLIER,
    validate_non_empty_str,
    validate_range,
)


class AdvancedSearchRequest(StrictIgnoreRequest):
    """Request schema for lever_advanced_search."""

    companies: Optional[str] = None
    skills: Optional[str] = None
    locations: Optional[str] = None
    tags: Optional[str] = None
    stage: Optional[str] = None
    stages: Optional[List[str]] = None
    posting_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    archived: bool = False
    mode: Literal["comprehensive", "quick"] = "comprehensive"
    limit: int = DEFAULT_SEARCH_LIMIT
    page: int = 1

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_SEARCH_LIMIT)

    @field_validator("page")
    @classmethod
    def validate_page(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"Invalid page: {value} is below minimum of 1")
        return value

    @field_validator("name", "email", "stage", "posting_id")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @property
    def max_fetch(self) -> int:
        """Upper bound on matches collected before page slicing."""
        if self.mode == "quick":
            return min(self.limit * QUICK_MODE_MULTIPLIER, QUICK_MODE_MAX_FETCH)
        return min(self.limit * COMPREHENSIVE_MODE_MULTIPLIER, COMPREHENSIVE_MODE_MAX_FETCH)


class SearchCandidatesRequest(StrictIgnoreRequest):
    """Request schema for lever_search_candidates."""

    query: Optional[str] = None
    stage: Optional[str] = None
    limit: int = DEFAULT_SEARCH_LIMIT
    page: int = 1

    @field_validator("query", "stage")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_SEARCH_LIMIT)

    @field_validator("page")
    @classmethod
    def validate_page(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"Invalid page: {value} is below minimum of 1")
        return value


class QuickFindCandidateRequest(StrictIgnoreRequest):
    """Request schema for lever_quick_find_candidate."""

    name_or_email: str

    @field_validator("name_or_email")
    @classmethod
    def validate_name_or_email(cls, value: str) -> str:
        return validate_non_empty_str(value, "name_or_email")


class FindCandidateInPostingRequest(StrictIgnoreRequest):
    """Request schema for lever_find_candidate_in_posting."""

    name: str
    posting_id: str
    stage: Optional[str] = None

    @field_validator("name", "posting_id", "stage")
    @classmethod
    def strip_fields(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)


class SearchArchivedCandidatesRequest(StrictIgnoreRequest):
    """Request schema for lever_search_archived_candidates."""

    posting_id: Optional[str] = None
    archived_at_start: Optional[int] = None
    archived_at_end: Optional[int] = None
    archive_reason_id: Optional[str] = None
    recruiter_name: Optional[str] = None
    limit: int = MAX_PAGE_LIMIT
    offset: Optional[str] = None
    fetch_all_pages: bool = False

    @field_validator("archived_at_start", "archived_at_end", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any, info) -> Optional[int]:
        return coerce_epoch_ms(value, info.field_name)

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_PAGE_LIMIT)

    @field_validator("posting_id", "archive_reason_id", "recruiter_name", "offset")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @model_validator(mode="after")
    def validate_date_order(self) -> "SearchArchivedCandidatesRequest":
        if (
            self.archived_at_start is not None
            and self.archived_at_end is not None
            and self.archived_at_start > self.archived_at_end
        ):
            raise ValueError("Invalid date range: archived_at_start is after archived_at_end")
        return self


class GetCandidateRequest(OpportunityIdMixin, StrictIgnoreRequest):
    """Request schema for lever_get_candidate, lever_list_applications and lever_list_files."""


class AddNoteRequest(OpportunityIdMixin, PerformAsMixin, StrictIgnoreRequest):
    """Request schema for lever_add_note."""

    note: str
    author_email: Optional[str] = None

    @field_validator("note")
    @classmethod
    def validate_note(cls, value: str) -> str:
        return validate_non_empty_str(value, "note")

    @field_validator("author_email")
    @classmethod
    def validate_author_email(cls, value: Optional[str]) -> Optional[str]:
        value = validate_non_empty_str(value, "author_email")
        if value is not None and "@" not in value:
            raise ValueError(f"Invalid author_email: '{value}' is not an email address")
        return value


class MoveCandidateToStageRequest(OpportunityIdMixin, PerformAsMixin, StrictIgnoreRequest):
    """Request schema for lever_move_candidate_to_stage. ``stage`` is an id or a name."""

    stage: str

    @field_validator("stage")
    @classmethod
    def validate_stage(cls, value: str) -> str:
        return validate_non_empty_str(value, "stage")


class ArchiveCandidateRequest(OpportunityIdMixin, PerformAsMixin, StrictIgnoreRequest):
    """Request schema for lever_archive_candidate."""

    archive_reason_id: str
    clean_interviews: bool = False
    requisition_id: Optional[str] = None

    @field_validator("archive_reason_id", "requisition_id")
    @classmethod
    def strip_fields(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)


class GetApplicationRequest(OpportunityIdMixin, StrictIgnoreRequest):
    """Request schema for lever_get_application."""

    application_id: str

    @field_validator("application_id")
    @classmethod
    def validate_application_id(cls, value: str) -> str:
        return validate_non_empty_str(value, "application_id")


class CandidateListResponse(StrictResponse):
    """Response for the candidate search tools."""

    candidates: List[Dict[str, Any]]
    count: int
    page: Optional[int] = None
    total_matches: Optional[int] = None
    total_pages: Optional[int] = None
    has_more: Optional[bool] = None
    next_offset: Optional[str] = None
    message: Optional[str] = None
    aggregation: Optional[AggregationInfo] = None
