"""Pydantic schemas for interview tools."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import field_validator, model_validator

from models.interview import TIME_SCOPES, parse_iso_to_ms
from schemas.common import StrictIgnoreRequest
from utils.validation import (
    DEFAULT_INSIGHTS_LIMIT,
    MAX_INSIGHTS_LIMIT,
    validate_non_empty_str,
    validate_range,
)


def _validate_iso(value: Optional[str], field_name: str) -> Optional[str]:
    value = validate_non_empty_str(value, field_name)
    if value is None:
        return None
    try:
        parse_iso_to_ms(value)
    except ValueError as e:
        raise ValueError(f"Invalid {field_name}: '{value}' is not an ISO date or datetime") from e
    return value


class GetInterviewInsightsRequest(StrictIgnoreRequest):
    """
    Request schema for lever_get_interview_insights.

    ``time_scope`` defaults to "all" for a single candidate and to
    "this_week" for a posting-wide or recent-candidates search.
    """

    opportunity_id: Optional[str] = None
    posting_id: Optional[str] = None
    interviewer_email: Optional[str] = None
    time_scope: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    view_type: Literal["dashboard", "detailed"] = "dashboard"
    status_filter: Optional[Literal["scheduled", "completed", "cancelled", "needs_feedback"]] = None
    include_panel_context: bool = False
    limit: int = DEFAULT_INSIGHTS_LIMIT

    @field_validator("opportunity_id", "posting_id", "interviewer_email")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("time_scope")
    @classmethod
    def validate_time_scope(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in TIME_SCOPES:
            raise ValueError(
                f"Invalid time_scope: '{value}'. Allowed values: {', '.join(TIME_SCOPES)}"
            )
        return value

    @field_validator("date_from", "date_to")
    @classmethod
    def validate_dates(cls, value: Optional[str], info) -> Optional[str]:
        return _validate_iso(value, info.field_name)

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_INSIGHTS_LIMIT)

    @model_validator(mode="after")
    def validate_custom_scope(self) -> "GetInterviewInsightsRequest":
        if self.time_scope == "custom" and not (self.date_from or self.date_to):
            raise ValueError("Invalid time_scope: 'custom' requires date_from or date_to")
        return self

    @property
    def effective_time_scope(self) -> str:
        if self.time_scope:
            return self.time_scope
        return "all" if self.opportunity_id else "this_week"


class Interviewer(StrictIgnoreRequest):
    id: str
    feedback_template: Optional[str] = None


class InterviewDetails(StrictIgnoreRequest):
    """Interview to schedule. ``date`` is an ISO datetime."""

    date: str
    duration_minutes: int
    interviewers: List[Interviewer]
    type: Optional[str] = None
    subject: Optional[str] = None
    note: Optional[str] = None
    location: Optional[str] = None
    timezone: Optional[str] = None
    feedback_template: Optional[str] = None
    feedback_reminder: Optional[Literal["once", "daily", "frequently", "none"]] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _validate_iso(value, "date")

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        return validate_range(value, "duration_minutes", 1, 24 * 60)

    @field_validator("interviewers")
    @classmethod
    def validate_interviewers(cls, value: List[Interviewer]) -> List[Interviewer]:
        if not value:
            raise ValueError("Invalid interviewers: at least one interviewer is required")
        return value


class RescheduleData(StrictIgnoreRequest):
    new_date: str
    reason: Optional[str] = None

    @field_validator("new_date")
    @classmethod
    def validate_new_date(cls, value: str) -> str:
        return _validate_iso(value, "new_date")


class ManageInterviewRequest(StrictIgnoreRequest):
    """
    Request schema for lever_manage_interview.

    - schedule: interview_details required
    - reschedule: interview_id and reschedule_data required
    - cancel: interview_id required
    """

    action: Literal["schedule", "reschedule", "cancel"]
    opportunity_id: str
    perform_as: str
    interview_id: Optional[str] = None
    interview_details: Optional[InterviewDetails] = None
    reschedule_data: Optional[RescheduleData] = None
    cancel_reason: Optional[str] = None

    @field_validator("opportunity_id", "perform_as", "interview_id")
    @classmethod
    def strip_fields(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @model_validator(mode="after")
    def validate_action_fields(self) -> "ManageInterviewRequest":
        if self.action == "schedule" and self.interview_details is None:
            raise ValueError("Invalid schedule: interview_details is required")
        if self.action in ("reschedule", "cancel") and self.interview_id is None:
            raise ValueError(f"Invalid {self.action}: interview_id is required")
        if self.action == "reschedule" and self.reschedule_data is None:
            raise ValueError("Invalid reschedule: reschedule_data is required")
        return self
