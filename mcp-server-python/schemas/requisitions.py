"""Pydantic schemas for requisition tools."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import field_validator, model_validator

from schemas.common import StrictIgnoreRequest, coerce_epoch_ms
from utils.validation import (
    CONFIDENTIALITY_VALUES,
    DEFAULT_REQUISITION_LIMIT,
    MAX_PAGE_LIMIT,
    REQUISITION_STATUSES,
    validate_non_empty_str,
    validate_range,
)


def _validate_status(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in REQUISITION_STATUSES:
        raise ValueError(
            f"Invalid status: '{value}'. Allowed values: {', '.join(REQUISITION_STATUSES)}"
        )
    return value


class ListRequisitionsRequest(StrictIgnoreRequest):
    """Request schema for lever_list_requisitions."""

    status: Optional[str] = None
    requisition_code: Optional[str] = None
    created_at_start: Optional[int] = None
    created_at_end: Optional[int] = None
    confidentiality: Optional[str] = None
    limit: int = DEFAULT_REQUISITION_LIMIT
    offset: Optional[str] = None

    @field_validator("created_at_start", "created_at_end", mode="before")
    @classmethod
    def coerce_dates(cls, value: Any, info) -> Optional[int]:
        return coerce_epoch_ms(value, info.field_name)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        return _validate_status(value)

    @field_validator("confidentiality")
    @classmethod
    def validate_confidentiality(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in CONFIDENTIALITY_VALUES:
            raise ValueError(
                f"Invalid confidentiality: '{value}'. "
                f"Allowed values: {', '.join(CONFIDENTIALITY_VALUES)}"
            )
        return value

    @field_validator("requisition_code", "offset")
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        return validate_range(value, "limit", 1, MAX_PAGE_LIMIT)


class GetRequisitionDetailsRequest(StrictIgnoreRequest):
    """Request schema for lever_get_requisition_details. Accepts a Lever id or a requisition code."""

    requisition_id: str

    @field_validator("requisition_id")
    @classmethod
    def validate_requisition_id(cls, value: str) -> str:
        return validate_non_empty_str(value, "requisition_id")


class ManageRequisitionRequest(StrictIgnoreRequest):
    """
    Request schema for lever_manage_requisition.

    ``create`` needs requisition_code, name and headcount_total; ``update`` and
    ``delete`` need requisition_id (a Lever id or a requisition code).
    """

    action: Literal["create", "update", "delete"]
    requisition_id: Optional[str] = None
    requisition_code: Optional[str] = None
    name: Optional[str] = None
    headcount_total: Optional[int] = None
    status: Optional[str] = None
    employment_status: Optional[str] = None
    location: Optional[str] = None
    team: Optional[str] = None
    department: Optional[str] = None
    owner: Optional[str] = None
    hiring_manager: Optional[str] = None
    internal_notes: Optional[str] = None
    backfill: Optional[bool] = None

    @field_validator(
        "requisition_id",
        "requisition_code",
        "name",
        "employment_status",
        "location",
        "team",
        "department",
        "owner",
        "hiring_manager",
    )
    @classmethod
    def strip_optional(cls, value: Optional[str], info) -> Optional[str]:
        return validate_non_empty_str(value, info.field_name)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        return _validate_status(value)

    @field_validator("headcount_total")
    @classmethod
    def validate_headcount(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError(f"Invalid headcount_total: {value} is below minimum of 1")
        return value

    @model_validator(mode="after")
    def validate_action_fields(self) -> "ManageRequisitionRequest":
        if self.action == "create":
            missing = [
                name
                for name in ("requisition_code", "name", "headcount_total")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"Invalid create: missing required fields {', '.join(missing)}")
        elif self.requisition_id is None:
            raise ValueError(f"Invalid {self.action}: requisition_id is required")
        return self

    def to_body(self) -> Dict[str, Any]:
        """Lever request body with only the fields that were provided."""
        mapping = {
            "requisitionCode": self.requisition_code,
            "name": self.name,
            "headcountTotal": self.headcount_total,
            "status": self.status,
            "employmentStatus": self.employment_status,
            "location": self.location,
            "team": self.team,
            "department": self.department,
            "owner": self.owner,
            "hiringManager": self.hiring_manager,
            "internalNotes": self.internal_notes,
            "backfill": self.backfill,
        }
        return {key: value for key, value in mapping.items() if value is not None}
