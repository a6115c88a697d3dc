"""Shared schema primitives for MCP tool request/response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from lever.pagination import AggregationResult
from utils.validation import to_epoch_ms, validate_non_empty_str


class StrictIgnoreRequest(BaseModel):
    """Request base with strict typing and ignored unknown fields."""

    model_config = ConfigDict(extra="ignore", strict=True)


class StrictResponse(BaseModel):
    """Response/result base with strict typing and forbidden unknown fields."""

    model_config = ConfigDict(extra="forbid")


class OpportunityIdMixin(BaseModel):
    """Required opportunity (candidate) id."""

    opportunity_id: str

    @field_validator("opportunity_id")
    @classmethod
    def validate_opportunity_id(cls, value: str) -> str:
        return validate_non_empty_str(value, "opportunity_id")


class PerformAsMixin(BaseModel):
    """Optional Lever user id to act on behalf of."""

    perform_as: Optional[str] = None

    @field_validator("perform_as")
    @classmethod
    def validate_perform_as(cls, value: Optional[str]) -> Optional[str]:
        return validate_non_empty_str(value, "perform_as")


def coerce_epoch_ms(value: Any, field_name: str) -> Optional[int]:
    """Shared ``mode="before"`` helper for date filters (ISO date or epoch ms)."""
    return to_epoch_ms(value, field_name)


class AggregationInfo(StrictResponse):
    """How a list result was collected, and whether it may be incomplete."""

    exhausted_reason: str
    api_calls_made: int
    items_examined: int
    may_be_incomplete: bool
    next_cursor: Optional[str] = None

    @classmethod
    def from_result(cls, result: AggregationResult) -> "AggregationInfo":
        return cls(
            exhausted_reason=result.exhausted_reason.value,
            api_calls_made=result.api_calls_made,
            items_examined=result.items_examined,
            may_be_incomplete=result.may_be_incomplete,
            next_cursor=result.next_cursor,
        )
