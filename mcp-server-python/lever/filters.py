"""
Typed filters for Lever list endpoints.

Each filter renders itself into query parameters with ``to_params()``. Unset
fields are left out entirely so the upstream applies its own defaults.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


def _render(instance: Any) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    for f in fields(instance):
        value = getattr(instance, f.name)
        if value is None or value == []:
            continue
        params[f.name] = list(value) if isinstance(value, list) else value
    return params


@dataclass(frozen=True)
class OpportunityFilter:
    """Filters accepted by ``GET /opportunities``. Timestamps are epoch milliseconds."""

    email: Optional[str] = None
    stage_id: Optional[str] = None
    posting_id: Optional[str] = None
    tag: Optional[str] = None
    origin: Optional[str] = None
    source: Optional[str] = None
    contact_id: Optional[str] = None
    archived: Optional[bool] = None
    archived_posting_id: Optional[str] = None
    archive_reason_id: Optional[str] = None
    archived_at_start: Optional[int] = None
    archived_at_end: Optional[int] = None
    created_at_start: Optional[int] = None
    created_at_end: Optional[int] = None
    updated_at_start: Optional[int] = None
    updated_at_end: Optional[int] = None
    expand: List[str] = field(default_factory=list)

    def to_params(self) -> Dict[str, Any]:
        return _render(self)


@dataclass(frozen=True)
class PostingFilter:
    """Filters accepted by ``GET /postings``."""

    state: Optional[str] = "published"
    team: Optional[str] = None
    department: Optional[str] = None
    location: Optional[str] = None
    commitment: Optional[str] = None
    expand: List[str] = field(default_factory=list)
    include: List[str] = field(default_factory=list)

    def to_params(self) -> Dict[str, Any]:
        return _render(self)


@dataclass(frozen=True)
class RequisitionFilter:
    """Filters accepted by ``GET /requisitions``. Timestamps are epoch milliseconds."""

    status: Optional[str] = None
    requisition_code: Optional[str] = None
    created_at_start: Optional[int] = None
    created_at_end: Optional[int] = None
    confidentiality: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        return _render(self)
