"""
Requisition shaping for MCP tool responses.

Requisitions carry two identifiers that are easy to confuse: ``id`` is Lever's
own UUID (used in API paths) and ``requisitionCode`` is the external HRIS code
(e.g. "ENG-145"). Both are always reported, under distinct names.
"""

import re
from typing import Any, Dict, Optional

from models.candidate import format_timestamp

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def looks_like_uuid(value: str) -> bool:
    return bool(_UUID_PATTERN.match(value.strip()))


def _headcount(req: Dict[str, Any]) -> Dict[str, Any]:
    total = req.get("headcountTotal") or 0
    hired = req.get("headcountHired") or 0
    return {"total": total, "hired": hired, "remaining": total - hired}


def _compensation(req: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    band = req.get("compensationBand")
    if not isinstance(band, dict):
        return None
    return {
        "currency": band.get("currency") or "",
        "min": band.get("min") or 0,
        "max": band.get("max") or 0,
        "interval": band.get("interval") or "",
    }


def format_requisition(req: Dict[str, Any]) -> Dict[str, Any]:
    """Requisition summary used in list results."""
    created = req.get("createdAt")
    updated = req.get("updatedAt")
    return {
        "lever_id": req.get("id") or "",
        "requisition_code": req.get("requisitionCode") or "",
        "name": req.get("name") or "",
        "status": req.get("status") or "",
        "headcount": _headcount(req),
        "details": {
            "employment_status": req.get("employmentStatus") or "",
            "location": req.get("location") or "",
            "team": req.get("team") or "",
            "department": req.get("department") or "",
            "confidentiality": req.get("confidentiality") or "",
        },
        "compensation": _compensation(req),
        "owner": req.get("owner") or "",
        "hiring_manager": req.get("hiringManager") or "",
        "created_at": format_timestamp(created) if created else "",
        "updated_at": format_timestamp(updated) if updated else "",
    }


def format_requisition_details(req: Dict[str, Any]) -> Dict[str, Any]:
    """Full requisition view used by the details lookup."""

    def iso(field: str) -> str:
        value = req.get(field)
        return format_timestamp(value, "iso") if value else ""

    return {
        "lever_id": req.get("id") or "",
        "requisition_code": req.get("requisitionCode") or "",
        "name": req.get("name") or "",
        "status": req.get("status") or "",
        "headcount": _headcount(req),
        "backfill": bool(req.get("backfill")),
        "employment_status": req.get("employmentStatus") or "",
        "location": req.get("location") or "",
        "team": req.get("team") or "",
        "department": req.get("department") or "",
        "confidentiality": req.get("confidentiality") or "",
        "compensation_band": _compensation(req),
        "owner": req.get("owner") or "",
        "hiring_manager": req.get("hiringManager") or "",
        "creator": req.get("creator") or "",
        "postings": req.get("postings") or [],
        "custom_fields": req.get("customFields") or {},
        "internal_notes": req.get("internalNotes") or "",
        "created_at": iso("createdAt"),
        "updated_at": iso("updatedAt"),
        "closed_at": iso("closedAt"),
    }
