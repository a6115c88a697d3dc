"""
MCP tool handlers for interviews.

Lever only exposes interviews per candidate, so a posting-wide view fans out
over a bounded number of candidates, one interview call and one panel call
each, all through the shared rate limiter.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lever.client import LeverClient, get_lever_client
from lever.errors import LeverAPIError
from lever.filters import OpportunityFilter
from models.interview import (
    format_dashboard_view,
    format_detailed_view,
    in_window,
    interview_status,
    parse_iso_to_ms,
    time_window,
)
from schemas.interviews import GetInterviewInsightsRequest, InterviewDetails, ManageInterviewRequest
from utils.error_mapping import map_tool_exception
from utils.validation import INSIGHTS_MAX_CANDIDATES

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_FEEDBACK_REMINDER = "daily"


def _matches_status(interview: Dict[str, Any], status_filter: str, now_ms: int) -> bool:
    status = interview_status(interview, now_ms)
    if status_filter == "needs_feedback":
        return status == "completed" and not interview.get("feedbackForms")
    return status == status_filter


def _has_interviewer(interview: Dict[str, Any], email: str) -> bool:
    wanted = email.lower()
    return any(
        isinstance(i, dict) and (i.get("email") or "").lower() == wanted
        for i in interview.get("interviewers") or []
    )


async def _candidate_ids(client: LeverClient, posting_id: Optional[str]) -> List[str]:
    result = await client.list_opportunities(
        OpportunityFilter(posting_id=posting_id),
        max_items=INSIGHTS_MAX_CANDIDATES,
        max_calls=1,
    )
    return [c["id"] for c in result.items if isinstance(c, dict) and c.get("id")]


async def lever_get_interview_insights(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Interviews and panels for one candidate, or across candidates of a posting.

    Without ``opportunity_id`` the most recent candidates (of ``posting_id``
    when given) are examined, at most 25. A candidate whose interviews cannot
    be read is skipped and counted in ``candidates_skipped``.

    Args:
        args: opportunity_id, posting_id, interviewer_email, time_scope,
            date_from, date_to, view_type (dashboard|detailed), status_filter,
            include_panel_context, limit

    Returns:
        Dictionary with view_type, data (the view) and metadata
    """
    try:
        request = GetInterviewInsightsRequest.model_validate(args)
        client = get_lever_client()

        if request.opportunity_id:
            opportunity_ids = [request.opportunity_id]
        else:
            opportunity_ids = await _candidate_ids(client, request.posting_id)

        interviews: List[Dict[str, Any]] = []
        panels: List[Dict[str, Any]] = []
        skipped = 0
        for opportunity_id in opportunity_ids:
            try:
                interview_result = await client.get_interviews(opportunity_id)
                panel_result = await client.get_panels(opportunity_id)
            except LeverAPIError as e:
                if request.opportunity_id:
                    raise
                logger.warning(f"Skipping interviews of candidate {opportunity_id}: {e}")
                skipped += 1
                continue
            interviews.extend(interview_result.items)
            panels.extend(panel_result.items)

        now = datetime.now(timezone.utc)
        now_ms = int(now.timestamp() * 1000)
        scope = request.effective_time_scope
        start, end = time_window(scope, now, request.date_from, request.date_to)

        selected = [i for i in interviews if in_window(i, start, end)]
        if request.interviewer_email:
            selected = [i for i in selected if _has_interviewer(i, request.interviewer_email)]
        if request.status_filter:
            selected = [i for i in selected if _matches_status(i, request.status_filter, now_ms)]
        selected.sort(key=lambda i: i.get("date") or 0)
        total = len(selected)
        selected = selected[: request.limit]

        if request.view_type == "detailed":
            data = format_detailed_view(selected, panels, now_ms, request.include_panel_context)
        else:
            data = format_dashboard_view(selected, panels, now_ms)

        metadata: Dict[str, Any] = {
            "generated_at": now.isoformat(timespec="seconds").replace("+00:00", "Z"),
            "time_scope": scope,
            "total_count": total,
            "returned_count": len(selected),
            "candidates_searched": len(opportunity_ids),
        }
        if skipped:
            metadata["candidates_skipped"] = skipped
        return {"view_type": request.view_type, "data": data, "metadata": metadata}

    except Exception as e:
        return map_tool_exception(e, "lever_get_interview_insights").to_dict()


def _interviewer(user_id: str, feedback_template: Optional[str]) -> Dict[str, Any]:
    entry = {"id": user_id}
    if feedback_template:
        entry["feedbackTemplate"] = feedback_template
    return entry


def build_panel(details: InterviewDetails) -> Dict[str, Any]:
    """Lever panel body holding the single interview described by ``details``."""
    subject = details.subject or f"{details.type or 'Candidate'} Interview"
    interview: Dict[str, Any] = {
        "subject": subject,
        "note": details.note,
        "interviewers": [_interviewer(i.id, i.feedback_template) for i in details.interviewers],
        "date": parse_iso_to_ms(details.date),
        "duration": details.duration_minutes,
        "location": details.location,
        "feedbackTemplate": details.feedback_template,
        "feedbackReminder": details.feedback_reminder,
    }
    panel: Dict[str, Any] = {
        "timezone": details.timezone or DEFAULT_TIMEZONE,
        "feedbackReminder": details.feedback_reminder or DEFAULT_FEEDBACK_REMINDER,
        "note": details.note,
        "interviews": [{k: v for k, v in interview.items() if v is not None}],
    }
    return {k: v for k, v in panel.items() if v is not None}


async def lever_manage_interview(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Schedule, reschedule or cancel an interview.

    Scheduling creates a panel holding one interview. ``perform_as`` is
    required for every action.
    """
    try:
        request = ManageInterviewRequest.model_validate(args)
        client = get_lever_client()

        if request.action == "schedule":
            response = await client.create_panel(
                request.opportunity_id, build_panel(request.interview_details), request.perform_as
            )
            logger.info(f"Scheduled interview panel for candidate {request.opportunity_id}")
            return {"success": True, "action": "schedule", "panel": response.get("data") or {}}

        if request.action == "reschedule":
            new_date = parse_iso_to_ms(request.reschedule_data.new_date)
            response = await client.update_interview(
                request.opportunity_id,
                request.interview_id,
                {"date": new_date},
                request.perform_as,
            )
            logger.info(f"Rescheduled interview {request.interview_id}")
            result: Dict[str, Any] = {
                "success": True,
                "action": "reschedule",
                "interview_id": request.interview_id,
                "interview": response.get("data") or {},
            }
            if request.reschedule_data.reason:
                result["reason"] = request.reschedule_data.reason
            return result

        await client.delete_interview(request.opportunity_id, request.interview_id, request.perform_as)
        logger.info(f"Cancelled interview {request.interview_id}")
        result = {"success": True, "action": "cancel", "interview_id": request.interview_id}
        if request.cancel_reason:
            result["reason"] = request.cancel_reason
        return result

    except Exception as e:
        return map_tool_exception(e, "lever_manage_interview").to_dict()
