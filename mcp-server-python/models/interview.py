"""
Interview and panel shaping for MCP tool responses.

All timestamps are Lever epoch milliseconds and all windows are computed in UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from models.candidate import format_timestamp

TIME_SCOPES = ("past_week", "this_week", "next_week", "this_month", "custom", "all")

_WEEK = timedelta(days=7)


def _ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def parse_iso_to_ms(value: str) -> int:
    """
    Parse an ISO date or datetime into epoch milliseconds.

    Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not ISO formatted
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _ms(moment)


def time_window(
    scope: str,
    now: datetime,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Tuple[Optional[int], Optional[int]]:
    """
    Start and end (epoch ms, inclusive) for a named time scope.

    Weeks start on Monday. ``None`` on either side means unbounded.
    """
    if scope == "all":
        return None, None
    if scope == "past_week":
        return _ms(now - _WEEK), _ms(now)
    if scope == "custom":
        start = parse_iso_to_ms(date_from) if date_from else None
        end = parse_iso_to_ms(date_to) if date_to else None
        return start, end

    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = day_start - timedelta(days=day_start.weekday())
    if scope == "this_week":
        return _ms(week_start), _ms(week_start + _WEEK) - 1
    if scope == "next_week":
        return _ms(week_start + _WEEK), _ms(week_start + 2 * _WEEK) - 1
    if scope == "this_month":
        month_start = day_start.replace(day=1)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)
        return _ms(month_start), _ms(next_month) - 1

    raise ValueError(f"Unknown time scope: {scope}")


def in_window(interview: Dict[str, Any], start: Optional[int], end: Optional[int]) -> bool:
    date = interview.get("date")
    if start is None and end is None:
        return True
    if not isinstance(date, (int, float)):
        return False
    if start is not None and date < start:
        return False
    if end is not None and date > end:
        return False
    return True


def interview_status(interview: Dict[str, Any], now_ms: int) -> str:
    """cancelled, scheduled (in the future) or completed."""
    if interview.get("canceledAt"):
        return "cancelled"
    date = interview.get("date")
    if isinstance(date, (int, float)) and date > now_ms:
        return "scheduled"
    return "completed"


def _interviewer_names(interview: Dict[str, Any]) -> str:
    interviewers = interview.get("interviewers") or []
    return ", ".join(i.get("name") or i.get("email") or "Unknown" for i in interviewers if isinstance(i, dict))


def _feedback_count(interview: Dict[str, Any]) -> int:
    return len(interview.get("feedbackForms") or [])


def format_dashboard_view(
    interviews: List[Dict[str, Any]], panels: List[Dict[str, Any]], now_ms: int
) -> Dict[str, Any]:
    """Counts plus the next and most recent few interviews."""
    upcoming = sorted(
        (i for i in interviews if interview_status(i, now_ms) == "scheduled"),
        key=lambda i: i.get("date") or 0,
    )
    past = sorted(
        (i for i in interviews if interview_status(i, now_ms) == "completed"),
        key=lambda i: i.get("date") or 0,
        reverse=True,
    )
    cancelled = [i for i in interviews if interview_status(i, now_ms) == "cancelled"]

    return {
        "summary": {
            "total_interviews": len(interviews),
            "upcoming_count": len(upcoming),
            "completed_count": len(past),
            "cancelled_count": len(cancelled),
            "total_panels": len(panels),
        },
        "upcoming_interviews": [
            {
                "id": i.get("id"),
                "subject": i.get("subject"),
                "date": format_timestamp(i.get("date"), "iso"),
                "duration_minutes": i.get("duration"),
                "interviewers": _interviewer_names(i),
            }
            for i in upcoming[:5]
        ],
        "recent_interviews": [
            {
                "id": i.get("id"),
                "subject": i.get("subject"),
                "date": format_timestamp(i.get("date"), "iso"),
                "has_feedback": _feedback_count(i) > 0,
            }
            for i in past[:5]
        ],
    }


def format_detailed_view(
    interviews: List[Dict[str, Any]],
    panels: List[Dict[str, Any]],
    now_ms: int,
    include_panel_context: bool = False,
) -> Dict[str, Any]:
    """One entry per interview, optionally with its panel."""
    panels_by_id = {p.get("id"): p for p in panels if isinstance(p, dict)}
    detailed = []
    for interview in interviews:
        entry: Dict[str, Any] = {
            "id": interview.get("id"),
            "subject": interview.get("subject"),
            "note": interview.get("note"),
            "date": format_timestamp(interview.get("date"), "iso"),
            "duration_minutes": interview.get("duration"),
            "location": interview.get("location"),
            "timezone": interview.get("timezone"),
            "status": interview_status(interview, now_ms),
            "interviewers": interview.get("interviewers") or [],
            "feedback_status": {
                "template_id": interview.get("feedbackTemplate"),
                "forms_submitted": _feedback_count(interview),
                "reminder_setting": interview.get("feedbackReminder"),
            },
        }
        panel = panels_by_id.get(interview.get("panel"))
        if include_panel_context and panel:
            entry["panel_context"] = {
                "panel_id": panel.get("id"),
                "panel_note": panel.get("note"),
                "externally_managed": bool(panel.get("externallyManaged")),
                "external_url": panel.get("externalUrl"),
            }
        detailed.append(entry)

    return {"interviews": detailed, "total_count": len(detailed)}
