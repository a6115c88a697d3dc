"""
Candidate (Lever opportunity) shaping for MCP tool responses.

Lever returns several fields in more than one shape depending on ``expand``
(``stage`` as an id string or an object, ``posting`` as an id or an object),
so every accessor here tolerates both.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


def format_timestamp(value: Any, fmt: str = "date") -> str:
    """
    Render a Lever epoch-millisecond timestamp.

    Args:
        value: Epoch milliseconds (int/float) or None
        fmt: "date" (YYYY-MM-DD), "minute" (YYYY-MM-DD HH:MM) or "iso"

    Returns:
        Formatted UTC string, or "Unknown" when the value is missing or invalid
    """
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return "Unknown"
    try:
        moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return "Unknown"
    if fmt == "minute":
        return moment.strftime("%Y-%m-%d %H:%M")
    if fmt == "iso":
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return moment.strftime("%Y-%m-%d")


def text_of(value: Any, default: str = "Unknown") -> str:
    """Display text for a field that may be a plain string or an object with ``text``."""
    if isinstance(value, dict):
        return value.get("text") or default
    if value:
        return str(value)
    return default


def id_of(value: Any) -> Optional[str]:
    """Id for a field that may be a plain id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    if isinstance(value, str) and value:
        return value
    return None


def name_of(value: Any) -> Optional[str]:
    """Name for a user field that is only named when expanded."""
    if isinstance(value, dict):
        return value.get("name")
    return None


def format_opportunity(opp: Any) -> Dict[str, Any]:
    """
    Map a Lever opportunity to the candidate summary returned by tools.

    Args:
        opp: Opportunity object from the Lever API

    Returns:
        Dictionary with id, name, email, stage, posting, location,
        organizations and created date
    """
    if not isinstance(opp, dict):
        return {
            "id": "",
            "name": "Error: Invalid data",
            "email": "N/A",
            "stage": "Unknown",
            "posting": "Unknown",
            "location": "Unknown",
            "organizations": "",
            "created": "Unknown",
        }

    emails = opp.get("emails") or []
    posting = opp.get("posting")

    return {
        "id": opp.get("id") or "",
        "name": opp.get("name") or "Unknown",
        "email": emails[0] if emails else "N/A",
        "stage": text_of(opp.get("stage")),
        "posting": text_of(posting) if isinstance(posting, dict) else "Unknown",
        "location": opp.get("location") or "Unknown",
        "organizations": opp.get("headline") or "",
        "created": format_timestamp(opp.get("createdAt")),
    }


def format_application(app: Dict[str, Any]) -> Dict[str, Any]:
    """Summary of one application in a candidate's application list."""
    posting = app.get("posting")
    return {
        "id": app.get("id") or "",
        "posting": text_of(posting),
        "posting_id": id_of(posting) or "",
        "status": app.get("status") or "Unknown",
        "created_at": format_timestamp(app.get("createdAt"), "minute"),
        "user": name_of(app.get("user")) or "System",
    }


def format_application_details(app: Dict[str, Any]) -> Dict[str, Any]:
    posting = app.get("posting") if isinstance(app.get("posting"), dict) else {}
    return {
        "id": app.get("id") or "",
        "posting": {
            "id": posting.get("id") or id_of(app.get("posting")) or "",
            "title": posting.get("text") or "Unknown",
            "team": text_of(posting.get("team")),
        },
        "status": app.get("status") or "Unknown",
        "created_at": format_timestamp(app.get("createdAt"), "minute"),
        "created_by": name_of(app.get("user")) or "System",
        "type": app.get("type") or "Unknown",
        "posting_owner": name_of(app.get("postingOwner")) or "Unknown",
    }


def format_file(item: Dict[str, Any], source: str) -> Dict[str, Any]:
    """
    Summary of a file or resume attached to a candidate.

    The files and resumes endpoints describe the same thing with different
    field names, so each field falls back across both spellings.
    """
    file_info = item.get("file") if isinstance(item.get("file"), dict) else {}
    return {
        "id": item.get("id") or "",
        "filename": file_info.get("name") or item.get("name") or item.get("filename") or "Unknown",
        "type": file_info.get("ext") or item.get("type") or item.get("mimetype") or "Unknown",
        "size": file_info.get("size") or item.get("size") or 0,
        "uploaded_at": format_timestamp(item.get("createdAt"), "minute"),
        "download_url": file_info.get("downloadUrl") or item.get("downloadUrl") or item.get("url") or "",
        "source": source,
    }
