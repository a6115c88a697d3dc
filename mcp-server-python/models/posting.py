"""Posting shaping for MCP tool responses."""

from typing import Any, Dict

from models.candidate import format_timestamp


def format_user_ref(value: Any) -> Dict[str, str]:
    """
    ``{id, name}`` for a posting's owner or hiring manager.

    The field is an id string unless the request expanded it into a user object.
    """
    if isinstance(value, dict):
        return {"id": value.get("id") or "", "name": value.get("name") or "Unknown"}
    if isinstance(value, str) and value:
        return {"id": value, "name": f"User ID: {value}"}
    return {"id": "", "name": "Unassigned"}


def owner_name_matches(posting: Dict[str, Any], owner_name: str) -> bool:
    """Case-insensitive partial match on the expanded owner's name."""
    owner = posting.get("owner")
    if not isinstance(owner, dict) or not owner.get("name"):
        return False
    return owner_name.lower() in owner["name"].lower()


def owner_id_matches(posting: Dict[str, Any], owner_id: str) -> bool:
    owner = posting.get("owner")
    current = owner.get("id") if isinstance(owner, dict) else owner
    return current == owner_id


def format_posting(posting: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a Lever posting to the summary returned by tools.

    Args:
        posting: Posting object from the Lever API

    Returns:
        Dictionary with id, title, state, location, team, owner,
        hiring manager and public URL
    """
    categories = posting.get("categories") or {}
    urls = posting.get("urls") or {}
    return {
        "id": posting.get("id") or "",
        "title": posting.get("text") or "Unknown",
        "state": posting.get("state") or "Unknown",
        "location": categories.get("location") or "Unknown",
        "team": categories.get("team") or "Unknown",
        "posting_owner": format_user_ref(posting.get("owner")),
        "hiring_manager": format_user_ref(posting.get("hiringManager")),
        "created": format_timestamp(posting.get("createdAt")),
        "url": urls.get("show") or "",
    }
