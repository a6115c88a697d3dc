"""MCP tool handlers for job postings (open roles)."""

import logging
from typing import Any, Dict

from lever.client import get_lever_client
from lever.filters import PostingFilter
from models.posting import format_posting, owner_id_matches, owner_name_matches
from schemas.common import AggregationInfo
from schemas.postings import FindPostingsByOwnerRequest, ListOpenRolesRequest, PostingListResponse
from utils.error_mapping import map_tool_exception
from utils.validation import OWNER_SCAN_MAX_POSTINGS, MAX_PAGE_LIMIT

logger = logging.getLogger(__name__)

USER_EXPAND = ["owner", "hiringManager"]


async def lever_list_open_roles(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    List published postings, aggregated across pages up to ``limit``.

    Args:
        args: Optional team, department, location, commitment filters,
            include_owner_details (expand owner and hiring manager names)
            and limit (1-500, default 50)

    Returns:
        Dictionary with postings, count and aggregation metadata
    """
    try:
        request = ListOpenRolesRequest.model_validate(args)
        client = get_lever_client()

        filters = PostingFilter(
            state="published",
            team=request.team,
            department=request.department,
            location=request.location,
            commitment=request.commitment,
            expand=USER_EXPAND if request.include_owner_details else [],
        )
        result = await client.list_postings(filters, max_items=request.limit)
        postings = [format_posting(p) for p in result.items]
        return PostingListResponse(
            postings=postings,
            count=len(postings),
            aggregation=AggregationInfo.from_result(result),
        ).model_dump(exclude_none=True)

    except Exception as e:
        return map_tool_exception(e, "lever_list_open_roles").to_dict()


async def lever_find_postings_by_owner(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Find postings owned by one recruiter.

    Owner names match partially and case-insensitively against the expanded
    owner; owner ids match exactly. At most 500 postings are examined.
    """
    try:
        request = FindPostingsByOwnerRequest.model_validate(args)
        client = get_lever_client()

        owner_name, owner_id = request.owner_name, request.owner_id
        label = owner_name or owner_id

        def predicate(posting: Dict[str, Any]) -> bool:
            if owner_name:
                return owner_name_matches(posting, owner_name)
            return owner_id_matches(posting, owner_id)

        result = await client.list_postings(
            PostingFilter(state=request.state, expand=USER_EXPAND),
            max_items=request.limit,
            predicate=predicate,
            max_calls=OWNER_SCAN_MAX_POSTINGS // MAX_PAGE_LIMIT,
        )
        postings = [format_posting(p) for p in result.items]
        message = None
        if not postings:
            message = (
                f"No {request.state} postings owned by '{label}' among "
                f"{result.items_examined} postings examined"
            )
        return PostingListResponse(
            postings=postings,
            count=len(postings),
            message=message,
            aggregation=AggregationInfo.from_result(result),
        ).model_dump(exclude_none=True)

    except Exception as e:
        return map_tool_exception(e, "lever_find_postings_by_owner").to_dict()
