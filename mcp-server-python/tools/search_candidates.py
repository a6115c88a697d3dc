"""
MCP tool handlers for finding candidates.

Lever has no full-text candidate search, so every tool here combines the few
upstream filters Lever does support (email, stage, posting, tag, archive
fields) with an in-memory predicate applied while the page aggregator walks
the cursor chain. Each response carries the aggregation metadata so a capped
scan is never presented as an exhaustive one.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from lever.client import get_lever_client
from lever.filters import OpportunityFilter
from lever.pagination import PAGE_SIZE, AggregationResult
from models.candidate import format_opportunity, format_timestamp, id_of
from schemas.candidates import (
    AdvancedSearchRequest,
    CandidateListResponse,
    FindCandidateInPostingRequest,
    QuickFindCandidateRequest,
    SearchArchivedCandidatesRequest,
    SearchCandidatesRequest,
)
from schemas.common import AggregationInfo
from utils.candidate_filters import (
    CandidateCriteria,
    name_contains,
    name_overlaps,
    name_parts_match,
    owner_name_contains,
)
from utils.error_mapping import map_tool_exception
from utils.stage_resolver import resolve_stages
from utils.validation import (
    NAME_SCAN_MAX_CANDIDATES,
    POSTING_SCAN_MAX_CANDIDATES,
    QUICK_FIND_MAX_MATCHES,
    QUICK_FIND_MAX_PAGES,
    split_csv,
)

logger = logging.getLogger(__name__)

SEARCH_EXPAND = ["stage", "posting"]


def _calls_for(max_examined: int) -> int:
    """Page-call ceiling that keeps a scan within ``max_examined`` candidates."""
    return max(1, math.ceil(max_examined / PAGE_SIZE))


def _paged_response(
    result: AggregationResult, limit: int, page: int, message: Optional[str] = None
) -> Dict[str, Any]:
    """Slice ``page`` out of all collected matches."""
    matches = result.items
    start = (page - 1) * limit
    window = [format_opportunity(c) for c in matches[start : start + limit]]
    total_pages = math.ceil(len(matches) / limit) if matches else 0
    return CandidateListResponse(
        candidates=window,
        count=len(window),
        page=page,
        total_matches=len(matches),
        total_pages=total_pages,
        has_more=page < total_pages or result.may_be_incomplete,
        message=message,
        aggregation=AggregationInfo.from_result(result),
    ).model_dump(exclude_none=True)


async def lever_advanced_search(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Multi-criteria candidate search.

    Email, a single stage, posting and the first tag are pushed to Lever as
    filters; companies, skills, locations, name, remaining tags and multiple
    stages are matched in memory. ``mode`` bounds how many matches are collected
    before the requested page is sliced out:
    quick = min(limit x 3, 500), comprehensive = min(limit x 10, 5000).

    Args:
        args: companies, skills, locations, tags (comma-separated), stage,
            stages, posting_id, name, email, archived, mode, limit, page

    Returns:
        Dictionary with candidates, paging fields and aggregation metadata,
        or an ``error`` object
    """
    try:
        request = AdvancedSearchRequest.model_validate(args)
        client = get_lever_client()

        stage_inputs: List[str] = list(request.stages or [])
        if request.stage:
            stage_inputs.insert(0, request.stage)
        stage_ids = await resolve_stages(client, stage_inputs) if stage_inputs else []

        tags = split_csv(request.tags)
        criteria = CandidateCriteria(
            name=request.name,
            email=None,
            companies=split_csv(request.companies),
            skills=split_csv(request.skills),
            locations=split_csv(request.locations),
            tags=tags,
        )
        allowed_stages = set(stage_ids)

        def predicate(candidate: Dict[str, Any]) -> bool:
            if allowed_stages and id_of(candidate.get("stage")) not in allowed_stages:
                return False
            return criteria.matches(candidate)

        filters = OpportunityFilter(
            email=request.email,
            stage_id=stage_ids[0] if len(stage_ids) == 1 else None,
            posting_id=request.posting_id,
            tag=tags[0] if tags else None,
            archived=request.archived,
            expand=SEARCH_EXPAND,
        )

        logger.info(
            f"Advanced search ({request.mode}): collecting up to {request.max_fetch} matches"
        )
        result = await client.list_opportunities(
            filters, max_items=request.max_fetch, predicate=predicate
        )

        message = None
        if not result.items:
            message = "No candidates matched the search criteria"
        response = _paged_response(result, request.limit, request.page, message)
        response["mode"] = request.mode
        return response

    except Exception as e:
        return map_tool_exception(e, "lever_advanced_search").to_dict()


async def lever_search_candidates(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Simple candidate search.

    A query containing ``@`` is an exact email lookup; any other query is a
    case-insensitive name substring scan over at most 500 candidates; no query
    lists candidates unfiltered.
    """
    try:
        request = SearchCandidatesRequest.model_validate(args)
        client = get_lever_client()

        stage_id = None
        if request.stage:
            stage_id = (await resolve_stages(client, request.stage))[0]

        wanted = request.page * request.limit
        query = request.query
        if query and "@" in query:
            filters = OpportunityFilter(email=query, stage_id=stage_id, expand=SEARCH_EXPAND)
            result = await client.list_opportunities(filters, max_items=wanted)
        elif query:
            filters = OpportunityFilter(stage_id=stage_id, expand=SEARCH_EXPAND)
            result = await client.list_opportunities(
                filters,
                max_items=wanted,
                predicate=name_contains(query),
                max_calls=_calls_for(NAME_SCAN_MAX_CANDIDATES),
            )
        else:
            filters = OpportunityFilter(stage_id=stage_id, expand=SEARCH_EXPAND)
            result = await client.list_opportunities(filters, max_items=wanted)

        return _paged_response(result, request.limit, request.page)

    except Exception as e:
        return map_tool_exception(e, "lever_search_candidates").to_dict()


async def lever_quick_find_candidate(args: Dict[str, Any]) -> Dict[str, Any]:
    """Fast lookup by email, or a name scan of at most three pages returning five matches."""
    try:
        request = QuickFindCandidateRequest.model_validate(args)
        client = get_lever_client()
        needle = request.name_or_email

        if "@" in needle:
            result = await client.list_opportunities(
                OpportunityFilter(email=needle, expand=SEARCH_EXPAND),
                max_items=QUICK_FIND_MAX_MATCHES,
                max_calls=1,
            )
        else:
            result = await client.list_opportunities(
                OpportunityFilter(expand=SEARCH_EXPAND),
                max_items=QUICK_FIND_MAX_MATCHES,
                predicate=name_overlaps(needle),
                max_calls=QUICK_FIND_MAX_PAGES,
            )

        candidates = [format_opportunity(c) for c in result.items]
        message = None
        if not candidates:
            message = (
                f"No candidate matching '{needle}' among the {result.items_examined} "
                "most recent candidates. Try lever_advanced_search for a deeper scan."
            )
        return CandidateListResponse(
            candidates=candidates,
            count=len(candidates),
            message=message,
            aggregation=AggregationInfo.from_result(result),
        ).model_dump(exclude_none=True)

    except Exception as e:
        return map_tool_exception(e, "lever_quick_find_candidate").to_dict()


async def lever_find_candidate_in_posting(args: Dict[str, Any]) -> Dict[str, Any]:
    """Find candidates by name within one posting, examining at most 1000 candidates."""
    try:
        request = FindCandidateInPostingRequest.model_validate(args)
        client = get_lever_client()

        stage_id = None
        if request.stage:
            stage_id = (await resolve_stages(client, request.stage))[0]

        filters = OpportunityFilter(
            posting_id=request.posting_id, stage_id=stage_id, expand=SEARCH_EXPAND
        )
        result = await client.list_opportunities(
            filters,
            predicate=name_parts_match(request.name),
            max_calls=_calls_for(POSTING_SCAN_MAX_CANDIDATES),
        )

        candidates = [format_opportunity(c) for c in result.items]
        response = CandidateListResponse(
            candidates=candidates,
            count=len(candidates),
            message=None if candidates else (
                f"No candidate named '{request.name}' in posting {request.posting_id}"
            ),
            aggregation=AggregationInfo.from_result(result),
        ).model_dump(exclude_none=True)
        response["posting_id"] = request.posting_id
        return response

    except Exception as e:
        return map_tool_exception(e, "lever_find_candidate_in_posting").to_dict()


def _format_archived(opp: Dict[str, Any]) -> Dict[str, Any]:
    summary = format_opportunity(opp)
    archived = opp.get("archived") if isinstance(opp.get("archived"), dict) else {}
    summary["archived_at"] = format_timestamp(archived.get("archivedAt"))
    summary["archive_reason_id"] = archived.get("reason") or ""
    return summary


async def lever_search_archived_candidates(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Search archived candidates by posting, archive date range, reason and recruiter.

    Returns one page (continue with ``next_offset``) unless ``fetch_all_pages``
    is set, in which case the whole cursor chain is aggregated.
    """
    try:
        request = SearchArchivedCandidatesRequest.model_validate(args)
        client = get_lever_client()

        filters = OpportunityFilter(
            archived=True,
            archived_posting_id=request.posting_id,
            archive_reason_id=request.archive_reason_id,
            archived_at_start=request.archived_at_start,
            archived_at_end=request.archived_at_end,
            expand=["stage", "posting", "owner"],
        )
        predicate = owner_name_contains(request.recruiter_name) if request.recruiter_name else None

        if request.fetch_all_pages:
            result = await client.list_opportunities(
                filters, predicate=predicate, offset=request.offset
            )
            candidates = [_format_archived(c) for c in result.items]
            return CandidateListResponse(
                candidates=candidates,
                count=len(candidates),
                has_more=result.may_be_incomplete,
                next_offset=result.next_cursor,
                aggregation=AggregationInfo.from_result(result),
            ).model_dump(exclude_none=True)

        page = await client.get_opportunities_page(filters, request.limit, request.offset)
        items = page["data"]
        if predicate is not None:
            items = [c for c in items if predicate(c)]
        candidates = [_format_archived(c) for c in items]
        return CandidateListResponse(
            candidates=candidates,
            count=len(candidates),
            has_more=bool(page["hasNext"]),
            next_offset=page["next"],
        ).model_dump(exclude_none=True)

    except Exception as e:
        return map_tool_exception(e, "lever_search_archived_candidates").to_dict()
