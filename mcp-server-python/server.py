#!/usr/bin/env python3
"""
MCP Server entry point for the Lever ATS tools.

Exposes candidate search, candidate management, postings, requisitions and
interviews of a Lever account as MCP tools. Every tool goes through one shared
Lever client, so all tool calls share a single rate limiter and request queue.

Usage:
    python server.py

The transport is stdio unless LEVER_MCP_TRANSPORT selects "sse" or
"streamable-http" (bound to LEVER_MCP_HOST:LEVER_MCP_PORT).
"""

import logging
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from config import VALID_TRANSPORTS, get_config
from tools.candidates import (
    lever_add_note,
    lever_archive_candidate,
    lever_get_application,
    lever_get_candidate,
    lever_list_applications,
    lever_list_files,
    lever_move_candidate_to_stage,
)
from tools.interviews import lever_get_interview_insights, lever_manage_interview
from tools.postings import lever_find_postings_by_owner, lever_list_open_roles
from tools.reference_data import lever_get_archive_reasons, lever_get_stages
from tools.requisitions import (
    lever_get_requisition_details,
    lever_list_requisitions,
    lever_manage_requisition,
)
from tools.search_candidates import (
    lever_advanced_search,
    lever_find_candidate_in_posting,
    lever_quick_find_candidate,
    lever_search_archived_candidates,
    lever_search_candidates,
)

# Create FastMCP server instance
config = get_config()
mcp = FastMCP(
    name=config.server_name,
    host=config.host,
    port=config.port,
    instructions=(
        "This server provides tools for the Lever applicant tracking system. "
        "\n\n"
        "FINDING CANDIDATES:\n"
        "Use lever_quick_find_candidate for a fast lookup by email or name. "
        "Use lever_search_candidates for a simple query, and lever_advanced_search to combine "
        "companies, skills, locations, tags, stages and postings. "
        "Use lever_find_candidate_in_posting when the posting is known, and "
        "lever_search_archived_candidates for archived candidates. "
        "List results report exhausted_reason and may_be_incomplete: when may_be_incomplete is "
        "true the scan stopped at a limit and more matches may exist."
        "\n\n"
        "WORKING WITH A CANDIDATE:\n"
        "Use lever_get_candidate, lever_list_applications, lever_get_application and "
        "lever_list_files to read, and lever_add_note, lever_move_candidate_to_stage and "
        "lever_archive_candidate to change a candidate. Use lever_get_stages and "
        "lever_get_archive_reasons for valid stage names and archive reason ids."
        "\n\n"
        "POSTINGS, REQUISITIONS AND INTERVIEWS:\n"
        "Use lever_list_open_roles and lever_find_postings_by_owner for postings, "
        "lever_list_requisitions, lever_get_requisition_details and lever_manage_requisition "
        "for requisitions, and lever_get_interview_insights and lever_manage_interview for "
        "interviews."
    ),
)


def _provided(**kwargs: Any) -> Dict[str, Any]:
    """Only the arguments that were explicitly provided, so handlers apply their own defaults."""
    return {key: value for key, value in kwargs.items() if value is not None}


# Candidate search


@mcp.tool(
    name="lever_advanced_search",
    description=(
        "Search candidates by any combination of companies, skills, locations, tags "
        "(comma-separated), name, email, stage or stages (names or ids) and posting. "
        "mode='quick' scans fewer candidates, mode='comprehensive' scans more. "
        "Results are paged with limit and page."
    ),
)
async def lever_advanced_search_tool(
    companies: str | None = None,
    skills: str | None = None,
    locations: str | None = None,
    tags: str | None = None,
    stage: str | None = None,
    stages: list[str] | None = None,
    posting_id: str | None = None,
    name: str | None = None,
    email: str | None = None,
    archived: bool | None = None,
    mode: str | None = None,
    limit: int | None = None,
    page: int | None = None,
) -> dict:
    """
    Multi-criteria candidate search.

    Returns:
        Dictionary with candidates, page, total_matches, total_pages, has_more,
        mode and aggregation metadata, or an ``error`` object
    """
    return await lever_advanced_search(
        _provided(
            companies=companies,
            skills=skills,
            locations=locations,
            tags=tags,
            stage=stage,
            stages=stages,
            posting_id=posting_id,
            name=name,
            email=email,
            archived=archived,
            mode=mode,
            limit=limit,
            page=page,
        )
    )


@mcp.tool(
    name="lever_search_candidates",
    description=(
        "Search candidates. A query containing '@' looks up an exact email; any other query "
        "matches candidate names. Optional stage (name or id) filter."
    ),
)
async def lever_search_candidates_tool(
    query: str | None = None,
    stage: str | None = None,
    limit: int | None = None,
    page: int | None = None,
) -> dict:
    """Simple candidate search by email or name."""
    return await lever_search_candidates(
        _provided(query=query, stage=stage, limit=limit, page=page)
    )


@mcp.tool(
    name="lever_quick_find_candidate",
    description="Quickly find a candidate by email or name (checks the most recent candidates).",
)
async def lever_quick_find_candidate_tool(name_or_email: str) -> dict:
    """Fast candidate lookup returning at most five matches."""
    return await lever_quick_find_candidate({"name_or_email": name_or_email})


@mcp.tool(
    name="lever_find_candidate_in_posting",
    description="Find candidates by name within a specific posting, optionally in one stage.",
)
async def lever_find_candidate_in_posting_tool(
    name: str,
    posting_id: str,
    stage: str | None = None,
) -> dict:
    """Name search scoped to one posting."""
    return await lever_find_candidate_in_posting(
        _provided(name=name, posting_id=posting_id, stage=stage)
    )


@mcp.tool(
    name="lever_search_archived_candidates",
    description=(
        "Search archived candidates by posting, archive date range (ISO date or epoch ms), "
        "archive reason and recruiter name. Returns one page unless fetch_all_pages is true."
    ),
)
async def lever_search_archived_candidates_tool(
    posting_id: str | None = None,
    archived_at_start: str | int | None = None,
    archived_at_end: str | int | None = None,
    archive_reason_id: str | None = None,
    recruiter_name: str | None = None,
    limit: int | None = None,
    offset: str | None = None,
    fetch_all_pages: bool | None = None,
) -> dict:
    """Archived candidate search."""
    return await lever_search_archived_candidates(
        _provided(
            posting_id=posting_id,
            archived_at_start=archived_at_start,
            archived_at_end=archived_at_end,
            archive_reason_id=archive_reason_id,
            recruiter_name=recruiter_name,
            limit=limit,
            offset=offset,
            fetch_all_pages=fetch_all_pages,
        )
    )


# Single candidate


@mcp.tool(name="lever_get_candidate", description="Get a candidate's details by opportunity id.")
async def lever_get_candidate_tool(opportunity_id: str) -> dict:
    return await lever_get_candidate({"opportunity_id": opportunity_id})


@mcp.tool(
    name="lever_add_note",
    description="Add a note to a candidate's profile, optionally attributed to an author email.",
)
async def lever_add_note_tool(
    opportunity_id: str,
    note: str,
    author_email: str | None = None,
    perform_as: str | None = None,
) -> dict:
    return await lever_add_note(
        _provided(
            opportunity_id=opportunity_id,
            note=note,
            author_email=author_email,
            perform_as=perform_as,
        )
    )


@mcp.tool(
    name="lever_move_candidate_to_stage",
    description="Move a candidate to a pipeline stage, given a stage id or a stage name.",
)
async def lever_move_candidate_to_stage_tool(
    opportunity_id: str,
    stage: str,
    perform_as: str | None = None,
) -> dict:
    return await lever_move_candidate_to_stage(
        _provided(opportunity_id=opportunity_id, stage=stage, perform_as=perform_as)
    )


@mcp.tool(
    name="lever_archive_candidate",
    description=(
        "Archive a candidate with an archive reason id (see lever_get_archive_reasons)."
    ),
)
async def lever_archive_candidate_tool(
    opportunity_id: str,
    archive_reason_id: str,
    perform_as: str | None = None,
    clean_interviews: bool | None = None,
    requisition_id: str | None = None,
) -> dict:
    return await lever_archive_candidate(
        _provided(
            opportunity_id=opportunity_id,
            archive_reason_id=archive_reason_id,
            perform_as=perform_as,
            clean_interviews=clean_interviews,
            requisition_id=requisition_id,
        )
    )


@mcp.tool(name="lever_list_applications", description="List all applications of a candidate.")
async def lever_list_applications_tool(opportunity_id: str) -> dict:
    return await lever_list_applications({"opportunity_id": opportunity_id})


@mcp.tool(name="lever_get_application", description="Get one application of a candidate.")
async def lever_get_application_tool(opportunity_id: str, application_id: str) -> dict:
    return await lever_get_application(
        {"opportunity_id": opportunity_id, "application_id": application_id}
    )


@mcp.tool(
    name="lever_list_files",
    description="List files and resumes attached to a candidate, with download URLs.",
)
async def lever_list_files_tool(opportunity_id: str) -> dict:
    return await lever_list_files({"opportunity_id": opportunity_id})


# Postings and reference data


@mcp.tool(
    name="lever_list_open_roles",
    description=(
        "List published postings, optionally filtered by team, department, location or "
        "commitment. include_owner_details adds owner and hiring manager names."
    ),
)
async def lever_list_open_roles_tool(
    team: str | None = None,
    department: str | None = None,
    location: str | None = None,
    commitment: str | None = None,
    include_owner_details: bool | None = None,
    limit: int | None = None,
) -> dict:
    return await lever_list_open_roles(
        _provided(
            team=team,
            department=department,
            location=location,
            commitment=commitment,
            include_owner_details=include_owner_details,
            limit=limit,
        )
    )


@mcp.tool(
    name="lever_find_postings_by_owner",
    description="Find postings owned by a recruiter, by owner name (partial match) or owner id.",
)
async def lever_find_postings_by_owner_tool(
    owner_name: str | None = None,
    owner_id: str | None = None,
    state: str | None = None,
    limit: int | None = None,
) -> dict:
    return await lever_find_postings_by_owner(
        _provided(owner_name=owner_name, owner_id=owner_id, state=state, limit=limit)
    )


@mcp.tool(name="lever_get_stages", description="List all pipeline stages.")
async def lever_get_stages_tool() -> dict:
    return await lever_get_stages({})


@mcp.tool(name="lever_get_archive_reasons", description="List all archive reasons.")
async def lever_get_archive_reasons_tool() -> dict:
    return await lever_get_archive_reasons({})


# Requisitions


@mcp.tool(
    name="lever_list_requisitions",
    description=(
        "List requisitions filtered by status, requisition code, creation date range or "
        "confidentiality. One page per call; continue with offset."
    ),
)
async def lever_list_requisitions_tool(
    status: str | None = None,
    requisition_code: str | None = None,
    created_at_start: str | int | None = None,
    created_at_end: str | int | None = None,
    confidentiality: str | None = None,
    limit: int | None = None,
    offset: str | None = None,
) -> dict:
    return await lever_list_requisitions(
        _provided(
            status=status,
            requisition_code=requisition_code,
            created_at_start=created_at_start,
            created_at_end=created_at_end,
            confidentiality=confidentiality,
            limit=limit,
            offset=offset,
        )
    )


@mcp.tool(
    name="lever_get_requisition_details",
    description="Get a requisition by Lever id or by requisition code (e.g. ENG-145).",
)
async def lever_get_requisition_details_tool(requisition_id: str) -> dict:
    return await lever_get_requisition_details({"requisition_id": requisition_id})


@mcp.tool(
    name="lever_manage_requisition",
    description=(
        "Create, update or delete a requisition. create needs requisition_code, name and "
        "headcount_total; update and delete need requisition_id (id or code)."
    ),
)
async def lever_manage_requisition_tool(
    action: str,
    requisition_id: str | None = None,
    requisition_code: str | None = None,
    name: str | None = None,
    headcount_total: int | None = None,
    status: str | None = None,
    employment_status: str | None = None,
    location: str | None = None,
    team: str | None = None,
    department: str | None = None,
    owner: str | None = None,
    hiring_manager: str | None = None,
    internal_notes: str | None = None,
    backfill: bool | None = None,
) -> dict:
    return await lever_manage_requisition(
        _provided(
            action=action,
            requisition_id=requisition_id,
            requisition_code=requisition_code,
            name=name,
            headcount_total=headcount_total,
            status=status,
            employment_status=employment_status,
            location=location,
            team=team,
            department=department,
            owner=owner,
            hiring_manager=hiring_manager,
            internal_notes=internal_notes,
            backfill=backfill,
        )
    )


# Interviews


@mcp.tool(
    name="lever_get_interview_insights",
    description=(
        "Interviews and panels for one candidate (opportunity_id) or across recent candidates "
        "of a posting, filtered by time_scope (past_week, this_week, next_week, this_month, "
        "custom, all), interviewer email and status. view_type is dashboard or detailed."
    ),
)
async def lever_get_interview_insights_tool(
    opportunity_id: str | None = None,
    posting_id: str | None = None,
    interviewer_email: str | None = None,
    time_scope: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    view_type: str | None = None,
    status_filter: str | None = None,
    include_panel_context: bool | None = None,
    limit: int | None = None,
) -> dict:
    return await lever_get_interview_insights(
        _provided(
            opportunity_id=opportunity_id,
            posting_id=posting_id,
            interviewer_email=interviewer_email,
            time_scope=time_scope,
            date_from=date_from,
            date_to=date_to,
            view_type=view_type,
            status_filter=status_filter,
            include_panel_context=include_panel_context,
            limit=limit,
        )
    )


@mcp.tool(
    name="lever_manage_interview",
    description=(
        "Schedule (creates a panel with one interview), reschedule or cancel an interview. "
        "perform_as (the acting Lever user id) is required."
    ),
)
async def lever_manage_interview_tool(
    action: str,
    opportunity_id: str,
    perform_as: str,
    interview_id: str | None = None,
    interview_details: dict | None = None,
    reschedule_data: dict | None = None,
    cancel_reason: str | None = None,
) -> dict:
    return await lever_manage_interview(
        _provided(
            action=action,
            opportunity_id=opportunity_id,
            perform_as=perform_as,
            interview_id=interview_id,
            interview_details=interview_details,
            reschedule_data=reschedule_data,
            cancel_reason=cancel_reason,
        )
    )


def main():
    """
    Main entry point for the MCP server.

    Sets up logging, reports configuration warnings and runs the configured
    transport (stdio by default).
    """
    config.setup_logging()

    logger = logging.getLogger(__name__)
    logger.info("Starting Lever MCP Server")
    logger.info(f"Server name: {config.server_name}")
    logger.info(f"Lever API: {config.lever_api_base_url}")

    warnings = config.validate()
    for warning in warnings:
        logger.warning(warning)

    transport = config.transport if config.transport in VALID_TRANSPORTS else "stdio"
    if transport == "stdio":
        logger.info("Server starting in stdio mode")
    else:
        logger.info(f"Server starting in {transport} mode on {config.host}:{config.port}")
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
