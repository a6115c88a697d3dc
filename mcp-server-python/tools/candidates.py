"""
MCP tool handlers for working with a single candidate.

Covers reading a candidate and its applications and files, and the three
mutations recruiters do most: adding a note, moving to a stage, archiving.
Mutations accept ``perform_as`` so the action is attributed to a Lever user.
"""

import logging
from typing import Any, Dict, List

from lever.client import get_lever_client
from lever.errors import LeverAPIError
from models.candidate import (
    format_application,
    format_application_details,
    format_file,
    format_opportunity,
    text_of,
)
from models.posting import format_user_ref
from models.errors import create_validation_error
from schemas.candidates import (
    AddNoteRequest,
    ArchiveCandidateRequest,
    GetApplicationRequest,
    GetCandidateRequest,
    MoveCandidateToStageRequest,
)
from utils.error_mapping import map_tool_exception
from utils.stage_resolver import resolve_stages

logger = logging.getLogger(__name__)


async def lever_get_candidate(args: Dict[str, Any]) -> Dict[str, Any]:
    """Get one candidate by opportunity id."""
    try:
        request = GetCandidateRequest.model_validate(args)
        client = get_lever_client()

        response = await client.get_opportunity(
            request.opportunity_id, expand=["stage", "posting", "owner"]
        )
        opp = response["data"]
        candidate = format_opportunity(opp)
        candidate["emails"] = opp.get("emails") or []
        candidate["phones"] = [p.get("value") for p in opp.get("phones") or [] if isinstance(p, dict)]
        candidate["tags"] = opp.get("tags") or []
        candidate["sources"] = opp.get("sources") or []
        candidate["owner"] = format_user_ref(opp.get("owner"))["name"]
        candidate["archived"] = bool(opp.get("archived"))
        candidate["links"] = opp.get("links") or []
        return {"candidate": candidate}

    except Exception as e:
        return map_tool_exception(e, "lever_get_candidate").to_dict()


async def lever_add_note(args: Dict[str, Any]) -> Dict[str, Any]:
    """Add a note to a candidate's profile."""
    try:
        request = AddNoteRequest.model_validate(args)
        client = get_lever_client()

        response = await client.add_note(
            request.opportunity_id,
            request.note,
            author=request.author_email,
            perform_as=request.perform_as,
        )
        data = response.get("data") if isinstance(response, dict) else None
        if not isinstance(data, dict):
            data = {}
        logger.info(f"Added note to candidate {request.opportunity_id}")
        return {
            "success": True,
            "candidate_id": request.opportunity_id,
            "note_id": data.get("noteId") or data.get("id"),
            "message": "Note added",
        }

    except Exception as e:
        return map_tool_exception(e, "lever_add_note").to_dict()


async def lever_move_candidate_to_stage(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move a candidate to a pipeline stage.

    ``stage`` may be a stage id or a stage name; names are resolved against
    the stage list (exact, then partial match).
    """
    try:
        request = MoveCandidateToStageRequest.model_validate(args)
        client = get_lever_client()

        current = await client.get_opportunity(request.opportunity_id, expand=["stage"])
        from_stage = text_of(current["data"].get("stage"))

        stage_id = (await resolve_stages(client, request.stage))[0]
        response = await client.update_opportunity_stage(
            request.opportunity_id, stage_id, perform_as=request.perform_as
        )

        updated = response.get("data") if isinstance(response, dict) else None
        to_stage = request.stage
        if isinstance(updated, dict) and isinstance(updated.get("stage"), dict):
            to_stage = text_of(updated["stage"], default=request.stage)

        logger.info(f"Moved candidate {request.opportunity_id} from '{from_stage}' to {stage_id}")
        return {
            "success": True,
            "candidate_id": request.opportunity_id,
            "from_stage": from_stage,
            "to_stage": to_stage,
            "to_stage_id": stage_id,
        }

    except Exception as e:
        return map_tool_exception(e, "lever_move_candidate_to_stage").to_dict()


async def lever_archive_candidate(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Archive a candidate with a reason.

    The reason id must be one of the account's archive reasons; it is checked
    before the archive request is sent.
    """
    try:
        request = ArchiveCandidateRequest.model_validate(args)
        client = get_lever_client()

        reasons = await client.get_archive_reasons()
        by_id = {r.get("id"): r.get("text") or "" for r in reasons.items if r.get("id")}
        if request.archive_reason_id not in by_id:
            available = ", ".join(f"{rid} ({text})" for rid, text in by_id.items()) or "none"
            raise create_validation_error(
                f"Invalid archive_reason_id '{request.archive_reason_id}'. "
                f"Available reasons: {available}"
            )

        await client.archive_opportunity(
            request.opportunity_id,
            request.archive_reason_id,
            perform_as=request.perform_as,
            clean_interviews=request.clean_interviews,
            requisition_id=request.requisition_id,
        )
        logger.info(f"Archived candidate {request.opportunity_id}")
        return {
            "success": True,
            "candidate_id": request.opportunity_id,
            "archive_reason": by_id[request.archive_reason_id],
            "archive_reason_id": request.archive_reason_id,
        }

    except Exception as e:
        return map_tool_exception(e, "lever_archive_candidate").to_dict()


async def lever_list_applications(args: Dict[str, Any]) -> Dict[str, Any]:
    """List the applications of a candidate."""
    try:
        request = GetCandidateRequest.model_validate(args)
        client = get_lever_client()

        page = await client.get_applications(request.opportunity_id)
        applications = [format_application(a) for a in page["data"] if isinstance(a, dict)]
        return {
            "candidate_id": request.opportunity_id,
            "applications": applications,
            "count": len(applications),
        }

    except Exception as e:
        return map_tool_exception(e, "lever_list_applications").to_dict()


async def lever_get_application(args: Dict[str, Any]) -> Dict[str, Any]:
    """Get one application of a candidate."""
    try:
        request = GetApplicationRequest.model_validate(args)
        client = get_lever_client()

        response = await client.get_application(request.opportunity_id, request.application_id)
        return {
            "candidate_id": request.opportunity_id,
            "application": format_application_details(response["data"]),
        }

    except Exception as e:
        return map_tool_exception(e, "lever_get_application").to_dict()


async def lever_list_files(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    List files and resumes attached to a candidate.

    Both endpoints are consulted; one that fails is reported in ``warnings``
    and the other's results are still returned.
    """
    try:
        request = GetCandidateRequest.model_validate(args)
        client = get_lever_client()

        files: List[Dict[str, Any]] = []
        warnings: List[str] = []
        sources = (("files", client.get_files), ("resumes", client.get_resumes))
        for source, fetch in sources:
            try:
                page = await fetch(request.opportunity_id)
            except LeverAPIError as e:
                logger.warning(f"Could not list {source} for candidate {request.opportunity_id}: {e}")
                warnings.append(f"{source} unavailable: {e}")
                continue
            files.extend(format_file(item, source) for item in page["data"] if isinstance(item, dict))

        response: Dict[str, Any] = {
            "candidate_id": request.opportunity_id,
            "files": files,
            "count": len(files),
        }
        if warnings:
            response["warnings"] = warnings
        return response

    except Exception as e:
        return map_tool_exception(e, "lever_list_files").to_dict()
