"""
MCP tool handlers for requisitions.

A requisition is addressed either by Lever's id (a UUID) or by its external
requisition code ("ENG-145"). Lookups try the form the identifier looks like
first and fall back to the other.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from lever.client import LeverClient, get_lever_client
from lever.errors import ClientRequestError, EmptyResourceError, LeverAPIError
from lever.filters import RequisitionFilter
from models.errors import create_not_found_error
from models.requisition import format_requisition, format_requisition_details, looks_like_uuid
from schemas.requisitions import (
    GetRequisitionDetailsRequest,
    ListRequisitionsRequest,
    ManageRequisitionRequest,
)
from utils.error_mapping import map_tool_exception

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[Dict[str, Any]]]


def _is_missing(error: LeverAPIError) -> bool:
    if isinstance(error, EmptyResourceError):
        return True
    return isinstance(error, ClientRequestError) and error.is_not_found


async def find_requisition(client: LeverClient, identifier: str) -> Tuple[Dict[str, Any], str]:
    """
    Look a requisition up by id or by code.

    Args:
        client: Lever client
        identifier: Lever id or requisition code

    Returns:
        (requisition, lookup) where lookup is "id" or "code"

    Raises:
        ToolError: NOT_FOUND when neither lookup finds it
    """
    lookups: List[Tuple[str, Lookup]] = [
        ("id", client.get_requisition),
        ("code", client.get_requisition_by_code),
    ]
    if not looks_like_uuid(identifier):
        lookups.reverse()

    for kind, lookup in lookups:
        try:
            response = await lookup(identifier)
        except LeverAPIError as e:
            if not _is_missing(e):
                raise
            logger.debug(f"Requisition '{identifier}' not found by {kind}")
            continue
        return response["data"], kind

    raise create_not_found_error("Requisition", identifier)


async def lever_list_requisitions(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    List requisitions, one page at a time.

    Args:
        args: Optional status, requisition_code, created_at_start/created_at_end
            (ISO date or epoch ms), confidentiality, limit (1-100) and offset

    Returns:
        Dictionary with requisitions, count, has_more and next_offset
    """
    try:
        request = ListRequisitionsRequest.model_validate(args)
        client = get_lever_client()

        filters = RequisitionFilter(
            status=request.status,
            requisition_code=request.requisition_code,
            created_at_start=request.created_at_start,
            created_at_end=request.created_at_end,
            confidentiality=request.confidentiality,
        )
        page = await client.get_requisitions_page(filters, request.limit, request.offset)
        requisitions = [format_requisition(r) for r in page["data"] if isinstance(r, dict)]
        response: Dict[str, Any] = {
            "requisitions": requisitions,
            "count": len(requisitions),
            "has_more": bool(page["hasNext"]),
        }
        if page["next"]:
            response["next_offset"] = page["next"]
        return response

    except Exception as e:
        return map_tool_exception(e, "lever_list_requisitions").to_dict()


async def lever_get_requisition_details(args: Dict[str, Any]) -> Dict[str, Any]:
    """Get full details of a requisition by Lever id or requisition code."""
    try:
        request = GetRequisitionDetailsRequest.model_validate(args)
        client = get_lever_client()

        requisition, lookup = await find_requisition(client, request.requisition_id)
        return {"requisition": format_requisition_details(requisition), "found_by": lookup}

    except Exception as e:
        return map_tool_exception(e, "lever_get_requisition_details").to_dict()


async def lever_manage_requisition(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create, update or delete a requisition.

    For update and delete, ``requisition_id`` may also be a requisition code; it
    is resolved to the Lever id first.
    """
    try:
        request = ManageRequisitionRequest.model_validate(args)
        client = get_lever_client()

        if request.action == "create":
            response = await client.create_requisition(request.to_body())
            created = response.get("data") or {}
            logger.info(f"Created requisition {request.requisition_code}")
            return {
                "success": True,
                "action": "create",
                "requisition": format_requisition(created) if created else {},
            }

        existing, _ = await find_requisition(client, request.requisition_id)
        lever_id = existing.get("id") or request.requisition_id

        if request.action == "update":
            response = await client.update_requisition(lever_id, request.to_body())
            updated = response.get("data") or {}
            logger.info(f"Updated requisition {lever_id}")
            return {
                "success": True,
                "action": "update",
                "requisition": format_requisition(updated) if updated else {},
            }

        await client.delete_requisition(lever_id)
        logger.info(f"Deleted requisition {lever_id}")
        return {
            "success": True,
            "action": "delete",
            "lever_id": lever_id,
            "requisition_code": existing.get("requisitionCode") or "",
        }

    except Exception as e:
        return map_tool_exception(e, "lever_manage_requisition").to_dict()
