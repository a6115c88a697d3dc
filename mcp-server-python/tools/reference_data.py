"""MCP tool handlers for account reference data: pipeline stages and archive reasons."""

from typing import Any, Dict

from lever.client import get_lever_client
from schemas.common import AggregationInfo
from utils.error_mapping import map_tool_exception


async def lever_get_stages(args: Dict[str, Any]) -> Dict[str, Any]:
    """List the pipeline stages configured in the Lever account."""
    try:
        client = get_lever_client()
        result = await client.get_stages()
        stages = [{"id": s.get("id") or "", "text": s.get("text") or ""} for s in result.items]
        return {
            "stages": stages,
            "count": len(stages),
            "aggregation": AggregationInfo.from_result(result).model_dump(exclude_none=True),
        }

    except Exception as e:
        return map_tool_exception(e, "lever_get_stages").to_dict()


async def lever_get_archive_reasons(args: Dict[str, Any]) -> Dict[str, Any]:
    """List archive reasons; their ids are what lever_archive_candidate expects."""
    try:
        client = get_lever_client()
        result = await client.get_archive_reasons()
        reasons = [
            {"id": r.get("id") or "", "text": r.get("text") or "", "type": r.get("type") or ""}
            for r in result.items
        ]
        return {
            "archive_reasons": reasons,
            "count": len(reasons),
            "aggregation": AggregationInfo.from_result(result).model_dump(exclude_none=True),
        }

    except Exception as e:
        return map_tool_exception(e, "lever_get_archive_reasons").to_dict()
