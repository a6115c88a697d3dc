"""
Resolve pipeline stage names to Lever stage ids.

Lever filters and stage changes take stage ids, while people think in stage names
("Phone Screen"). Resolution order for each identifier:

1. A UUID is returned unchanged.
2. An exact, case-insensitive name match.
3. A partial match in either direction ("screen" matches "Phone Screen",
   "on-site interview round" matches "On-site Interview").
"""

import logging
from typing import Dict, List, Sequence, Union

from lever.client import LeverClient
from models.errors import create_validation_error
from models.requisition import looks_like_uuid

logger = logging.getLogger(__name__)


def build_stage_index(stages: Sequence[Dict]) -> Dict[str, str]:
    """Map of lowercase stage name to stage id, in upstream order."""
    index: Dict[str, str] = {}
    for stage in stages:
        text = stage.get("text")
        stage_id = stage.get("id")
        if text and stage_id:
            index.setdefault(text.lower(), stage_id)
    return index


def match_stage(identifier: str, index: Dict[str, str]) -> str:
    """
    Resolve one identifier against a stage index.

    Raises:
        ToolError: VALIDATION_ERROR when nothing matches
    """
    candidate = identifier.strip()
    if looks_like_uuid(candidate):
        return candidate

    lower = candidate.lower()
    if lower in index:
        return index[lower]

    for name, stage_id in index.items():
        if lower in name or name in lower:
            return stage_id

    available = ", ".join(sorted(index)) or "none"
    raise create_validation_error(
        f"Stage '{identifier}' not found. Available stages: {available}"
    )


async def resolve_stages(
    client: LeverClient, identifiers: Union[str, Sequence[str]]
) -> List[str]:
    """
    Resolve stage names or ids to ids, fetching the stage list at most once.

    Args:
        client: Lever client
        identifiers: One identifier or a sequence of them

    Returns:
        Stage ids in the same order as the identifiers
    """
    if isinstance(identifiers, str):
        identifiers = [identifiers]

    if all(looks_like_uuid(i) for i in identifiers):
        return [i.strip() for i in identifiers]

    stages = await client.get_stages()
    index = build_stage_index(stages.items)
    resolved = [match_stage(i, index) for i in identifiers]
    logger.debug(f"Resolved stages {list(identifiers)} -> {resolved}")
    return resolved

