"""
In-memory candidate predicates.

Lever's opportunity filters are coarse (one tag, one stage, exact email), so
tool-level criteria are applied to each examined candidate as a predicate handed
to the page aggregator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _lower_list(values: Any) -> List[str]:
    return [str(v).lower() for v in (values or []) if v]


@dataclass
class CandidateCriteria:
    """
    Advanced search criteria. All list fields hold lowercase terms.

    A candidate matches when every populated criterion matches; within one
    list criterion any term may match.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    companies: List[str] = field(default_factory=list)
    skills: List[str] = field(default_factory=list)
    locations: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def matches(self, candidate: Dict[str, Any]) -> bool:
        if not isinstance(candidate, dict):
            return False

        name = (candidate.get("name") or "").lower()
        emails = _lower_list(candidate.get("emails"))
        tags = _lower_list(candidate.get("tags"))
        location = (candidate.get("location") or "").lower()
        headline = (candidate.get("headline") or "").lower()

        if self.name and self.name.lower() not in name:
            return False
        if self.email and self.email.lower() not in emails:
            return False
        if self.companies and not any(c in headline for c in self.companies):
            return False
        if self.skills:
            haystack = f"{name} {' '.join(tags)} {headline}"
            if not any(s in haystack for s in self.skills):
                return False
        if self.locations and not any(loc in location for loc in self.locations):
            return False
        if self.tags and not any(t in ct for t in self.tags for ct in tags):
            return False
        return True


def name_contains(query: str):
    """Predicate: candidate name contains ``query`` (case-insensitive)."""
    needle = query.lower()

    def predicate(candidate: Dict[str, Any]) -> bool:
        return needle in (candidate.get("name") or "").lower()

    return predicate


def name_overlaps(query: str):
    """Predicate: candidate name contains ``query`` or is contained in it."""
    needle = query.lower()

    def predicate(candidate: Dict[str, Any]) -> bool:
        if not candidate.get("id"):
            return False
        name = (candidate.get("name") or "").lower()
        return bool(name) and (needle in name or name in needle)

    return predicate


def name_parts_match(query: str):
    """Predicate: any word of ``query`` appears in the name, or the names overlap."""
    needle = query.lower()
    parts = [p for p in needle.split() if p]

    def predicate(candidate: Dict[str, Any]) -> bool:
        name = (candidate.get("name") or "").lower()
        if not name:
            return False
        return any(p in name for p in parts) or needle in name or name in needle

    return predicate


def owner_name_contains(recruiter_name: str):
    """
    Predicate on the recruiter responsible for a candidate.

    Checks the owner of the candidate's posting first (when the posting is
    expanded), then the candidate's own owner.
    """
    needle = recruiter_name.lower()

    def predicate(candidate: Dict[str, Any]) -> bool:
        posting = candidate.get("posting")
        if isinstance(posting, dict):
            owner = posting.get("owner")
            if isinstance(owner, dict) and owner.get("name"):
                return needle in owner["name"].lower()
        owner = candidate.get("owner")
        if isinstance(owner, dict) and owner.get("name"):
            return needle in owner["name"].lower()
        return False

    return predicate
