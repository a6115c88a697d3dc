"""
Unit tests for in-memory candidate predicates.
"""

from utils.candidate_filters import (
    CandidateCriteria,
    name_contains,
    name_overlaps,
    name_parts_match,
    owner_name_contains,
)
from conftest import opportunity


class TestCandidateCriteria:
    """Tests for CandidateCriteria.matches."""

    def test_empty_criteria_match_everything(self):
        """Test that no criteria accepts any candidate."""
        assert CandidateCriteria().matches(opportunity(1))

    def test_non_dict_never_matches(self):
        """Test that malformed entries are rejected."""
        assert not CandidateCriteria().matches("opp-1")

    def test_company_matches_headline(self):
        """Test that companies are looked up in the headline."""
        candidate = opportunity(1, headline="Acme Corp, Globex")
        assert CandidateCriteria(companies=["globex"]).matches(candidate)
        assert not CandidateCriteria(companies=["initech"]).matches(candidate)

    def test_skill_matches_tags_or_headline(self):
        """Test that skills match across name, tags and headline."""
        candidate = opportunity(1, tags=["Python", "AWS"], headline="Backend")
        assert CandidateCriteria(skills=["python"]).matches(candidate)
        assert CandidateCriteria(skills=["rust", "backend"]).matches(candidate)
        assert not CandidateCriteria(skills=["rust"]).matches(candidate)

    def test_location_partial_match(self):
        """Test location substring matching."""
        candidate = opportunity(1, location="San Francisco, CA")
        assert CandidateCriteria(locations=["francisco"]).matches(candidate)
        assert not CandidateCriteria(locations=["berlin"]).matches(candidate)

    def test_tag_partial_match(self):
        """Test that a tag term matches part of a candidate tag."""
        candidate = opportunity(1, tags=["Senior Engineer"])
        assert CandidateCriteria(tags=["senior"]).matches(candidate)

    def test_email_exact_match(self):
        """Test that email must equal one of the candidate emails."""
        candidate = opportunity(1, emails=["Ada@Example.com"])
        assert CandidateCriteria(email="ada@example.com").matches(candidate)
        assert not CandidateCriteria(email="ada@example").matches(candidate)

    def test_all_criteria_must_hold(self):
        """Test that criteria combine with AND."""
        candidate = opportunity(1, name="Ada Lovelace", location="London")
        assert CandidateCriteria(name="ada", locations=["london"]).matches(candidate)
        assert not CandidateCriteria(name="ada", locations=["paris"]).matches(candidate)


class TestNamePredicates:
    """Tests for name predicates."""

    def test_name_contains(self):
        """Test case-insensitive containment."""
        predicate = name_contains("love")
        assert predicate(opportunity(1, name="Ada Lovelace"))
        assert not predicate(opportunity(2, name="Grace Hopper"))
        assert not predicate({"id": "x"})

    def test_name_overlaps_both_directions(self):
        """Test that the query may contain the name or the reverse."""
        assert name_overlaps("ada")(opportunity(1, name="Ada Lovelace"))
        assert name_overlaps("ada lovelace phd")(opportunity(1, name="Ada Lovelace"))
        assert not name_overlaps("ada")({"name": "Ada"})

    def test_name_parts_match_any_word(self):
        """Test that any query word matching is enough."""
        predicate = name_parts_match("Lovelace Augusta")
        assert predicate(opportunity(1, name="Ada Lovelace"))
        assert not predicate(opportunity(2, name="Grace Hopper"))
        assert not predicate(opportunity(3, name=""))


class TestOwnerNameContains:
    """Tests for owner_name_contains."""

    def test_posting_owner_takes_precedence(self):
        """Test that the posting owner is checked before the candidate owner."""
        predicate = owner_name_contains("jane")
        candidate = opportunity(
            1,
            posting={"id": "p", "owner": {"name": "Jane Roe"}},
            owner={"name": "John Doe"},
        )
        assert predicate(candidate)
        assert not owner_name_contains("john")(candidate)

    def test_falls_back_to_candidate_owner(self):
        """Test the candidate owner when the posting is not expanded."""
        candidate = opportunity(1, posting="p-1", owner={"name": "John Doe"})
        assert owner_name_contains("doe")(candidate)

    def test_no_owner(self):
        """Test that a candidate without any owner does not match."""
        assert not owner_name_contains("jane")(opportunity(1))
