"""
Unit tests for input validation helpers.
"""

import pytest
from hypothesis import given, strategies as st

from utils.validation import (
    split_csv,
    to_epoch_ms,
    validate_non_empty_str,
    validate_range,
)


class TestValidateNonEmptyStr:
    """Tests for validate_non_empty_str."""

    def test_none_is_allowed(self):
        """Test that None passes through."""
        assert validate_non_empty_str(None, "name") is None

    def test_value_is_stripped(self):
        """Test that surrounding whitespace is removed."""
        assert validate_non_empty_str("  Ada  ", "name") == "Ada"

    def test_whitespace_only_raises_error(self):
        """Test that a blank string is rejected with the field name."""
        with pytest.raises(ValueError) as exc_info:
            validate_non_empty_str("   ", "name")
        assert "Invalid name" in str(exc_info.value)


class TestValidateRange:
    """Tests for validate_range."""

    def test_value_in_range(self):
        """Test that in-range values are returned."""
        assert validate_range(50, "limit", 1, 500) == 50

    def test_below_minimum(self):
        """Test the minimum message."""
        with pytest.raises(ValueError, match="below minimum of 1"):
            validate_range(0, "limit", 1, 500)

    def test_above_maximum(self):
        """Test the maximum message."""
        with pytest.raises(ValueError, match="exceeds maximum of 500"):
            validate_range(501, "limit", 1, 500)


class TestSplitCsv:
    """Tests for split_csv."""

    def test_terms_are_trimmed_and_lowercased(self):
        """Test normalization and dropping of empty terms."""
        assert split_csv("Python, Go ,,Rust") == ["python", "go", "rust"]

    def test_empty_values(self):
        """Test that None and empty strings give no terms."""
        assert split_csv(None) == []
        assert split_csv("") == []
        assert split_csv(" , ") == []

    @given(st.lists(st.text(alphabet=st.characters(blacklist_characters=","), min_size=1)))
    def test_terms_never_contain_commas_or_padding(self, parts):
        """Split terms are stripped, lowercase and non-empty."""
        for term in split_csv(",".join(parts)):
            assert term
            assert "," not in term
            assert term == term.strip()


class TestToEpochMs:
    """Tests for to_epoch_ms."""

    def test_none(self):
        """Test that None stays None."""
        assert to_epoch_ms(None, "created_at_start") is None

    def test_integer_passthrough(self):
        """Test that epoch milliseconds are accepted as-is."""
        assert to_epoch_ms(1704067200000, "created_at_start") == 1704067200000

    def test_digit_string(self):
        """Test that a numeric string is read as epoch milliseconds."""
        assert to_epoch_ms("1704067200000", "created_at_start") == 1704067200000

    def test_iso_date_is_utc_midnight(self):
        """Test that a bare date is midnight UTC."""
        assert to_epoch_ms("2024-01-01", "created_at_start") == 1704067200000

    def test_iso_datetime_with_z(self):
        """Test a UTC datetime with a Z suffix."""
        assert to_epoch_ms("2024-01-01T00:00:01Z", "created_at_start") == 1704067201000

    def test_iso_datetime_with_offset(self):
        """Test that offsets are honoured."""
        assert to_epoch_ms("2024-01-01T01:00:00+01:00", "created_at_start") == 1704067200000

    def test_garbage_raises(self):
        """Test that an unparseable string names the field."""
        with pytest.raises(ValueError, match="archived_at_start"):
            to_epoch_ms("last tuesday", "archived_at_start")

    def test_negative_and_bool_rejected(self):
        """Test that negative numbers and booleans are rejected."""
        with pytest.raises(ValueError):
            to_epoch_ms(-1, "x")
        with pytest.raises(ValueError):
            to_epoch_ms(True, "x")
