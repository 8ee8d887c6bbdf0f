"""
Tests for name matching primitives.

Tests cover:
- Case-insensitive substring matching for attribute names
- First-match-in-list-order tie-break
- Exact resource type matching
- Preserve list matching
"""

import pytest

from tf_redaction.patterns import (
    attribute_contains_pattern,
    attribute_matching_pattern,
    is_preserved,
    resource_type_matches,
)


class TestAttributeMatchingPattern:
    """Test suite for attribute_matching_pattern."""

    def test_substring_match(self):
        """Should match a pattern contained anywhere in the name."""
        assert attribute_matching_pattern("master_password", ["password"]) == ("password", True)

    def test_case_insensitive(self):
        """Should ignore case on both the name and the pattern."""
        assert attribute_matching_pattern("DB_PASSWORD", ["password"]) == ("password", True)
        assert attribute_matching_pattern("db_password", ["PassWord"]) == ("PassWord", True)

    def test_first_pattern_wins(self):
        """Should return the first matching pattern in list order."""
        patterns = ["token", "secret", "secret_key"]
        assert attribute_matching_pattern("aws_secret_key", patterns) == ("secret", True)

    def test_no_match(self):
        """Should report not found with an empty pattern."""
        assert attribute_matching_pattern("instance_type", ["password", "token"]) == ("", False)

    def test_empty_patterns(self):
        """Should never match against an empty list."""
        assert attribute_matching_pattern("password", []) == ("", False)

    def test_no_regex_semantics(self):
        """Should treat regex metacharacters literally."""
        assert attribute_matching_pattern("password", ["pass.*"]) == ("", False)
        assert attribute_matching_pattern("pass.*word", ["pass.*"]) == ("pass.*", True)

    @pytest.mark.parametrize("name,patterns,expected", [
        ("api_key", ["key", "api"], "key"),
        ("api_key", ["api", "key"], "api"),
        ("ssh_private_key", ["public", "private_key"], "private_key"),
    ])
    def test_list_order_is_tie_break(self, name, patterns, expected):
        """Should report whichever matching pattern comes first."""
        assert attribute_matching_pattern(name, patterns) == (expected, True)

    def test_contains_pattern(self):
        """Should mirror the found flag of attribute_matching_pattern."""
        assert attribute_contains_pattern("refresh_token", ["token"]) is True
        assert attribute_contains_pattern("region", ["token"]) is False


class TestResourceTypeMatches:
    """Test suite for resource_type_matches."""

    def test_exact_match(self):
        """Should match identical type names."""
        assert resource_type_matches("random_password", ["random_password"]) is True

    def test_case_sensitive(self):
        """Should not match when case differs."""
        assert resource_type_matches("Random_Password", ["random_password"]) is False

    def test_no_substring_match(self):
        """Should not match partial type names."""
        assert resource_type_matches("random_password_v2", ["random_password"]) is False
        assert resource_type_matches("aws_ssm", ["aws_ssm_parameter"]) is False


class TestIsPreserved:
    """Test suite for is_preserved."""

    def test_exact_name_ignoring_case(self):
        """Should preserve names equal to an entry, ignoring case."""
        assert is_preserved("public_ip", ["public_ip"]) is True
        assert is_preserved("Public_IP", ["public_ip"]) is True

    def test_not_substring(self):
        """Should not preserve names that merely contain an entry."""
        assert is_preserved("public_ip_address", ["public_ip"]) is False

    def test_empty_list(self):
        """Should preserve nothing by default."""
        assert is_preserved("password", []) is False
