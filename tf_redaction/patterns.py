"""
Name matching primitives used by every filtering decision.

Attribute patterns are plain substrings compared case-insensitively; no
regular expressions are involved.
"""

from typing import Iterable


def attribute_matching_pattern(name: str, patterns: Iterable[str]) -> tuple[str, bool]:
    """
    Find the first pattern contained in an attribute name.

    Args:
        name: Attribute (or output/variable) name to test.
        patterns: Substring patterns, tested in order.

    Returns:
        A tuple of (matched_pattern, found). ``matched_pattern`` is the first
        pattern in list order that matched, or "" when nothing did.

    Example:
        attribute_matching_pattern("Master_Password", ["token", "password"])
        # ("password", True)
    """
    lowered = name.lower()
    for pattern in patterns:
        if pattern.lower() in lowered:
            return pattern, True
    return "", False


def attribute_contains_pattern(name: str, patterns: Iterable[str]) -> bool:
    """Return True if any pattern is a case-insensitive substring of name."""
    _, found = attribute_matching_pattern(name, patterns)
    return found


def resource_type_matches(resource_type: str, types: Iterable[str]) -> bool:
    """Exact, case-sensitive membership test for resource type identifiers."""
    return resource_type in set(types)


def is_preserved(name: str, preserve: Iterable[str]) -> bool:
    """Return True if name equals a preserve entry, ignoring case."""
    lowered = name.lower()
    return any(lowered == entry.lower() for entry in preserve)
