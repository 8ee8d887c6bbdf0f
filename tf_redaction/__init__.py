"""
Terraform Redaction - Sensitive data filtering for Terraform state and plans

This module strips passwords, keys and other secrets out of Terraform state
and plan documents before they leave the machine.

Architecture:
    - resolve_policy: Merges built-in, project and platform rules
    - filter_state / filter_plan: Walk the documents, removing values
    - redactor: Recursive algorithm shared by both filters
    - report: Dry-run and verbose renderings of what was removed
    - FilterProfile: Abstract base class for built-in rule tables
    - profiles/: Directory containing the shipped profiles

Example:
    from tf_redaction import resolve_policy, filter_state

    resolved = resolve_policy()
    result = filter_state(b'{"version": 4, "resources": [...]}', resolved.policy)
    # result.filtered_json: state without password/token/key attributes
    # result.omissions: [Omission(path="aws_db_instance.main.password", ...)]
"""

from .base_profile import FilterProfile
from .errors import FilterError, InvalidDocumentError, PolicyViolationError, SerializationError
from .models import FilterResult, FilterSummary, Omission
from .plan_filter import filter_plan
from .platform import PlatformFragment, PlatformPolicyCache
from .policy import FilterPolicy, ResolvedPolicy, resolve_policy
from .state_filter import filter_state

__all__ = [
    "FilterProfile",
    "FilterError",
    "InvalidDocumentError",
    "PolicyViolationError",
    "SerializationError",
    "FilterResult",
    "FilterSummary",
    "Omission",
    "filter_plan",
    "filter_state",
    "PlatformFragment",
    "PlatformPolicyCache",
    "FilterPolicy",
    "ResolvedPolicy",
    "resolve_policy",
]
