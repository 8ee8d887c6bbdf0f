"""
Plan filter - removes sensitive data from ``terraform show -json <plan>``.

Sections handled:
    - resource_changes: change.before / change.after trees
    - planned_values:   root_module tree (with child modules) and outputs
    - output_changes:   dropped by name or sensitivity marker
    - variables:        dropped by name only
    - prior_state:      delegated to the state filter
"""

import logging
from typing import Any, Optional, Union

from .errors import InvalidDocumentError
from .models import (
    ATTRIBUTE,
    NESTED_TOO_DEEPLY,
    FilterResult,
    Omission,
    dump_document,
    load_document,
)
from .patterns import is_preserved
from .policy import FilterPolicy
from .redactor import (
    SENSITIVE_OUTPUT_REASON,
    filter_module_tree,
    filter_outputs,
    name_omission,
    redact_object,
    resource_omission,
    sensitive_keys_from_markers,
)
from .state_filter import filter_state_document

logger = logging.getLogger(__name__)


def _change_address(change: dict[str, Any]) -> str:
    address = change.get("address")
    if isinstance(address, str) and address:
        return address
    parts = [change.get("module_address")]
    if change.get("mode") == "data":
        parts.append("data")
    parts.extend([change.get("type"), change.get("name")])
    return ".".join(str(part) for part in parts if part)


def _filter_resource_change(
    resource_change: dict[str, Any], policy: FilterPolicy, result: FilterResult
) -> Optional[dict[str, Any]]:
    address = _change_address(resource_change)

    omission = resource_omission(
        resource_change.get("mode"), resource_change.get("type"), address, policy
    )
    if omission is not None:
        result.add(omission)
        return None

    filtered = dict(resource_change)
    change = resource_change.get("change")
    if not isinstance(change, dict):
        return filtered

    change = dict(change)
    flagged = sensitive_keys_from_markers(
        change.pop("before_sensitive", None),
        change.pop("after_sensitive", None),
    )
    for side in ("before", "after"):
        value = change.get(side)
        if isinstance(value, dict):
            change[side] = redact_object(value, f"{address}.{side}", policy, flagged, result)

    filtered["change"] = change
    return filtered


def _filter_variables(
    variables: dict[str, Any], policy: FilterPolicy, result: FilterResult
) -> dict[str, Any]:
    filtered = {}
    for name, value in variables.items():
        omission = name_omission(name, f"variables.{name}", policy)
        if omission is not None:
            result.add(omission)
            continue
        filtered[name] = value
    return filtered


def _marks_sensitive(marker: Any) -> bool:
    """True when a sensitivity marker flags the value or any part of it."""
    if marker is True:
        return True
    if isinstance(marker, dict):
        return any(_marks_sensitive(value) for value in marker.values())
    if isinstance(marker, list):
        return any(_marks_sensitive(value) for value in marker)
    return False


def _filter_output_changes(
    output_changes: dict[str, Any], policy: FilterPolicy, result: FilterResult
) -> dict[str, Any]:
    """
    Drop output changes by name, or when either side is marked sensitive.

    Partially sensitive values (markers holding a nested true) drop the
    whole entry; output values are never traversed.
    """
    filtered = {}
    for name, output_change in output_changes.items():
        path = f"output_changes.{name}"
        omission = name_omission(name, path, policy)
        if (
            omission is None
            and not is_preserved(name, policy.preserve_attributes)
            and isinstance(output_change, dict)
            and (
                _marks_sensitive(output_change.get("before_sensitive"))
                or _marks_sensitive(output_change.get("after_sensitive"))
            )
        ):
            omission = Omission(path, SENSITIVE_OUTPUT_REASON, ATTRIBUTE)

        if omission is not None:
            result.add(omission)
            continue
        filtered[name] = output_change
    return filtered


def _filter_planned_values(
    planned_values: dict[str, Any], policy: FilterPolicy, result: FilterResult
) -> dict[str, Any]:
    filtered = dict(planned_values)
    if isinstance(planned_values.get("root_module"), dict):
        filtered["root_module"] = filter_module_tree(planned_values["root_module"], policy, result)
    if isinstance(planned_values.get("outputs"), dict):
        filtered["outputs"] = filter_outputs(
            planned_values["outputs"], "planned_values.outputs", policy, result
        )
    return filtered


def filter_plan_document(document: dict[str, Any], policy: FilterPolicy) -> FilterResult:
    """Filter an already parsed plan document; see filter_plan()."""
    result = FilterResult()
    filtered = dict(document)

    resource_changes = document.get("resource_changes")
    if isinstance(resource_changes, list):
        kept = []
        for resource_change in resource_changes:
            if not isinstance(resource_change, dict):
                continue
            result.summary.total_resources += 1
            filtered_change = _filter_resource_change(resource_change, policy, result)
            if filtered_change is not None:
                kept.append(filtered_change)
        filtered["resource_changes"] = kept

    if isinstance(document.get("planned_values"), dict):
        filtered["planned_values"] = _filter_planned_values(document["planned_values"], policy, result)

    if isinstance(document.get("output_changes"), dict):
        filtered["output_changes"] = _filter_output_changes(document["output_changes"], policy, result)

    if isinstance(document.get("prior_state"), dict):
        prior = filter_state_document(document["prior_state"], policy)
        filtered["prior_state"] = prior.filtered
        result.merge(prior)

    if isinstance(document.get("variables"), dict):
        filtered["variables"] = _filter_variables(document["variables"], policy, result)

    result.filtered = filtered
    return result


def filter_plan(data: Union[bytes, str], policy: FilterPolicy) -> FilterResult:
    """
    Filter Terraform plan JSON.

    Args:
        data: Raw plan JSON (``terraform show -json tfplan``).
        policy: Effective filtering rules.

    Returns:
        FilterResult with the filtered document and its serialized bytes.

    Raises:
        InvalidDocumentError: If the input is not a valid plan document.
        SerializationError: If the filtered document cannot be encoded.
    """
    document = load_document(data, "plan")
    if "resource_changes" not in document:
        if "resources" in document:
            raise InvalidDocumentError(
                "this appears to be Terraform state, not a plan. "
                "Use 'terraform show -json tfplan' to produce plan JSON"
            )
        raise InvalidDocumentError("invalid Terraform plan: missing 'resource_changes' field")
    if document["resource_changes"] is not None and not isinstance(document["resource_changes"], list):
        raise InvalidDocumentError("invalid Terraform plan: 'resource_changes' must be a list")

    try:
        result = filter_plan_document(document, policy)
    except RecursionError as e:
        raise InvalidDocumentError(NESTED_TOO_DEEPLY) from e
    result.filtered_json = dump_document(result.filtered, "plan")
    logger.info(
        f"Filtered plan: {result.summary.omitted_resources} resources and "
        f"{result.summary.omitted_attributes} attributes omitted"
    )
    return result
