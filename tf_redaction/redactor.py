"""
Redactor - the recursive filtering algorithm shared by state and plan filters.

Terraform attribute schemas are defined by providers, so documents are
walked as plain JSON trees (dict / list / scalar). Per object key the first
matching rule wins:

    1. preserved name       -> kept, descendants still filtered
    2. platform pattern     -> omitted, attributed to the platform
    3. project pattern      -> omitted
    4. Terraform-sensitive  -> omitted (when honoring markers)
    5. anything else        -> kept, dicts and lists recursed

Resources go through their own decision first (data source, platform type,
project type) via resource_omission().

Omitted values are deleted outright, never masked. Input trees are not
modified; filtered copies are returned.
"""

from typing import Any, Iterable, Optional

from .models import ATTRIBUTE, RESOURCE, FilterResult, Omission
from .patterns import attribute_matching_pattern, is_preserved, resource_type_matches
from .policy import FilterPolicy

DATA_SOURCE_REASON = "data source lookup omitted"
TERRAFORM_SENSITIVE_REASON = "marked as sensitive by Terraform"
SENSITIVE_OUTPUT_REASON = "output marked as sensitive"


def _pattern_reason(pattern: str) -> str:
    return f"matches pattern '{pattern}'"


def _type_reason(resource_type: str) -> str:
    return f"resource type '{resource_type}' is in omit list"


def resource_omission(
    mode: Any, resource_type: Any, address: str, policy: FilterPolicy
) -> Optional[Omission]:
    """
    Decide whether a whole resource is dropped.

    Returns:
        The Omission to record, or None if the resource is kept.
    """
    if policy.omit_data_sources and mode == "data":
        return Omission(address, DATA_SOURCE_REASON, RESOURCE)

    if not isinstance(resource_type, str):
        return None
    if resource_type_matches(resource_type, policy.platform_omit_resource_types):
        return Omission(address, _type_reason(resource_type), RESOURCE, from_platform=True)
    if resource_type_matches(resource_type, policy.omit_resource_types):
        return Omission(address, _type_reason(resource_type), RESOURCE)
    return None


def name_omission(name: str, path: str, policy: FilterPolicy) -> Optional[Omission]:
    """Pattern decision for a single name (outputs, variables, attributes)."""
    if is_preserved(name, policy.preserve_attributes):
        return None

    pattern, found = attribute_matching_pattern(name, policy.platform_omit_attributes)
    if found:
        return Omission(path, _pattern_reason(pattern), ATTRIBUTE, from_platform=True)

    pattern, found = attribute_matching_pattern(name, policy.omit_attributes)
    if found:
        return Omission(path, _pattern_reason(pattern), ATTRIBUTE)
    return None


def output_omission(name: str, output: Any, path: str, policy: FilterPolicy) -> Optional[Omission]:
    """Outputs are checked by their own name, then by Terraform's sensitive flag."""
    if is_preserved(name, policy.preserve_attributes):
        return None
    omission = name_omission(name, path, policy)
    if omission is not None:
        return omission
    if isinstance(output, dict) and output.get("sensitive") is True:
        return Omission(path, SENSITIVE_OUTPUT_REASON, ATTRIBUTE)
    return None


def redact_value(
    value: Any,
    path: str,
    policy: FilterPolicy,
    flagged: Iterable[str],
    result: FilterResult,
) -> Any:
    """
    Filter any JSON value.

    Args:
        value: Node to filter.
        path: Address of the node, extended with ".key" and "[i]".
        policy: Effective rules.
        flagged: Names Terraform marked sensitive in this context.
        result: Receives omissions and counts.

    Returns:
        A filtered copy of value.
    """
    if isinstance(value, dict):
        return redact_object(value, path, policy, flagged, result)
    if isinstance(value, list):
        return [
            redact_value(item, f"{path}[{index}]", policy, flagged, result)
            for index, item in enumerate(value)
        ]
    return value


def redact_object(
    obj: dict[str, Any],
    path: str,
    policy: FilterPolicy,
    flagged: Iterable[str],
    result: FilterResult,
) -> dict[str, Any]:
    """Filter the keys of one JSON object; see redact_value()."""
    flagged = flagged if isinstance(flagged, (set, frozenset)) else set(flagged)
    filtered = {}

    for key, value in obj.items():
        key_path = f"{path}.{key}" if path else key
        result.summary.total_attributes += 1

        if is_preserved(key, policy.preserve_attributes):
            filtered[key] = redact_value(value, key_path, policy, flagged, result)
            continue

        omission = name_omission(key, key_path, policy)
        if omission is None and policy.honor_sensitive_markers and key in flagged:
            omission = Omission(key_path, TERRAFORM_SENSITIVE_REASON, ATTRIBUTE)

        if omission is not None:
            result.add(omission)
            continue

        filtered[key] = redact_value(value, key_path, policy, flagged, result)

    return filtered


def sensitive_keys_from_paths(sensitive_attributes: Any) -> set[str]:
    """
    Flatten a state instance's ``sensitive_attributes`` into top-level names.

    Each entry is a path such as
    ``[{"type": "get_attr", "value": "password"}]``; only the leading
    get_attr step names the top-level attribute.
    """
    names = set()
    if not isinstance(sensitive_attributes, list):
        return names
    for entry in sensitive_attributes:
        if not isinstance(entry, list) or not entry:
            continue
        step = entry[0]
        if isinstance(step, dict) and step.get("type") == "get_attr":
            value = step.get("value")
            if isinstance(value, str):
                names.add(value)
    return names


def sensitive_keys_from_markers(*markers: Any) -> set[str]:
    """Union of names marked ``true`` in plan-style sensitivity maps."""
    names = set()
    for marker in markers:
        if isinstance(marker, dict):
            names.update(key for key, value in marker.items() if value is True)
    return names


def module_resource_address(resource: dict[str, Any], module_address: Optional[str] = None) -> str:
    address = resource.get("address")
    if isinstance(address, str) and address:
        return address
    parts = [module_address] if module_address else []
    if resource.get("mode") == "data":
        parts.append("data")
    parts.extend([str(resource.get("type", "")), str(resource.get("name", ""))])
    return ".".join(parts)


def filter_module_tree(
    module: dict[str, Any], policy: FilterPolicy, result: FilterResult
) -> dict[str, Any]:
    """
    Filter a ``root_module`` tree as found in plan ``planned_values`` and in
    ``terraform show -json`` state output, descending into child modules.
    """
    filtered = dict(module)
    module_address = module.get("address")

    resources = module.get("resources")
    if isinstance(resources, list):
        kept = []
        for resource in resources:
            if not isinstance(resource, dict):
                continue
            result.summary.total_resources += 1
            address = module_resource_address(resource, module_address)

            omission = resource_omission(resource.get("mode"), resource.get("type"), address, policy)
            if omission is not None:
                result.add(omission)
                continue

            resource = dict(resource)
            flagged = sensitive_keys_from_markers(resource.pop("sensitive_values", None))
            values = resource.get("values")
            if isinstance(values, dict):
                resource["values"] = redact_object(values, address, policy, flagged, result)
            kept.append(resource)
        filtered["resources"] = kept

    children = module.get("child_modules")
    if isinstance(children, list):
        filtered["child_modules"] = [
            filter_module_tree(child, policy, result)
            for child in children
            if isinstance(child, dict)
        ]

    return filtered


def filter_outputs(
    outputs: dict[str, Any], prefix: str, policy: FilterPolicy, result: FilterResult
) -> dict[str, Any]:
    """Drop outputs by own name or sensitive flag; values are not traversed."""
    filtered = {}
    for name, output in outputs.items():
        omission = output_omission(name, output, f"{prefix}.{name}", policy)
        if omission is not None:
            result.add(omission)
            continue
        filtered[name] = output
    return filtered
