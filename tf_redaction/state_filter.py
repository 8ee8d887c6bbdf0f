"""
State filter - removes sensitive data from Terraform state documents.

Handles the raw state file layout (``resources`` -> ``instances`` ->
``attributes`` plus ``outputs``) and, when present, the
``terraform show -json`` layout under ``values.root_module``.
"""

import json
import logging
from typing import Any, Optional, Union

from .errors import InvalidDocumentError
from .models import NESTED_TOO_DEEPLY, FilterResult, dump_document, load_document
from .policy import FilterPolicy
from .redactor import (
    filter_module_tree,
    filter_outputs,
    redact_object,
    resource_omission,
    sensitive_keys_from_paths,
)

logger = logging.getLogger(__name__)

REQUIRED_STATE_FIELDS = ("version", "resources")


def resource_address(resource: dict[str, Any]) -> str:
    """Canonical address: ``module.type.name`` or ``type.name``."""
    parts = [resource.get("module"), resource.get("type"), resource.get("name")]
    return ".".join(str(part) for part in parts if part)


def instance_address(address: str, instance: dict[str, Any], position: int, count: int) -> str:
    """
    Qualify a resource address with its instance key.

    count/for_each keys are used when present (``res[0]``, ``res["blue"]``);
    otherwise the position is appended only if there are several instances.
    """
    index_key = instance.get("index_key")
    if index_key is not None:
        return f"{address}[{json.dumps(index_key)}]"
    if count > 1:
        return f"{address}[{position}]"
    return address


def _filter_instance(
    instance: dict[str, Any], address: str, policy: FilterPolicy, result: FilterResult
) -> dict[str, Any]:
    filtered = dict(instance)
    flagged = sensitive_keys_from_paths(instance.get("sensitive_attributes"))

    attributes = instance.get("attributes")
    if isinstance(attributes, dict):
        filtered["attributes"] = redact_object(attributes, address, policy, flagged, result)

    # Markers describe values that are no longer there.
    filtered["sensitive_attributes"] = []
    return filtered


def _filter_resource(
    resource: dict[str, Any], policy: FilterPolicy, result: FilterResult
) -> Optional[dict[str, Any]]:
    address = resource_address(resource)

    omission = resource_omission(resource.get("mode"), resource.get("type"), address, policy)
    if omission is not None:
        result.add(omission)
        return None

    filtered = dict(resource)
    instances = resource.get("instances")
    if isinstance(instances, list):
        filtered["instances"] = [
            _filter_instance(
                instance,
                instance_address(address, instance, position, len(instances)),
                policy,
                result,
            )
            for position, instance in enumerate(instances)
            if isinstance(instance, dict)
        ]
    return filtered


def filter_state_document(document: dict[str, Any], policy: FilterPolicy) -> FilterResult:
    """
    Filter an already parsed state document.

    No required-field validation happens here, which lets the plan filter
    hand over its embedded ``prior_state`` as-is.

    Returns:
        FilterResult with ``filtered`` set; ``filtered_json`` is left empty.
    """
    result = FilterResult()
    filtered = dict(document)

    resources = document.get("resources")
    if isinstance(resources, list):
        kept = []
        for resource in resources:
            if not isinstance(resource, dict):
                continue
            result.summary.total_resources += 1
            filtered_resource = _filter_resource(resource, policy, result)
            if filtered_resource is not None:
                kept.append(filtered_resource)
        filtered["resources"] = kept

    outputs = document.get("outputs")
    if isinstance(outputs, dict):
        filtered["outputs"] = filter_outputs(outputs, "outputs", policy, result)

    values = document.get("values")
    if isinstance(values, dict):
        filtered_values = dict(values)
        if isinstance(values.get("root_module"), dict):
            filtered_values["root_module"] = filter_module_tree(values["root_module"], policy, result)
        if isinstance(values.get("outputs"), dict):
            filtered_values["outputs"] = filter_outputs(values["outputs"], "values.outputs", policy, result)
        filtered["values"] = filtered_values

    result.filtered = filtered
    return result


def filter_state(data: Union[bytes, str], policy: FilterPolicy) -> FilterResult:
    """
    Filter Terraform state JSON.

    Args:
        data: Raw state JSON.
        policy: Effective filtering rules.

    Returns:
        FilterResult with the filtered document and its serialized bytes.

    Raises:
        InvalidDocumentError: If the input is not a valid state document.
        SerializationError: If the filtered document cannot be encoded.

    Example:
        resolved = resolve_policy()
        result = filter_state(Path("terraform.tfstate").read_bytes(), resolved.policy)
        result.summary.omitted_attributes  # e.g. 3
    """
    document = load_document(data, "state")
    for name in REQUIRED_STATE_FIELDS:
        if name not in document:
            raise InvalidDocumentError(f"invalid Terraform state: missing '{name}' field")
    if document["resources"] is not None and not isinstance(document["resources"], list):
        raise InvalidDocumentError("invalid Terraform state: 'resources' must be a list")

    try:
        result = filter_state_document(document, policy)
    except RecursionError as e:
        raise InvalidDocumentError(NESTED_TOO_DEEPLY) from e
    result.filtered_json = dump_document(result.filtered, "state")
    logger.info(
        f"Filtered state: {result.summary.omitted_resources} resources and "
        f"{result.summary.omitted_attributes} attributes omitted"
    )
    return result
