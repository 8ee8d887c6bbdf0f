"""
Omission reports - what the filter removed, for people and for machines.

Three renderings:
    - text:    grouped dry-run report (platform section first, data sources
               collapsed to one line, repeated paths counted)
    - json:    full omission list, summary and policy provenance
    - verbose: first few omissions, logged while a filter pass runs
"""

import json
import logging
import re
import sys
from dataclasses import dataclass
from typing import Any, Callable, TextIO

from .models import RESOURCE, FilterResult, Omission
from .policy import ResolvedPolicy
from .redactor import DATA_SOURCE_REASON

logger = logging.getLogger(__name__)

OUTPUT_FORMAT_TEXT = "text"
OUTPUT_FORMAT_JSON = "json"
OUTPUT_FORMATS = (OUTPUT_FORMAT_TEXT, OUTPUT_FORMAT_JSON)

MAX_PLATFORM_GROUPS = 10
MAX_ATTRIBUTE_GROUPS = 20
MAX_VERBOSE_OMISSIONS = 5

# [0], [12], ["blue"], ["a\"b"]
INDEX_PATTERN = re.compile(r'\[\d+\]|\["(?:[^"\\]|\\.)*"\]')


@dataclass
class GroupedOmission:
    """Attribute omissions sharing one index-normalized path."""

    count: int
    reason: str
    original_path: str  # shown when count == 1


def group_attribute_omissions(omissions: list[Omission]) -> dict[str, GroupedOmission]:
    """Group omissions by path with every index replaced by [*]."""
    grouped: dict[str, GroupedOmission] = {}
    for omission in omissions:
        normalized = INDEX_PATTERN.sub("[*]", omission.path)
        if normalized in grouped:
            grouped[normalized].count += 1
        else:
            grouped[normalized] = GroupedOmission(1, omission.reason, omission.path)
    return grouped


def _grouped_lines(grouped: dict[str, GroupedOmission], max_show: int) -> list[str]:
    ordered = sorted(grouped.items(), key=lambda item: (-item[1].count, item[0]))
    lines = []
    for path, info in ordered[:max_show]:
        if info.count > 1:
            lines.append(f"   - {path} ({info.count} occurrences)")
        else:
            lines.append(f"   - {info.original_path}")
        lines.append(f"      {info.reason}")
    if len(ordered) > max_show:
        lines.append(f"   ... and {len(ordered) - max_show} more attribute groups")
    return lines


def _resource_lines(omissions: list[Omission]) -> list[str]:
    lines = []
    for omission in omissions:
        lines.append(f"   x {omission.path}")
        lines.append(f"      {omission.reason}")
    return lines


def render_text_report(result: FilterResult, resolved: ResolvedPolicy) -> str:
    """Render the human-readable dry-run report."""
    summary = result.summary
    lines = [
        "",
        "Sensitive Data Filter - Dry Run Report",
        "-" * 50,
        "",
        "Summary",
        f"   Resources: {summary.total_resources} total, {summary.omitted_resources} omitted",
        f"   Attributes: {summary.total_attributes} total, {summary.omitted_attributes} omitted",
        f"   Config source: {resolved.source}",
    ]
    if resolved.policy.has_platform_settings:
        lines.append("   Organization settings: active")
    lines.append("")

    if not result.omissions:
        lines.extend(["No sensitive data detected", ""])
        return "\n".join(lines)

    platform_resources = []
    platform_attributes = []
    data_sources = []
    resources = []
    attributes = []
    for omission in result.omissions:
        if omission.from_platform:
            if omission.kind == RESOURCE:
                platform_resources.append(omission)
            else:
                platform_attributes.append(omission)
        elif omission.kind == RESOURCE and omission.reason == DATA_SOURCE_REASON:
            data_sources.append(omission)
        elif omission.kind == RESOURCE:
            resources.append(omission)
        else:
            attributes.append(omission)

    if platform_resources or platform_attributes:
        lines.append("Omitted by Organization Settings")
        lines.append("   These filters are configured in your organization's platform settings.")
        lines.append("")
        lines.extend(_resource_lines(platform_resources))
        if platform_attributes:
            lines.extend(_grouped_lines(group_attribute_omissions(platform_attributes), MAX_PLATFORM_GROUPS))
        lines.append("")

    if data_sources:
        lines.append(
            f"Omitted {len(data_sources)} data source lookups (read-only queries, not infrastructure)"
        )
        lines.append("")

    if resources:
        lines.append("Omitted Resources")
        lines.extend(_resource_lines(resources))
        lines.append("")

    if attributes:
        lines.append("Omitted Attributes")
        lines.extend(_grouped_lines(group_attribute_omissions(attributes), MAX_ATTRIBUTE_GROUPS))
        lines.append("")

    lines.append("Disable filtering to send unfiltered data (if allowed by your organization)")
    lines.append("")
    return "\n".join(lines)


def build_json_report(result: FilterResult, resolved: ResolvedPolicy) -> dict[str, Any]:
    """Build the machine-readable dry-run report."""
    policy = resolved.policy
    config = {
        "source": resolved.source,
        "omit_resource_types": policy.all_omit_resource_types,
        "omit_attribute_pattern_count": len(policy.all_omit_attributes),
    }
    if policy.project_omit_resource_types:
        config["project_omit_resource_types"] = list(policy.project_omit_resource_types)
    if policy.project_omit_attributes:
        config["project_omit_attributes"] = list(policy.project_omit_attributes)
    if policy.preserve_attributes:
        config["preserve_attributes"] = list(policy.preserve_attributes)

    return {
        "omissions": [omission.to_dict() for omission in result.omissions],
        "summary": result.summary.to_dict(),
        "config": config,
    }


def render_json_report(result: FilterResult, resolved: ResolvedPolicy) -> str:
    return json.dumps(build_json_report(result, resolved), indent=2)


def write_dry_run_report(
    result: FilterResult,
    resolved: ResolvedPolicy,
    output_format: str = OUTPUT_FORMAT_TEXT,
    sink: TextIO = sys.stdout,
) -> None:
    """
    Write a dry-run report to sink.

    Raises:
        ValueError: If output_format is not "text" or "json".
    """
    if output_format == OUTPUT_FORMAT_JSON:
        sink.write(render_json_report(result, resolved) + "\n")
    elif output_format == OUTPUT_FORMAT_TEXT:
        sink.write(render_text_report(result, resolved) + "\n")
    else:
        raise ValueError(f"unknown output format: {output_format}")


def verbose_omission_lines(result: FilterResult, limit: int = MAX_VERBOSE_OMISSIONS) -> list[str]:
    """Preview lines for the first few omissions of a pass."""
    if not result.omissions:
        return ["No sensitive data detected"]

    lines = [
        f"Filtering sensitive data: {result.summary.omitted_resources} resources omitted, "
        f"{result.summary.omitted_attributes} attributes omitted"
    ]
    for omission in result.omissions[:limit]:
        lines.append(f"   {omission.kind}: {omission.path}")
    if len(result.omissions) > limit:
        lines.append(f"   ... and {len(result.omissions) - limit} more omissions")
    return lines


def log_verbose_omissions(
    result: FilterResult,
    log: Callable[[str], None] = logger.info,
    limit: int = MAX_VERBOSE_OMISSIONS,
) -> None:
    """Emit the live preview through log (defaults to this module's logger)."""
    for line in verbose_omission_lines(result, limit):
        log(line)
