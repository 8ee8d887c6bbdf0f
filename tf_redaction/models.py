"""
Data model shared by the state and plan filters.

Every filter pass produces one FilterResult: the filtered document, the
ordered list of Omission records describing what was removed and why, and a
FilterSummary of counts.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Union

from .errors import InvalidDocumentError, SerializationError

RESOURCE = "resource"
ATTRIBUTE = "attribute"

NESTED_TOO_DEEPLY = "document nested too deeply"


@dataclass(frozen=True)
class Omission:
    """A single redaction decision."""

    path: str  # e.g. "module.db.aws_db_instance.main.password"
    reason: str  # e.g. "matches pattern 'password'"
    kind: str  # RESOURCE or ATTRIBUTE
    from_platform: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = {"path": self.path, "reason": self.reason, "type": self.kind}
        if self.from_platform:
            data["from_platform"] = True
        return data


@dataclass
class FilterSummary:
    """Counts accumulated during one filter pass."""

    total_resources: int = 0
    omitted_resources: int = 0
    total_attributes: int = 0
    omitted_attributes: int = 0

    def merge(self, other: "FilterSummary") -> None:
        self.total_resources += other.total_resources
        self.omitted_resources += other.omitted_resources
        self.total_attributes += other.total_attributes
        self.omitted_attributes += other.omitted_attributes

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class FilterResult:
    """Filtered document plus the audit trail of what was removed."""

    filtered: dict[str, Any] = field(default_factory=dict)
    filtered_json: bytes = b""
    omissions: list[Omission] = field(default_factory=list)
    summary: FilterSummary = field(default_factory=FilterSummary)

    def add(self, omission: Omission) -> None:
        """Record an omission and bump the matching summary counter."""
        self.omissions.append(omission)
        if omission.kind == RESOURCE:
            self.summary.omitted_resources += 1
        else:
            self.summary.omitted_attributes += 1

    def merge(self, other: "FilterResult") -> None:
        """Fold another pass's omissions and counts into this one."""
        self.omissions.extend(other.omissions)
        self.summary.merge(other.summary)


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON constant: {name}")


def load_document(data: Union[bytes, str], kind: str) -> dict[str, Any]:
    """
    Parse a Terraform JSON document.

    Raises:
        InvalidDocumentError: If data is empty, not JSON, nested too deeply,
            or not an object.
    """
    if not data:
        raise InvalidDocumentError(f"empty {kind} data provided")
    try:
        document = json.loads(data, parse_constant=_reject_constant)
    except RecursionError as e:
        raise InvalidDocumentError(NESTED_TOO_DEEPLY) from e
    except ValueError as e:
        raise InvalidDocumentError(f"invalid JSON: {e}") from e
    if not isinstance(document, dict):
        raise InvalidDocumentError(f"invalid Terraform {kind}: top level must be a JSON object")
    return document


def dump_document(document: dict[str, Any], kind: str) -> bytes:
    """
    Serialize a filtered document.

    Raises:
        SerializationError: If the document cannot be encoded.
    """
    try:
        return json.dumps(document, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f"failed to serialize filtered {kind}: {e}") from e
