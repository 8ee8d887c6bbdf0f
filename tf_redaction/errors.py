"""Exceptions raised by the filtering engine."""


class FilterError(Exception):
    """Base class for all filtering failures."""

    pass


class InvalidDocumentError(FilterError):
    """Raised when input is not valid JSON or lacks required Terraform fields."""

    pass


class SerializationError(FilterError):
    """Raised when the filtered document cannot be re-encoded as JSON."""

    pass


class PolicyViolationError(FilterError):
    """Raised when filtering is disabled while the platform enforces it."""

    pass
