"""
Policy resolution - merges built-in, project and platform filtering rules.

Resolution order (each step additive unless noted):
    1. Built-in profile tables
    2. Project file omit lists (appended)
    3. Platform omit lists (appended, tracked separately for attribution)
    4. Preserve list from the project file (replaces, never merges)
    5. Booleans from the project file, defaulting to True

The project file is discovered by walking from the start directory up to
the filesystem root looking for .tf-redaction.yaml / .tf-redaction.yml.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .base_profile import FilterProfile
from .errors import PolicyViolationError
from .platform import PlatformFragment
from .profiles import DEFAULT_PROFILE

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".tf-redaction.yaml", ".tf-redaction.yml")
DEFAULTS_SOURCE = "defaults"


@dataclass
class FilterPolicy:
    """Effective filtering rules for a single filter invocation."""

    omit_resource_types: list[str] = field(default_factory=list)  # built-in + project
    omit_attributes: list[str] = field(default_factory=list)  # built-in + project
    preserve_attributes: list[str] = field(default_factory=list)
    honor_sensitive_markers: bool = True
    omit_data_sources: bool = True

    # Project additions, kept for provenance reporting
    project_omit_resource_types: list[str] = field(default_factory=list)
    project_omit_attributes: list[str] = field(default_factory=list)

    # Platform additions, checked first so omissions can be attributed
    platform_omit_resource_types: list[str] = field(default_factory=list)
    platform_omit_attributes: list[str] = field(default_factory=list)
    enforced: bool = False

    @property
    def has_platform_settings(self) -> bool:
        return bool(self.platform_omit_resource_types or self.platform_omit_attributes)

    @property
    def all_omit_resource_types(self) -> list[str]:
        """Every omitted resource type regardless of source."""
        return self.omit_resource_types + self.platform_omit_resource_types

    @property
    def all_omit_attributes(self) -> list[str]:
        """Every omit pattern regardless of source."""
        return self.omit_attributes + self.platform_omit_attributes

    @classmethod
    def from_profile(cls, profile: FilterProfile) -> "FilterPolicy":
        return cls(
            omit_resource_types=list(profile.get_omit_resource_types()),
            omit_attributes=list(profile.get_omit_attributes()),
        )


@dataclass
class ProjectConfig:
    """Filtering section of a project configuration file."""

    path: str
    omit_resource_types: list[str] = field(default_factory=list)
    omit_attributes: list[str] = field(default_factory=list)
    preserve_attributes: list[str] = field(default_factory=list)
    honor_terraform_sensitive: Optional[bool] = None
    omit_data_sources: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "ProjectConfig":
        """
        Build a ProjectConfig from parsed YAML.

        Raises:
            ValueError: If the document does not have the expected shape.
        """
        if data is None:
            return cls(path=path)
        if not isinstance(data, dict):
            raise ValueError("top level must be a mapping")

        section = data.get("filtering") or {}
        if not isinstance(section, dict):
            raise ValueError("'filtering' must be a mapping")

        return cls(
            path=path,
            omit_resource_types=_string_list(section, "omit_resource_types"),
            omit_attributes=_string_list(section, "omit_attributes"),
            preserve_attributes=_string_list(section, "preserve_attributes"),
            honor_terraform_sensitive=_optional_bool(section, "honor_terraform_sensitive"),
            omit_data_sources=_optional_bool(section, "omit_data_sources"),
        )


@dataclass
class ResolvedPolicy:
    """The merged policy plus where its project-level portion came from."""

    policy: FilterPolicy
    source: str = DEFAULTS_SOURCE
    filtering_enabled: bool = True


def _string_list(section: dict, key: str) -> list[str]:
    value = section.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return list(value)


def _optional_bool(section: dict, key: str) -> Optional[bool]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be true or false")
    return value


def find_config_file(start_dir: Union[str, Path, None] = None) -> Optional[Path]:
    """
    Search start_dir and each parent for a project configuration file.

    Args:
        start_dir: Directory to start from. Defaults to the current directory.

    Returns:
        Path of the first file found, or None when the root is reached.
    """
    directory = Path(start_dir or os.getcwd()).resolve()
    while True:
        for filename in CONFIG_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
        parent = directory.parent
        if parent == directory:
            return None
        directory = parent


def load_project_config(path: Union[str, Path]) -> Optional[ProjectConfig]:
    """
    Read and validate a project configuration file.

    Unreadable files are ignored quietly; malformed ones are reported as a
    warning. Either way None is returned and the caller falls back to the
    built-in defaults.
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        logger.debug(f"Could not read filter config {path}: {e}")
        return None

    try:
        data = yaml.safe_load(raw)
        return ProjectConfig.from_dict(data, str(path))
    except (yaml.YAMLError, ValueError) as e:
        logger.warning(f"Ignoring malformed filter config {path}: {e}")
        return None


def resolve_policy(
    platform: Optional[PlatformFragment] = None,
    disable_filtering: bool = False,
    start_dir: Union[str, Path, None] = None,
    profile: FilterProfile = DEFAULT_PROFILE,
) -> ResolvedPolicy:
    """
    Build the effective FilterPolicy for one invocation.

    Args:
        platform: Fragment supplied by the platform's account settings.
        disable_filtering: Caller asked to skip filtering.
        start_dir: Where to start the project file search (default: cwd).
        profile: Built-in tables to start from.

    Returns:
        ResolvedPolicy with the merged policy, its provenance label and
        whether filtering should run at all.

    Raises:
        PolicyViolationError: If filtering is disabled while the platform
            enforces it.
    """
    if platform is not None and platform.enforced and disable_filtering:
        raise PolicyViolationError(
            "Filtering is required by your organization's settings and cannot be disabled"
        )

    policy = FilterPolicy.from_profile(profile)
    source = DEFAULTS_SOURCE

    config_path = find_config_file(start_dir)
    project = load_project_config(config_path) if config_path else None
    if project is not None:
        source = project.path
        logger.info(f"Loaded filter config: {source}")

        policy.project_omit_resource_types = list(project.omit_resource_types)
        policy.project_omit_attributes = list(project.omit_attributes)
        policy.omit_resource_types.extend(project.omit_resource_types)
        policy.omit_attributes.extend(project.omit_attributes)

    if platform is not None:
        policy.platform_omit_resource_types = list(platform.omit_resource_types)
        policy.platform_omit_attributes = list(platform.omit_attributes)
        policy.enforced = platform.enforced
        logger.info("Merged platform filtering settings")

    if project is not None:
        policy.preserve_attributes = list(project.preserve_attributes)
        if project.honor_terraform_sensitive is not None:
            policy.honor_sensitive_markers = project.honor_terraform_sensitive
        if project.omit_data_sources is not None:
            policy.omit_data_sources = project.omit_data_sources

    return ResolvedPolicy(
        policy=policy,
        source=source,
        filtering_enabled=not disable_filtering,
    )


MINIMAL_CONFIG = """version: 1

filtering:
  omit_resource_types: []
  omit_attributes: []
  preserve_attributes: []
  honor_terraform_sensitive: true
  omit_data_sources: true
"""

FULL_CONFIG = """# Terraform redaction configuration
#
# Controls which values are stripped from Terraform state and plan documents
# before they leave this machine. Place this file in your Terraform project
# root or any parent directory.

version: 1

filtering:
  # Additional resource types to omit entirely (merged with built-in defaults).
  # Built-in defaults include aws_secretsmanager_secret_version,
  # aws_ssm_parameter, random_password, random_string, tls_private_key,
  # vault_generic_secret, azurerm_key_vault_secret and
  # google_secret_manager_secret_version.
  omit_resource_types: []
    # - custom_secret_resource

  # Additional attribute patterns to omit (merged with built-in defaults).
  # Patterns are case-insensitive substrings: "password" also removes
  # "master_password" and "DB_PASSWORD".
  omit_attributes: []
    # - internal_api_key

  # Attribute names that are never omitted, even when a pattern or a
  # platform setting matches them. Names are compared case-insensitively.
  preserve_attributes: []
    # - password_policy_name

  # Also remove attributes Terraform itself marks as sensitive.
  honor_terraform_sensitive: true

  # Drop data source lookups (read-only queries, not infrastructure).
  omit_data_sources: true
"""


def generate_config(full: bool = True) -> str:
    """Return the text of a starter configuration file."""
    return FULL_CONFIG if full else MINIMAL_CONFIG


def write_config(directory: Union[str, Path], full: bool = True, force: bool = False) -> Path:
    """
    Write a starter configuration file into directory.

    Raises:
        FileExistsError: If the file already exists and force is False.
    """
    path = Path(directory) / CONFIG_FILENAMES[0]
    if path.exists() and not force:
        raise FileExistsError(f"{path} already exists")
    path.write_text(generate_config(full), encoding="utf-8")
    logger.info(f"Created filter config: {path}")
    return path
