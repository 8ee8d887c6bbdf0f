"""
Base Filter Profile - Abstract base class for built-in filtering tables.

A profile supplies the starting point of every policy resolution: the
resource types that are dropped wholesale and the attribute-name patterns
that are dropped wherever they appear. Project configuration and platform
settings are layered on top of it by the policy resolver.

Each profile defines:
    - name: Unique identifier for the profile
    - description: Human-readable description
    - get_omit_resource_types(): Resource types to omit entirely
    - get_omit_attributes(): Attribute-name substring patterns to omit
"""

from abc import ABC, abstractmethod


class FilterProfile(ABC):
    """
    Abstract base class for filter profiles.

    Subclass this to ship a different set of built-in rules without
    modifying the resolver or the filters.

    Example:
        class VaultOnlyProfile(FilterProfile):
            @property
            def name(self) -> str:
                return "vault_only"

            @property
            def description(self) -> str:
                return "Drop Vault secrets and nothing else"

            def get_omit_resource_types(self) -> list[str]:
                return ["vault_generic_secret", "vault_kv_secret_v2"]

            def get_omit_attributes(self) -> list[str]:
                return ["password", "token"]
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this profile (e.g., 'terraform_defaults')."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this profile covers."""
        pass

    @abstractmethod
    def get_omit_resource_types(self) -> list[str]:
        """
        Return resource types whose every instance is dropped.

        Matching is exact and case-sensitive.
        """
        pass

    @abstractmethod
    def get_omit_attributes(self) -> list[str]:
        """
        Return attribute-name patterns, in priority order.

        Matching is case-insensitive substring containment. The first
        pattern that matches is the one reported in audits, so put the
        more descriptive patterns first.
        """
        pass

    def __repr__(self) -> str:
        return f"<FilterProfile: {self.name}>"
