"""
Filter Profiles Package

Available profiles:
    - terraform_defaults: Built-in resource types and attribute patterns
      covering common AWS, Azure, Google, Vault, TLS and random providers.

To add a new profile:
    1. Create a new module in this package
    2. Subclass FilterProfile
    3. Implement get_omit_resource_types() and get_omit_attributes()
    4. Pass an instance to resolve_policy(profile=...)
"""

from .terraform_defaults import TerraformDefaultsProfile, DEFAULT_PROFILE

__all__ = ["TerraformDefaultsProfile", "DEFAULT_PROFILE"]
