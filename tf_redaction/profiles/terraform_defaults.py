"""
Terraform Defaults Profile - Built-in filtering rules.

Resource types listed here hold secret material in every instance, so they
are never uploaded. Attribute patterns catch secrets embedded in otherwise
harmless resources (database passwords, access keys, PEM blocks).
"""

from ..base_profile import FilterProfile


class TerraformDefaultsProfile(FilterProfile):
    """
    Default filter profile, always used unless the caller supplies another.

    Covers:
    - Secret stores (Secrets Manager, SSM, Key Vault, Secret Manager, Vault)
    - Generated secrets (random_password, tls_private_key)
    - Certificates carrying private material
    - Password, token, key and credential attributes
    """

    @property
    def name(self) -> str:
        return "terraform_defaults"

    @property
    def description(self) -> str:
        return "Built-in Terraform resource types and attribute patterns"

    def get_omit_resource_types(self) -> list[str]:
        return [
            # AWS secrets
            "aws_secretsmanager_secret_version",
            "aws_ssm_parameter",  # SecureString values

            # Generated secrets
            "random_password",
            "random_string",

            # TLS / certificates
            "tls_private_key",
            "acme_certificate",
            "tls_self_signed_cert",
            "tls_locally_signed_cert",

            # Vault
            "vault_generic_secret",
            "vault_kv_secret",
            "vault_kv_secret_v2",

            # Azure
            "azurerm_key_vault_secret",
            "azurerm_key_vault_key",
            "azurerm_key_vault_certificate",

            # Google
            "google_secret_manager_secret_version",
        ]

    def get_omit_attributes(self) -> list[str]:
        return [
            # Passwords
            "password",
            "master_password",
            "admin_password",
            "root_password",
            "db_password",

            # Secrets and tokens
            "secret",
            "secret_string",
            "secret_binary",
            "api_key",
            "api_secret",
            "token",
            "auth_token",
            "access_token",
            "refresh_token",

            # Keys
            "private_key",
            "private_key_pem",
            "private_key_openssh",
            "ssh_private_key",
            "access_key",
            "secret_key",
            "secret_access_key",

            # Credentials
            "credential",
            "credentials",
            "connection_string",
            "connection_url",

            # Certificates (private parts)
            "certificate_pem",
            "certificate_chain",
            "issuer_pem",

            # Other
            "sensitive_value",
            "encrypted_value",
        ]


DEFAULT_PROFILE = TerraformDefaultsProfile()
