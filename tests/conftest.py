"""
Pytest configuration and shared fixtures for Terraform Redaction tests.

Provides sample state and plan documents, an isolated working directory so
project config discovery never picks up a real file, and mock AWS
credentials for the S3-backed platform settings tests (moto).
"""

import json
import os
import sys

import pytest

# Add parent directory to path for server imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture(autouse=True)
def set_aws_credentials():
    """
    Set mock AWS credentials for moto.
    This runs automatically before each test.
    """
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_REGION"] = "us-east-1"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
    yield


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test from an empty directory with no platform settings."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.delenv("TF_REDACTION_PLATFORM_POLICY", raising=False)
    return workdir


@pytest.fixture
def default_policy():
    """Policy built from the built-in tables only."""
    from tf_redaction.policy import FilterPolicy
    from tf_redaction.profiles import DEFAULT_PROFILE

    return FilterPolicy.from_profile(DEFAULT_PROFILE)


@pytest.fixture
def sample_state():
    """A state document with a database, a data source, a secret and outputs."""
    return {
        "version": 4,
        "terraform_version": "1.6.0",
        "serial": 12,
        "lineage": "3f6c1a52-0b0e-4a39-9c0b-1a2b3c4d5e6f",
        "outputs": {
            "db_endpoint": {"value": "db.internal:5432", "type": "string"},
            "db_password": {"value": "hunter2", "type": "string", "sensitive": True},
            "admin_url": {"value": "https://admin", "type": "string", "sensitive": True},
        },
        "resources": [
            {
                "mode": "managed",
                "type": "aws_db_instance",
                "name": "main",
                "provider": "provider[\"registry.terraform.io/hashicorp/aws\"]",
                "instances": [
                    {
                        "schema_version": 1,
                        "attributes": {
                            "identifier": "main-db",
                            "password": "s3cr3t",
                            "engine": "postgres",
                            "tags": {"Name": "main", "owner_token": "abc"},
                        },
                        "sensitive_attributes": [],
                    }
                ],
            },
            {
                "mode": "data",
                "type": "aws_ami",
                "name": "ubuntu",
                "provider": "provider[\"registry.terraform.io/hashicorp/aws\"]",
                "instances": [{"schema_version": 0, "attributes": {"id": "ami-123"}}],
            },
            {
                "mode": "managed",
                "type": "random_password",
                "name": "db",
                "provider": "provider[\"registry.terraform.io/hashicorp/random\"]",
                "instances": [{"schema_version": 3, "attributes": {"result": "xyz"}}],
            },
        ],
    }


@pytest.fixture
def sample_plan():
    """A plan with one managed change, one secret change, planned values and variables."""
    return {
        "format_version": "1.2",
        "terraform_version": "1.6.0",
        "variables": {
            "region": {"value": "us-east-1"},
            "db_password": {"value": "hunter2"},
        },
        "planned_values": {
            "root_module": {
                "resources": [
                    {
                        "address": "aws_instance.web",
                        "mode": "managed",
                        "type": "aws_instance",
                        "name": "web",
                        "values": {"ami": "ami-123", "user_data": "#!/bin/sh"},
                        "sensitive_values": {"user_data": True},
                    }
                ],
                "child_modules": [
                    {
                        "address": "module.db",
                        "resources": [
                            {
                                "address": "module.db.aws_db_instance.this",
                                "mode": "managed",
                                "type": "aws_db_instance",
                                "name": "this",
                                "values": {"engine": "postgres", "password": "s3cr3t"},
                                "sensitive_values": {},
                            }
                        ],
                    }
                ],
            }
        },
        "resource_changes": [
            {
                "address": "aws_instance.web",
                "mode": "managed",
                "type": "aws_instance",
                "name": "web",
                "change": {
                    "actions": ["create"],
                    "before": None,
                    "after": {"ami": "ami-123", "user_data": "#!/bin/sh"},
                    "after_unknown": {"id": True},
                    "before_sensitive": False,
                    "after_sensitive": {"user_data": True},
                },
            },
            {
                "address": "random_password.db",
                "mode": "managed",
                "type": "random_password",
                "name": "db",
                "change": {
                    "actions": ["create"],
                    "before": None,
                    "after": {"length": 32, "special": True},
                    "after_sensitive": {"result": True},
                },
            },
        ],
    }


@pytest.fixture
def write_json(tmp_path):
    """Write a document to a JSON file and return its path."""
    def _write(name, document):
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path
    return _write
