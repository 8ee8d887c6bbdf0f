"""
Tests for platform filtering settings.

Tests cover:
- Parsing the discovery document
- Loading from local files and S3 (moto)
- Cache TTL, per-source keys and invalidation
"""

import json

import boto3
import pytest
from moto import mock_aws

from tf_redaction.platform import (
    PlatformFragment,
    PlatformPolicyCache,
    load_discovery_document,
    load_platform_fragment,
)

DISCOVERY = {
    "version": "1.0",
    "features": {
        "prRiskAssessment": True,
        "sensitiveFiltering": {
            "available": True,
            "additionalOmitTypes": ["org_secret"],
            "additionalOmitAttributes": ["internal_id"],
            "enforced": True,
        },
    },
}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestFromDiscovery:
    """Test suite for PlatformFragment.from_discovery."""

    def test_parses_fragment(self):
        """Should read both lists and the enforced flag."""
        fragment = PlatformFragment.from_discovery(DISCOVERY)

        assert fragment == PlatformFragment(
            omit_resource_types=["org_secret"],
            omit_attributes=["internal_id"],
            enforced=True,
        )

    def test_unavailable(self):
        """Should return None when sensitive filtering is not available."""
        document = {"features": {"sensitiveFiltering": {"available": False, "enforced": True}}}

        assert PlatformFragment.from_discovery(document) is None

    @pytest.mark.parametrize("document", [None, [], {}, {"features": []}, {"features": {}}])
    def test_unexpected_shapes(self, document):
        """Should return None for documents without the section."""
        assert PlatformFragment.from_discovery(document) is None

    def test_ignores_non_string_entries(self):
        """Should drop list entries that are not strings."""
        document = {"features": {"sensitiveFiltering": {
            "available": True,
            "additionalOmitTypes": ["ok", 3, None],
            "additionalOmitAttributes": "not-a-list",
            "enforced": "yes",
        }}}

        fragment = PlatformFragment.from_discovery(document)

        assert fragment.omit_resource_types == ["ok"]
        assert fragment.omit_attributes == []
        assert fragment.enforced is False


class TestLoaders:
    """Loading the discovery document from disk and S3."""

    def test_load_from_file(self, tmp_path):
        """Should load a discovery document from a local path."""
        path = tmp_path / "platform.json"
        path.write_text(json.dumps(DISCOVERY))

        fragment = load_platform_fragment(str(path))

        assert fragment.enforced is True
        assert fragment.omit_attributes == ["internal_id"]

    def test_missing_file(self, tmp_path, caplog):
        """Should warn and return None for a missing file."""
        assert load_platform_fragment(str(tmp_path / "missing.json")) is None
        assert "Could not load platform settings" in caplog.text

    def test_invalid_json(self, tmp_path):
        """Should return None for a file that is not JSON."""
        path = tmp_path / "platform.json"
        path.write_text("{not json")

        assert load_discovery_document(str(path)) is None

    @mock_aws
    def test_load_from_s3(self):
        """Should load a discovery document from an S3 object."""
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="org-settings")
        s3.put_object(Bucket="org-settings", Key="terraform/platform.json", Body=json.dumps(DISCOVERY))

        fragment = load_platform_fragment("s3://org-settings/terraform/platform.json")

        assert fragment.omit_resource_types == ["org_secret"]
        assert fragment.enforced is True

    @mock_aws
    def test_missing_s3_object(self, caplog):
        """Should warn with the AWS error code and return None."""
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="org-settings")

        assert load_platform_fragment("s3://org-settings/missing.json") is None
        assert "NoSuchKey" in caplog.text

    def test_invalid_s3_uri(self):
        """Should return None for an S3 URI without a key."""
        assert load_discovery_document("s3://bucket-only") is None


class TestPlatformPolicyCache:
    """Test suite for PlatformPolicyCache."""

    @pytest.fixture
    def loader(self):
        calls = []

        def _load(source):
            calls.append(source)
            return PlatformFragment(omit_attributes=[source])

        _load.calls = calls
        return _load

    def test_caches_within_ttl(self, loader):
        """Should call the loader once while the entry is fresh."""
        clock = FakeClock()
        cache = PlatformPolicyCache(loader=loader, ttl_seconds=60, clock=clock)

        first = cache.get("a")
        clock.now += 59
        second = cache.get("a")

        assert first is second
        assert loader.calls == ["a"]

    def test_reloads_after_ttl(self, loader):
        """Should reload once the entry is older than the TTL."""
        clock = FakeClock()
        cache = PlatformPolicyCache(loader=loader, ttl_seconds=60, clock=clock)

        cache.get("a")
        clock.now += 60
        cache.get("a")

        assert loader.calls == ["a", "a"]

    def test_new_source_reloads(self, loader):
        """Should not serve an entry cached for a different source."""
        cache = PlatformPolicyCache(loader=loader, clock=FakeClock())

        cache.get("a")
        fragment = cache.get("b")

        assert fragment.omit_attributes == ["b"]
        assert loader.calls == ["a", "b"]

    def test_caches_missing_fragment(self):
        """Should cache a None result too."""
        calls = []

        def _load(source):
            calls.append(source)
            return None

        cache = PlatformPolicyCache(loader=_load, clock=FakeClock())

        assert cache.get("a") is None
        assert cache.get("a") is None
        assert calls == ["a"]

    def test_invalidate(self, loader):
        """Should reload after an explicit invalidation."""
        cache = PlatformPolicyCache(loader=loader, clock=FakeClock())

        cache.get("a")
        cache.invalidate()
        cache.get("a")

        assert loader.calls == ["a", "a"]
