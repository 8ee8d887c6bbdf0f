"""
Platform filtering settings - fetched from an account-level document.

Organizations publish a discovery document whose
``features.sensitiveFiltering`` section adds omit rules on top of every
project's own configuration and can make filtering mandatory:

    {
      "features": {
        "sensitiveFiltering": {
          "available": true,
          "additionalOmitTypes": ["custom_secret"],
          "additionalOmitAttributes": ["internal_key"],
          "enforced": true
        }
      }
    }

The document lives either on local disk or in S3. PlatformPolicyCache keeps
the parsed fragment for a bounded time so repeated invocations inside one
process do not re-fetch it.
"""

import json
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 3600


@dataclass(frozen=True)
class PlatformFragment:
    """Omit rules and enforcement supplied by the platform."""

    omit_resource_types: list[str] = field(default_factory=list)
    omit_attributes: list[str] = field(default_factory=list)
    enforced: bool = False

    @classmethod
    def from_discovery(cls, document: Any) -> Optional["PlatformFragment"]:
        """
        Extract the fragment from a discovery document.

        Returns None when the document does not advertise sensitive
        filtering as available or has an unexpected shape.
        """
        if not isinstance(document, dict):
            return None
        features = document.get("features")
        if not isinstance(features, dict):
            return None
        section = features.get("sensitiveFiltering")
        if not isinstance(section, dict) or not section.get("available"):
            return None

        return cls(
            omit_resource_types=_strings(section.get("additionalOmitTypes")),
            omit_attributes=_strings(section.get("additionalOmitAttributes")),
            enforced=section.get("enforced") is True,
        )


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def get_s3_client():
    """Create and return an S3 client using environment credentials."""
    return boto3.client(
        "s3",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name=os.getenv("AWS_REGION", "us-east-1")
    )


def _split_s3_uri(uri: str) -> tuple[str, str]:
    bucket, _, key = uri[len("s3://"):].partition("/")
    if not bucket or not key:
        raise ValueError(f"Invalid S3 URI: {uri}")
    return bucket, key


def load_discovery_document(source: str) -> Optional[dict]:
    """
    Fetch a discovery document from a local path or an s3://bucket/key URI.

    Failures are logged and reported as None; a missing platform document
    means "no platform settings", not an error.
    """
    try:
        if source.startswith("s3://"):
            bucket, key = _split_s3_uri(source)
            response = get_s3_client().get_object(Bucket=bucket, Key=key)
            body = response["Body"].read()
        else:
            with open(source, "rb") as f:
                body = f.read()
        return json.loads(body)

    except NoCredentialsError:
        logger.warning(f"AWS credentials not found, skipping platform settings from {source}")
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.warning(f"AWS Error ({error_code}) fetching platform settings from {source}")
    except (OSError, ValueError) as e:
        logger.warning(f"Could not load platform settings from {source}: {e}")
    return None


def load_platform_fragment(source: str) -> Optional[PlatformFragment]:
    """Fetch and parse the platform fragment published at source."""
    document = load_discovery_document(source)
    if document is None:
        return None
    return PlatformFragment.from_discovery(document)


class PlatformPolicyCache:
    """
    Time-bounded cache of the platform fragment.

    Owned by the caller and passed to whoever needs the fragment. Holds the
    most recent source only, guarded by a single lock.

    Example:
        cache = PlatformPolicyCache(ttl_seconds=600)
        fragment = cache.get("s3://org-settings/terraform.json")
        ...
        cache.invalidate()  # e.g. after switching settings URL
    """

    def __init__(
        self,
        loader: Callable[[str], Optional[PlatformFragment]] = load_platform_fragment,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._source: Optional[str] = None
        self._fragment: Optional[PlatformFragment] = None
        self._fetched_at: Optional[float] = None

    def get(self, source: str) -> Optional[PlatformFragment]:
        """
        Return the fragment for source, loading it if missing or stale.

        A failed load (None) is cached as well so that an unreachable
        settings store is not hit on every call.
        """
        with self._lock:
            if (
                self._fetched_at is not None
                and self._source == source
                and self._clock() - self._fetched_at < self._ttl
            ):
                logger.debug(f"Platform settings cache hit for {source}")
                return self._fragment

            fragment = self._loader(source)
            self._source = source
            self._fragment = fragment
            self._fetched_at = self._clock()
            return fragment

    def invalidate(self) -> None:
        """Drop the cached fragment."""
        with self._lock:
            self._source = None
            self._fragment = None
            self._fetched_at = None
