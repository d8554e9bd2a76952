"""Object locations for cache entries.

Maps arbitrary cache keys to object names that are safe to use in any
bucket, and splits full object URLs into the pieces boto3 expects.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

_REGION_HOST = re.compile(r"^s3[.-]([a-z0-9-]+)\.amazonaws\.com$")


@dataclass(frozen=True)
class ObjectLocation:
    """A single object in an S3-compatible store.

    Attributes:
        endpoint_url: Scheme and host of the store, or None for the default
            AWS endpoint
        bucket: Bucket name
        key: Object key within the bucket
    """

    endpoint_url: Optional[str]
    bucket: str
    key: str


def cache_key_to_object_key(key: str) -> str:
    """Compute the object name for a cache key.

    Args:
        key: Logical cache key (any characters)

    Returns:
        32-character lowercase MD5 hex digest of the UTF-8 encoded key.
        Lone surrogates (from surrogateescape-decoded bytes) are encoded
        as-is, so every str has a digest.
    """
    return hashlib.md5(key.encode("utf-8", "surrogatepass")).hexdigest()


def location_for(bucket_url: str, key: str) -> str:
    """Build the full object URL for a cache key.

    Args:
        bucket_url: Base URL of the bucket, with or without a trailing slash
        key: Logical cache key

    Returns:
        ``bucket_url`` joined to the key's digest by exactly one ``/``
    """
    object_key = cache_key_to_object_key(key)
    if bucket_url.endswith("/"):
        return bucket_url + object_key
    return bucket_url + "/" + object_key


def parse_location(location: str) -> ObjectLocation:
    """Parse a full object URL.

    Accepts path-style URLs (``https://host/bucket/key``) and
    ``s3://bucket/key`` URLs.

    Args:
        location: Object URL

    Returns:
        ObjectLocation for the URL

    Raises:
        ValueError: If the URL has an unsupported scheme or lacks a bucket or key
    """
    parts = urlsplit(location)

    if parts.scheme == "s3":
        bucket = parts.netloc
        key = parts.path.lstrip("/")
        endpoint_url = None
    elif parts.scheme in ("http", "https") and parts.netloc:
        bucket, _, key = parts.path.lstrip("/").partition("/")
        endpoint_url = f"{parts.scheme}://{parts.netloc}"
    else:
        raise ValueError(f"Invalid object URL format: {location}")

    if not bucket or not key:
        raise ValueError(f"Object URL must name a bucket and a key: {location}")

    return ObjectLocation(endpoint_url=endpoint_url, bucket=bucket, key=key)


def infer_region(bucket_url: str) -> Optional[str]:
    """Extract the AWS region from a regional S3 bucket URL.

    ``https://s3-us-west-2.amazonaws.com/mybucket`` yields ``us-west-2``.

    Args:
        bucket_url: Bucket URL

    Returns:
        Region name, or None if the host does not encode one
    """
    host = urlsplit(bucket_url).hostname or ""
    match = _REGION_HOST.match(host)
    if not match or match.group(1) == "external-1":
        return None
    return match.group(1)
