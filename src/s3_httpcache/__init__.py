"""s3-httpcache - HTTP response cache storage on Amazon S3.

This package provides:
- S3Cache, a get/set/delete cache whose entries are S3 objects
- A boto3-backed object storage client
- The s3cache CLI for inspecting and managing entries
"""

__version__ = "0.1.0"

from s3_httpcache.cache import S3Cache, new
from s3_httpcache.config import CacheConfig
from s3_httpcache.storage import ErrorKind, ObjectStorageClient, StorageError

__all__ = [
    "CacheConfig",
    "ErrorKind",
    "ObjectStorageClient",
    "S3Cache",
    "StorageError",
    "new",
]
