"""HTTP response cache stored in S3.

S3Cache implements the get/set/delete contract expected by HTTP caching
layers. Each cache key is hashed into an object name under a bucket URL,
and the object holds the raw cached response bytes.

By default the cache never raises: a failed read is reported as a miss and
failed writes and deletes are dropped. Callers that need to see backend
failures can pass an ``on_error`` observer or set ``raise_errors`` in the
config.
"""

import logging
from typing import Callable, Optional, Protocol, Tuple

from s3_httpcache import location
from s3_httpcache.config import CacheConfig
from s3_httpcache.storage import ErrorKind, ObjectStorageClient, StorageError

logger = logging.getLogger(__name__)

ErrorObserver = Callable[[str, str, StorageError], None]


class StorageBackend(Protocol):
    """The storage primitives S3Cache relies on."""

    def open_for_read(self, location: str): ...

    def create_for_write(self, location: str): ...

    def delete(self, location: str) -> None: ...


class S3Cache:
    """Cache whose entries live as objects in an S3 bucket.

    Attributes:
        config: Bucket URL, credentials and client settings. May be changed
            until the first cache operation builds the storage client.
    """

    def __init__(
        self,
        config: CacheConfig,
        client: Optional[StorageBackend] = None,
        on_error: Optional[ErrorObserver] = None,
    ):
        """Initialize the cache.

        Args:
            config: Cache configuration; ``bucket_url`` is required
            client: Storage client to use instead of one built from ``config``
            on_error: Called with (operation, key, error) for each backend
                failure the cache absorbs

        Raises:
            ValueError: If ``config`` has no bucket URL
        """
        config.validate()
        self.config = config
        self._client = client
        self._on_error = on_error

    @property
    def client(self) -> StorageBackend:
        """Storage client, built from the config on first access."""
        if self._client is None:
            self._client = ObjectStorageClient(
                access_key=self.config.access_key,
                secret_key=self.config.secret_key,
                region=self.config.region,
                service=self.config.service,
                connect_timeout=self.config.connect_timeout,
                read_timeout=self.config.read_timeout,
                max_attempts=self.config.max_attempts or None,
            )
        return self._client

    def location_for(self, key: str) -> str:
        """Get the object URL that stores ``key``."""
        return location.location_for(self.config.bucket_url, key)

    def get(self, key: str) -> Tuple[bytes, bool]:
        """Retrieve a cached response.

        Args:
            key: Cache key

        Returns:
            Tuple of (payload, found). A miss, or any backend failure, yields
            (b"", False); a payload is only returned when it was read in full.
        """
        url = self.location_for(key)
        try:
            reader = self.client.open_for_read(url)
        except StorageError as e:
            self._handle_error("get", key, e)
            return b"", False

        try:
            payload = reader.read()
        except StorageError as e:
            self._handle_error("get", key, e)
            return b"", False
        finally:
            self._release(reader, key)

        logger.debug(f"Cache hit for {key!r} ({len(payload)} bytes)")
        return payload, True

    def set(self, key: str, payload: bytes) -> None:
        """Store a response, replacing any existing entry.

        Failures are dropped unless ``raise_errors`` is set.

        Args:
            key: Cache key
            payload: Response bytes (may be empty)
        """
        url = self.location_for(key)
        try:
            writer = self.client.create_for_write(url)
        except StorageError as e:
            self._handle_error("set", key, e)
            return

        try:
            with writer:
                writer.write(payload)
        except StorageError as e:
            self._handle_error("set", key, e)
            return

        logger.debug(f"Cached {len(payload)} bytes for {key!r}")

    def delete(self, key: str) -> None:
        """Remove a cached response.

        Deleting a key that was never stored is not an error.

        Args:
            key: Cache key
        """
        url = self.location_for(key)
        try:
            self.client.delete(url)
        except StorageError as e:
            self._handle_error("delete", key, e)
            return

        logger.debug(f"Deleted cache entry for {key!r}")

    def _release(self, reader, key: str) -> None:
        try:
            reader.close()
        except Exception as e:
            logger.warning(f"Failed to close read handle for {key!r}: {e}")

    def _handle_error(self, operation: str, key: str, error: StorageError) -> None:
        # A missing object is a plain miss for get and delete. For set it means
        # the write did not land (e.g. NoSuchBucket), so it is reported and
        # raised in strict mode like any other failure.
        if error.kind is ErrorKind.NOT_FOUND and operation != "set":
            logger.debug(f"Cache {operation} for {key!r}: not found")
            return

        logger.warning(f"Cache {operation} failed for {key!r}: {error}")

        if self._on_error is not None:
            try:
                self._on_error(operation, key, error)
            except Exception as observer_error:
                logger.warning(f"Cache error observer raised: {observer_error}")

        if self.config.raise_errors:
            raise error


def new(bucket_url: str) -> S3Cache:
    """Create a cache backed by the bucket at ``bucket_url``.

    The bucket URL is the full URL of the bucket, including the bucket name
    and region (e.g., "https://s3-us-west-2.amazonaws.com/mybucket").

    S3_ACCESS_KEY and S3_SECRET_KEY are read from the environment. To use
    other credentials, change ``cache.config`` before first use or build a
    CacheConfig and S3Cache directly.

    Args:
        bucket_url: Full URL of the bucket

    Returns:
        Ready-to-use S3Cache
    """
    return S3Cache(CacheConfig.from_env(bucket_url))
