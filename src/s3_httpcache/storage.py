"""S3-compatible object storage client.

Wraps boto3 behind the three primitives the cache needs: open an object for
reading, create an object for writing, and delete an object. Every failure,
whatever its cause in botocore, surfaces as a StorageError carrying a coarse
ErrorKind.
"""

import io
import logging
from enum import Enum
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from s3_httpcache.location import ObjectLocation, parse_location

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NotFound", "404"}
_AUTH_FAILURE_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
    "403",
}


class ErrorKind(str, Enum):
    """Coarse cause of a storage failure."""

    NOT_FOUND = "not_found"
    UNREACHABLE = "unreachable"
    AUTH_FAILURE = "auth_failure"
    INVALID_LOCATION = "invalid_location"
    UNKNOWN = "unknown"


class StorageError(Exception):
    """Raised when an object storage operation fails.

    Attributes:
        location: Object URL the operation targeted
        kind: Classified cause of the failure
    """

    def __init__(self, location: str, kind: ErrorKind, message: str):
        super().__init__(message)
        self.location = location
        self.kind = kind

    @classmethod
    def from_exception(cls, location: str, exc: Exception) -> "StorageError":
        """Wrap a botocore (or transport) exception.

        Args:
            location: Object URL the operation targeted
            exc: Original exception

        Returns:
            StorageError with the classified kind; callers chain ``exc``
        """
        kind = classify_error(exc)
        return cls(location, kind, f"{kind.value}: {location}: {exc}")


def classify_error(exc: Exception) -> ErrorKind:
    """Map a botocore exception to an ErrorKind.

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        The matching ErrorKind, UNKNOWN when nothing matches
    """
    if isinstance(exc, StorageError):
        return exc.kind

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        status = str(exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", ""))
        if code in _NOT_FOUND_CODES or status == "404":
            return ErrorKind.NOT_FOUND
        if code in _AUTH_FAILURE_CODES or status in ("401", "403"):
            return ErrorKind.AUTH_FAILURE
        return ErrorKind.UNKNOWN

    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return ErrorKind.AUTH_FAILURE

    if isinstance(exc, (BotoConnectionError, HTTPClientError, OSError)):
        return ErrorKind.UNREACHABLE

    return ErrorKind.UNKNOWN


class ObjectReader:
    """Read handle for one object.

    Must be closed after use; supports ``with`` and ``contextlib.closing``.
    """

    def __init__(self, location: str, body: Any):
        self.location = location
        self._body = body

    def read(self) -> bytes:
        """Read the object to completion.

        Raises:
            StorageError: If the stream fails or ends early
        """
        try:
            return self._body.read()
        except (BotoCoreError, ClientError, OSError) as e:
            raise StorageError.from_exception(self.location, e) from e

    def close(self) -> None:
        self._body.close()

    def __enter__(self) -> "ObjectReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ObjectWriter:
    """Write handle for one object.

    Bytes are buffered in memory and uploaded in a single ``put_object``
    when the writer is closed. ``abort`` discards the buffer without
    uploading. Used as a context manager, the writer commits on a clean exit
    and aborts when the block raises.
    """

    def __init__(self, location: str, target: ObjectLocation, s3: Any):
        self.location = location
        self._target = target
        self._s3 = s3
        self._buffer = io.BytesIO()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("I/O operation on closed writer")
        return self._buffer.write(data)

    def close(self) -> None:
        """Upload the buffered bytes and release the buffer.

        Raises:
            StorageError: If the upload fails
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._s3.put_object(
                Bucket=self._target.bucket,
                Key=self._target.key,
                Body=self._buffer.getvalue(),
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError.from_exception(self.location, e) from e
        finally:
            self._buffer.close()

    def abort(self) -> None:
        """Discard the buffered bytes without uploading."""
        if self._closed:
            return
        self._closed = True
        self._buffer.close()

    def __enter__(self) -> "ObjectWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()


class ObjectStorageClient:
    """boto3-backed client for S3-compatible stores.

    One boto3 client is created per distinct endpoint, on first use.

    Attributes:
        access_key: Access key ID, or None to use boto3's credential chain
        secret_key: Secret access key, or None to use boto3's credential chain
        region: Region used for request signing
        service: boto3 service name
    """

    def __init__(
        self,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: str = "us-east-1",
        service: str = "s3",
        connect_timeout: float = 60,
        read_timeout: float = 60,
        max_attempts: Optional[int] = None,
    ):
        """Initialize the storage client.

        Args:
            access_key: Access key ID (empty string treated as unset)
            secret_key: Secret access key (empty string treated as unset)
            region: Region used for request signing
            service: boto3 service name
            connect_timeout: Socket connect timeout in seconds
            read_timeout: Socket read timeout in seconds
            max_attempts: botocore retry attempts, None for botocore's default
        """
        self.access_key = access_key or None
        self.secret_key = secret_key or None
        self.region = region
        self.service = service

        retries = {"max_attempts": max_attempts} if max_attempts is not None else None
        self._boto_config = BotoConfig(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries=retries,
        )
        self._clients: Dict[Optional[str], Any] = {}

    def _client_for(self, endpoint_url: Optional[str]) -> Any:
        client = self._clients.get(endpoint_url)
        if client is None:
            logger.debug(f"Creating {self.service} client for {endpoint_url or 'default endpoint'}")
            client = boto3.client(
                self.service,
                endpoint_url=endpoint_url,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name=self.region,
                config=self._boto_config,
            )
            self._clients[endpoint_url] = client
        return client

    def _resolve(self, location: str):
        try:
            target = parse_location(location)
            return target, self._client_for(target.endpoint_url)
        except ValueError as e:
            raise StorageError(location, ErrorKind.INVALID_LOCATION, str(e)) from e
        except BotoCoreError as e:
            raise StorageError.from_exception(location, e) from e

    def open_for_read(self, location: str) -> ObjectReader:
        """Open an object for reading.

        Args:
            location: Full object URL

        Returns:
            ObjectReader over the object's content

        Raises:
            StorageError: If the object cannot be opened
        """
        target, s3 = self._resolve(location)
        try:
            response = s3.get_object(Bucket=target.bucket, Key=target.key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError.from_exception(location, e) from e
        return ObjectReader(location, response["Body"])

    def create_for_write(self, location: str) -> ObjectWriter:
        """Create (or replace) an object for writing.

        Args:
            location: Full object URL

        Returns:
            ObjectWriter that uploads on close

        Raises:
            StorageError: If the location is invalid or no client can be built
        """
        target, s3 = self._resolve(location)
        return ObjectWriter(location, target, s3)

    def delete(self, location: str) -> None:
        """Delete an object.

        Args:
            location: Full object URL

        Raises:
            StorageError: If the delete request fails
        """
        target, s3 = self._resolve(location)
        try:
            s3.delete_object(Bucket=target.bucket, Key=target.key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError.from_exception(location, e) from e
