"""Shared fixtures for s3-httpcache tests."""

from typing import Dict, List, Optional

import pytest

from s3_httpcache.cache import S3Cache
from s3_httpcache.config import CacheConfig
from s3_httpcache.storage import ErrorKind, StorageError

BUCKET_URL = "https://s3-us-west-2.amazonaws.com/test-bucket"


class FakeReader:
    """Read handle returned by FakeObjectStore."""

    def __init__(self, store: "FakeObjectStore", location: str, data: bytes):
        self._store = store
        self.location = location
        self._data = data
        self.closed = False

    def read(self) -> bytes:
        if self._store.fail_read is not None:
            raise StorageError(self.location, self._store.fail_read, "connection reset mid-read")
        return self._data

    def close(self) -> None:
        self.closed = True


class FakeWriter:
    """Write handle returned by FakeObjectStore; commits on close."""

    def __init__(self, store: "FakeObjectStore", location: str):
        self._store = store
        self.location = location
        self._buffer = bytearray()
        self.closed = False
        self.aborted = False

    def write(self, data: bytes) -> int:
        if self._store.fail_write is not None:
            raise StorageError(self.location, self._store.fail_write, "write failed")
        self._buffer.extend(data)
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._store.fail_commit is not None:
            raise StorageError(self.location, self._store.fail_commit, "upload failed")
        self._store.objects[self.location] = bytes(self._buffer)

    def abort(self) -> None:
        self.closed = True
        self.aborted = True

    def __enter__(self) -> "FakeWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.abort()
        else:
            self.close()


class FakeObjectStore:
    """In-memory stand-in for ObjectStorageClient with fault injection.

    Set any ``fail_*`` attribute to an ErrorKind to make that step fail.
    """

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.readers: List[FakeReader] = []
        self.writers: List[FakeWriter] = []
        self.fail_open: Optional[ErrorKind] = None
        self.fail_read: Optional[ErrorKind] = None
        self.fail_create: Optional[ErrorKind] = None
        self.fail_write: Optional[ErrorKind] = None
        self.fail_commit: Optional[ErrorKind] = None
        self.fail_delete: Optional[ErrorKind] = None

    def open_for_read(self, location: str) -> FakeReader:
        if self.fail_open is not None:
            raise StorageError(location, self.fail_open, "open failed")
        if location not in self.objects:
            raise StorageError(location, ErrorKind.NOT_FOUND, "no such key")
        reader = FakeReader(self, location, self.objects[location])
        self.readers.append(reader)
        return reader

    def create_for_write(self, location: str) -> FakeWriter:
        if self.fail_create is not None:
            raise StorageError(location, self.fail_create, "create failed")
        writer = FakeWriter(self, location)
        self.writers.append(writer)
        return writer

    def delete(self, location: str) -> None:
        if self.fail_delete is not None:
            raise StorageError(location, self.fail_delete, "delete failed")
        self.objects.pop(location, None)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from real config files and credentials."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "S3_ACCESS_KEY",
        "S3_SECRET_KEY",
        "S3CACHE_BUCKET_URL",
        "S3CACHE_REGION",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    """Return an empty in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def cache(store):
    """Return an S3Cache over the in-memory store."""
    return S3Cache(CacheConfig(bucket_url=BUCKET_URL), client=store)
