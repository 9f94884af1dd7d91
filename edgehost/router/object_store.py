"""
Static object lookup by key.

Backends:
- FilesystemObjectStore: files in a local directory (development, tests)
- S3ObjectStore: an S3-compatible bucket through boto3 (S3, R2, MinIO)

Both return a StoredObject for a hit and None for a miss. Any other
backend failure propagates.
"""

import hashlib
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit

import boto3
from starlette.concurrency import run_in_threadpool

from edgehost.errors import ConfigError

logger = logging.getLogger("edgehost.router.objects")

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# S3 get_object response fields copied onto the HTTP response
S3_HTTP_METADATA = {
    "ContentLanguage": "content-language",
    "ContentDisposition": "content-disposition",
    "ContentEncoding": "content-encoding",
    "CacheControl": "cache-control",
    "Expires": "expires",
}


@dataclass(frozen=True)
class StoredObject:
    key: str
    body: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    etag: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def http_headers(self) -> dict[str, str]:
        """Headers for serving this object: stored metadata, content type and etag."""
        headers = dict(self.metadata)
        headers["content-type"] = self.content_type
        if self.etag:
            headers["etag"] = self.etag
        return headers


class ObjectStore(Protocol):
    async def get(self, key: str) -> StoredObject | None: ...


def quote_etag(value: str) -> str:
    value = value.strip()
    if value.startswith('"') or value.startswith('W/"'):
        return value
    return f'"{value}"'


class FilesystemObjectStore:
    """Objects are files directly under a root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path_for(self, key: str) -> Path | None:
        if not key or key in {".", ".."} or "/" in key or "\\" in key:
            return None
        path = self.root / key
        return path if path.is_file() else None

    def _read(self, key: str) -> StoredObject | None:
        path = self._path_for(key)
        if path is None:
            return None
        body = path.read_bytes()
        content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        return StoredObject(
            key=key,
            body=body,
            content_type=content_type,
            etag=quote_etag(hashlib.md5(body).hexdigest()),
        )

    async def get(self, key: str) -> StoredObject | None:
        return await run_in_threadpool(self._read, key)

    def __repr__(self) -> str:
        return f"FilesystemObjectStore({str(self.root)!r})"


class S3ObjectStore:
    """Objects are keys in an S3-compatible bucket."""

    def __init__(self, bucket: str, endpoint_url: str | None = None, client=None):
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.client = client or boto3.client("s3", endpoint_url=endpoint_url)

    def _read(self, key: str) -> StoredObject | None:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except self.client.exceptions.NoSuchKey:
            return None

        metadata = {
            header: str(response[name]) for name, header in S3_HTTP_METADATA.items() if response.get(name)
        }
        return StoredObject(
            key=key,
            body=response["Body"].read(),
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            etag=quote_etag(response.get("ETag", "")) if response.get("ETag") else "",
            metadata=metadata,
        )

    async def get(self, key: str) -> StoredObject | None:
        if not key:
            return None
        return await run_in_threadpool(self._read, key)

    def __repr__(self) -> str:
        return f"S3ObjectStore({self.bucket!r})"


class EmptyObjectStore:
    """Used when no object store is configured; every lookup misses."""

    async def get(self, key: str) -> StoredObject | None:
        return None

    def __repr__(self) -> str:
        return "EmptyObjectStore()"


def open_object_store(location: str | None, endpoint_url: str | None = None) -> ObjectStore:
    """
    Open the object store named by a location string.

    - "" or None         -> EmptyObjectStore
    - "s3://bucket"      -> S3ObjectStore (endpoint_url for S3-compatible services)
    - "file:///dir", dir -> FilesystemObjectStore

    Raises:
        ConfigError: If the location uses an unknown scheme or names no bucket
    """
    if not location:
        return EmptyObjectStore()

    parts = urlsplit(location)
    if parts.scheme == "s3":
        if not parts.netloc:
            raise ConfigError(f"Object store location {location!r} has no bucket name")
        return S3ObjectStore(parts.netloc, endpoint_url=endpoint_url)
    if parts.scheme == "file":
        return FilesystemObjectStore(parts.path)
    if parts.scheme and len(parts.scheme) > 1:
        raise ConfigError(f"Unsupported object store scheme: {parts.scheme}")
    return FilesystemObjectStore(location)
