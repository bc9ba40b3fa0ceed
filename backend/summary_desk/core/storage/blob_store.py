"""Blob store abstraction for uploaded PDFs and generated summaries.

Provides one interface over an S3-compatible bucket (MinIO, R2, AWS) and a
local filesystem directory used in development and tests.
"""
from __future__ import annotations

import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

import boto3
from botocore.client import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from summary_desk.config import settings
from summary_desk.exceptions import (
    ConfigurationError,
    InvalidFilenameError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)
from summary_desk.utils.logging import logger
from summary_desk.utils.retry import retry_policy

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}
TRANSIENT_CODES = {
    "500", "502", "503", "504",
    "InternalError", "ServiceUnavailable", "SlowDown",
    "RequestTimeout", "Throttling", "ThrottlingException",
}
TRANSIENT_BOTO_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


@dataclass(frozen=True)
class BlobObject:
    """One entry returned by a prefix listing."""
    key: str
    size: int
    last_modified: datetime


class BlobStore(ABC):
    """Abstract base class for blob store backends.

    Idempotent reads (exists, get_bytes, list_objects, check_connection) are
    retried on TransientStoreError. put_bytes and delete are not.
    """

    def __init__(self, *, retry_attempts: Optional[int] = None, retry_delay: Optional[float] = None,
                 retry_jitter: Optional[float] = None, sleep=time.sleep):
        self._retrying = retry_policy(
            attempts=settings.store_retry_attempts if retry_attempts is None else retry_attempts,
            delay=settings.store_retry_delay_seconds if retry_delay is None else retry_delay,
            jitter=settings.store_retry_jitter_seconds if retry_jitter is None else retry_jitter,
            sleep=sleep,
        )

    def exists(self, key: str) -> bool:
        """Check if an object exists."""
        return self._retrying(self._exists)(key)

    def get_bytes(self, key: str) -> bytes:
        """
        Get object bytes.

        Raises:
            NotFoundError: If key doesn't exist
        """
        return self._retrying(self._get_bytes)(key)

    def list_objects(self, prefix: str, max_keys: Optional[int] = None) -> List[BlobObject]:
        """
        List objects whose key starts with prefix.

        Args:
            prefix: Key prefix (e.g., "uploads/")
            max_keys: Upper bound on returned entries (default settings.list_max_keys)

        Returns:
            BlobObject entries ordered by key
        """
        limit = settings.list_max_keys if max_keys is None else max_keys
        return self._retrying(self._list_objects)(prefix, limit)

    def check_connection(self) -> bool:
        """Verify the bucket is reachable. Returns False instead of raising."""
        try:
            self._retrying(self._check_connection)()
            return True
        except (StoreError, NotFoundError) as e:
            logger.error("Blob store connection check failed", extra={"error": str(e)})
            return False

    @abstractmethod
    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes at key. Not retried."""
        pass

    @abstractmethod
    def presign_upload(self, key: str, content_type: str, expiry_seconds: Optional[int] = None) -> str:
        """Time-limited URL the client PUTs raw bytes to."""
        pass

    @abstractmethod
    def signed_read_url(self, key: str, expiry_seconds: Optional[int] = None) -> str:
        """
        Time-limited read URL for key.

        Built locally from credentials; must not perform network I/O.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete key. Not retried."""
        pass

    @abstractmethod
    def get_storage_type(self) -> str:
        """Return storage backend type ('s3' or 'local')."""
        pass

    @abstractmethod
    def _exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def _get_bytes(self, key: str) -> bytes:
        pass

    @abstractmethod
    def _list_objects(self, prefix: str, max_keys: int) -> List[BlobObject]:
        pass

    @abstractmethod
    def _check_connection(self) -> None:
        pass


def _translate_client_error(e: ClientError, operation: str, key: Optional[str]) -> Exception:
    code = str(e.response.get("Error", {}).get("Code", ""))
    if code in NOT_FOUND_CODES:
        return NotFoundError(f"Object not found: {key}", operation=operation, key=key)
    if code in TRANSIENT_CODES:
        return TransientStoreError(f"Blob store unavailable ({code})", operation=operation, key=key)
    return StoreError(f"Blob store error ({code or 'unknown'})", operation=operation, key=key)


class S3BlobStore(BlobStore):
    """S3-compatible storage backend (boto3)."""

    def __init__(self, *, access_key_id: str, secret_access_key: str, bucket: str, endpoint_url: str = "",
                 region: str = "us-east-1", force_path_style: bool = True, presign_expiry: int = 3600,
                 client=None, **retry_kwargs):
        super().__init__(**retry_kwargs)
        self.bucket = bucket
        self.presign_expiry = presign_expiry
        # signature v4 + path-style is what MinIO expects
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if force_path_style else "auto"},
                connect_timeout=settings.s3_connect_timeout_seconds,
                read_timeout=settings.s3_read_timeout_seconds,
                retries={"max_attempts": 0},
            ),
        )

    def _call(self, operation: str, key: Optional[str], fn, **params):
        try:
            return fn(Bucket=self.bucket, **params)
        except ClientError as e:
            raise _translate_client_error(e, operation, key) from e
        except TRANSIENT_BOTO_ERRORS as e:
            logger.warning("Transient blob store failure", extra={"operation": operation, "key": key, "error": str(e)})
            raise TransientStoreError(f"Blob store unreachable: {e}", operation=operation, key=key) from e
        except BotoCoreError as e:
            logger.exception("Blob store call failed", extra={"operation": operation, "key": key})
            raise StoreError(f"Blob store error: {e}", operation=operation, key=key) from e

    def _exists(self, key: str) -> bool:
        try:
            self._call("exists", key, self.client.head_object, Key=key)
            return True
        except NotFoundError:
            return False

    def _get_bytes(self, key: str) -> bytes:
        resp = self._call("get", key, self.client.get_object, Key=key)
        data = resp["Body"].read()
        logger.info("Retrieved object", extra={"bucket": self.bucket, "key": key})
        return data

    def _list_objects(self, prefix: str, max_keys: int) -> List[BlobObject]:
        objects: List[BlobObject] = []
        token = None
        truncated = False
        while len(objects) < max_keys:
            params = {"Prefix": prefix, "MaxKeys": min(1000, max_keys - len(objects))}
            if token:
                params["ContinuationToken"] = token
            resp = self._call("list", prefix, self.client.list_objects_v2, **params)
            for item in resp.get("Contents", []):
                objects.append(BlobObject(
                    key=item["Key"],
                    size=item.get("Size", 0),
                    last_modified=item["LastModified"],
                ))
            truncated = bool(resp.get("IsTruncated"))
            if not truncated:
                break
            token = resp.get("NextContinuationToken")
        if truncated:
            logger.warning("Listing truncated at max_keys",
                           extra={"bucket": self.bucket, "prefix": prefix, "max_keys": max_keys})
        logger.info("Listed objects", extra={"bucket": self.bucket, "prefix": prefix, "count": len(objects)})
        return objects

    def _check_connection(self) -> None:
        self._call("head_bucket", None, self.client.head_bucket)

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        self._call("put", key, self.client.put_object, Key=key, Body=data, ContentType=content_type)
        logger.info("Stored object", extra={"bucket": self.bucket, "key": key})

    def presign_upload(self, key: str, content_type: str, expiry_seconds: Optional[int] = None) -> str:
        try:
            return self.client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=expiry_seconds or self.presign_expiry,
            )
        except (ClientError, BotoCoreError) as e:
            logger.exception("Failed to generate upload URL", extra={"bucket": self.bucket, "key": key})
            raise StoreError(f"Failed to sign upload URL: {e}", operation="presign_upload", key=key) from e

    def signed_read_url(self, key: str, expiry_seconds: Optional[int] = None) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key, "ResponseContentDisposition": "inline"},
                ExpiresIn=expiry_seconds or self.presign_expiry,
            )
        except (ClientError, BotoCoreError) as e:
            logger.exception("Failed to generate presigned URL", extra={"bucket": self.bucket, "key": key})
            raise StoreError(f"Failed to sign read URL: {e}", operation="signed_read_url", key=key) from e

    def delete(self, key: str) -> None:
        self._call("delete", key, self.client.delete_object, Key=key)
        logger.info("Deleted object", extra={"bucket": self.bucket, "key": key})

    def get_storage_type(self) -> str:
        return "s3"


class LocalFilesystemBlobStore(BlobStore):
    """Local filesystem storage backend.

    Signed URLs are file:// URIs with an expiry query parameter; nothing
    enforces the expiry.
    """

    def __init__(self, base_path: str | Path = "storage", presign_expiry: int = 3600, **retry_kwargs):
        super().__init__(**retry_kwargs)
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.presign_expiry = presign_expiry

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path.resolve()):
            raise InvalidFilenameError(f"Key escapes storage root: {key}", operation="resolve", key=key)
        return path

    def _exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def _get_bytes(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(f"Object not found: {key}", operation="get", key=key)
        return path.read_bytes()

    def _list_objects(self, prefix: str, max_keys: int) -> List[BlobObject]:
        objects: List[BlobObject] = []
        for path in sorted(self.base_path.rglob("*")):
            if not path.is_file():
                continue
            key = path.relative_to(self.base_path).as_posix()
            if not key.startswith(prefix):
                continue
            if len(objects) >= max_keys:
                logger.warning("Listing truncated at max_keys", extra={"prefix": prefix, "max_keys": max_keys})
                break
            st = path.stat()
            objects.append(BlobObject(
                key=key,
                size=st.st_size,
                last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            ))
        return objects

    def _check_connection(self) -> None:
        if not self.base_path.is_dir():
            raise StoreError(f"Storage directory missing: {self.base_path}", operation="head_bucket")

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored object in local storage", extra={"key": key})

    def _signed(self, key: str, method: str, expiry_seconds: Optional[int]) -> str:
        expires = int(time.time()) + (expiry_seconds or self.presign_expiry)
        query = urlencode({"method": method, "expires": expires})
        return f"{self._path(key).absolute().as_uri()}?{query}"

    def presign_upload(self, key: str, content_type: str, expiry_seconds: Optional[int] = None) -> str:
        return self._signed(key, "PUT", expiry_seconds)

    def signed_read_url(self, key: str, expiry_seconds: Optional[int] = None) -> str:
        return self._signed(key, "GET", expiry_seconds)

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
            logger.info("Deleted object from local storage", extra={"key": key})
        except FileNotFoundError:
            logger.warning("Attempted to delete non-existent object", extra={"key": key})

    def get_storage_type(self) -> str:
        return "local"


_STORE_CACHE: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Get or create the configured BlobStore singleton.

    Raises:
        ConfigurationError: If the S3 backend is selected but credentials or bucket are missing
    """
    global _STORE_CACHE
    if _STORE_CACHE is None:
        if settings.storage_backend == "local":
            _STORE_CACHE = LocalFilesystemBlobStore(
                base_path=settings.local_storage_root,
                presign_expiry=settings.presign_expiry_seconds,
            )
            logger.info("Using local filesystem blob store", extra={"path": str(settings.local_storage_root)})
        else:
            if not settings.s3_configured:
                raise ConfigurationError(
                    "Object storage not configured (S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY, S3_BUCKET)",
                    operation="get_blob_store",
                )
            _STORE_CACHE = S3BlobStore(
                access_key_id=settings.s3_access_key_id,
                secret_access_key=settings.s3_secret_access_key,
                bucket=settings.s3_bucket,
                endpoint_url=settings.s3_endpoint_url,
                region=settings.s3_region,
                force_path_style=settings.s3_force_path_style,
                presign_expiry=settings.presign_expiry_seconds,
            )
            logger.info("Using S3 blob store", extra={"bucket": settings.s3_bucket, "endpoint": settings.s3_endpoint_url})
    return _STORE_CACHE


def set_blob_store(store: Optional[BlobStore]) -> None:
    """Replace the cached store (tests, CLI overrides)."""
    global _STORE_CACHE
    _STORE_CACHE = store


__all__ = [
    "BlobObject",
    "BlobStore",
    "S3BlobStore",
    "LocalFilesystemBlobStore",
    "get_blob_store",
    "set_blob_store",
]
