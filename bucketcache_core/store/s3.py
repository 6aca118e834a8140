"""BucketCache S3 Store - S3-Compatible Object Store.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional

from bucketcache_core.exceptions import (
    CacheBackendError,
    ObjectNotFoundError,
    StoreError,
    TransportError,
)
from bucketcache_core.store.base import ObjectStore

if TYPE_CHECKING:
    from bucketcache_core.cache.backend import ObjectStoreBackend
    from bucketcache_core.metrics.collector import MetricsRegistry
    from bucketcache_core.protocol.codec import EntryCodec

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}
AUTH_CODES = {
    "AccessDenied",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
}
BUCKET_EXISTS_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


@dataclass
class S3Config:
    """S3 backend configuration.

    Attributes:
        bucket: Bucket holding the cache objects
        key_prefix: Prefix separating this cache from others in the bucket
        cache_name: Name of the owning cache, used as metrics label
        endpoint_url: Custom endpoint for S3-compatible services (MinIO, ...)
        region: Region name
        access_key_id: Static access key
        secret_access_key: Static secret key
        session_token: Optional session token
        force_path_style: Use path-style addressing
        create_bucket: Create the bucket on startup if missing
        connect_timeout: Connection timeout in seconds
        read_timeout: Read timeout in seconds
        max_attempts: Retry attempts per request
        bucket_wait_delay: Seconds between bucket existence checks
        bucket_wait_attempts: Bucket existence checks before giving up
    """

    bucket: str = "cache"
    key_prefix: str = "cache"
    cache_name: str = "default"
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    force_path_style: bool = False
    create_bucket: bool = True
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    max_attempts: int = 3
    bucket_wait_delay: float = 1.0
    bucket_wait_attempts: int = 10


def _error_code(error: Exception) -> Optional[str]:
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return None
    return response.get("Error", {}).get("Code")


class S3ObjectStore(ObjectStore):
    """Object store on top of an S3 bucket.

    Takes a ready boto3 S3 client, so tests can pass a stub. Use
    from_config() to build the client from an S3Config.

    Example:
        store = S3ObjectStore.from_config(S3Config(bucket="cache", endpoint_url="http://minio:9000"))
        store.put("/users/1", b"...")
    """

    def __init__(self, client: Any, bucket: str):
        """Initialize S3 store.

        Args:
            client: boto3 S3 client
            bucket: Bucket name
        """
        super().__init__()
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_config(cls, config: S3Config) -> "S3ObjectStore":
        """Build a store with a boto3 client from configuration.

        Args:
            config: S3 configuration

        Returns:
            S3ObjectStore instance

        Raises:
            TransportError: If the bucket does not become available
        """
        import boto3
        from botocore.config import Config as BotoConfig

        boto_config = BotoConfig(
            retries={"max_attempts": config.max_attempts},
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            s3={"addressing_style": "path" if config.force_path_style else "auto"},
        )

        kwargs = {"config": boto_config}
        if config.endpoint_url:
            kwargs["endpoint_url"] = config.endpoint_url
        if config.region:
            kwargs["region_name"] = config.region
        if config.access_key_id:
            kwargs["aws_access_key_id"] = config.access_key_id
            kwargs["aws_secret_access_key"] = config.secret_access_key
            if config.session_token:
                kwargs["aws_session_token"] = config.session_token

        store = cls(boto3.client("s3", **kwargs), config.bucket)
        if config.create_bucket:
            store.ensure_bucket(
                region=config.region,
                delay=config.bucket_wait_delay,
                max_attempts=config.bucket_wait_attempts,
            )

        logger.info(f"Initialized S3 object store on bucket {config.bucket}")
        return store

    def ensure_bucket(
        self,
        region: Optional[str] = None,
        delay: float = 1.0,
        max_attempts: int = 10,
    ) -> None:
        """Create the bucket if needed and wait until it exists.

        Creation errors are logged and ignored; only the final existence
        check decides success.

        Args:
            region: Region for the location constraint
            delay: Seconds between existence checks
            max_attempts: Existence checks before giving up

        Raises:
            TransportError: If the bucket never becomes available
        """
        from botocore.exceptions import BotoCoreError, ClientError

        create_kwargs = {"Bucket": self.bucket}
        if region and region != "us-east-1":
            create_kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}

        try:
            self._client.create_bucket(**create_kwargs)
            logger.info(f"Created bucket {self.bucket}")
        except ClientError as e:
            if _error_code(e) not in BUCKET_EXISTS_CODES:
                logger.warning(f"Could not create bucket {self.bucket}: {e}")
        except BotoCoreError as e:
            logger.warning(f"Could not create bucket {self.bucket}: {e}")

        try:
            waiter = self._client.get_waiter("bucket_exists")
            waiter.wait(
                Bucket=self.bucket,
                WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Bucket {self.bucket} is not available: {e}")
            raise TransportError(f"Bucket {self.bucket} is not available: {e}") from e

    def _translate(self, action: str, path: Optional[str], error: Exception) -> CacheBackendError:
        """Map a boto error onto the store error taxonomy."""
        from botocore.exceptions import (
            ConnectionError as BotoConnectionError,
            HTTPClientError,
            NoCredentialsError,
            PartialCredentialsError,
        )

        code = _error_code(error)
        if code in NOT_FOUND_CODES and path is not None:
            return ObjectNotFoundError(path)

        logger.error(f"S3 {action} error for {path}: {error}")
        self._stats.record_error(str(error))
        message = f"S3 {action} failed: {error}"

        transport_types = (
            BotoConnectionError,
            HTTPClientError,
            NoCredentialsError,
            PartialCredentialsError,
        )
        label = code or type(error).__name__
        if code in AUTH_CODES or isinstance(error, transport_types):
            return TransportError(message, path=path, code=label)
        return StoreError(message, path=path, code=label)

    def get(self, path: str) -> bytes:
        try:
            self._stats.reads += 1
            response = self._client.get_object(Bucket=self.bucket, Key=path)
            with contextlib.closing(response["Body"]) as body:
                return body.read()
        except Exception as e:
            raise self._translate("get", path, e) from e

    def put(self, path: str, data: bytes) -> None:
        try:
            self._client.put_object(Bucket=self.bucket, Key=path, Body=data)
            self._stats.writes += 1
        except Exception as e:
            raise self._translate("put", path, e) from e

    def delete(self, path: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=path)
            self._stats.deletes += 1
        except Exception as e:
            error = self._translate("delete", path, e)
            if isinstance(error, ObjectNotFoundError):
                return
            raise error from e

    def list_by_prefix(self, prefix: str) -> List[str]:
        paths = []
        try:
            self._stats.lists += 1
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    paths.append(obj["Key"])
        except Exception as e:
            raise self._translate("list", None, e) from e
        return paths

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=path)
            return True
        except Exception as e:
            error = self._translate("head", path, e)
            if isinstance(error, ObjectNotFoundError):
                return False
            raise error from e

    def __repr__(self) -> str:
        return f"S3ObjectStore(bucket={self.bucket})"


def new_s3_backend(
    config: S3Config,
    codec: Optional["EntryCodec"] = None,
    metrics_registry: Optional["MetricsRegistry"] = None,
) -> "ObjectStoreBackend":
    """Create a cache backend persisting entries into an S3 bucket.

    Args:
        config: S3 configuration
        codec: Entry codec holding the known payload types
        metrics_registry: Registry for hit/miss/error counters

    Returns:
        ObjectStoreBackend labeled as kind "s3"
    """
    from bucketcache_core.cache.backend import BackendConfig, ObjectStoreBackend
    from bucketcache_core.metrics.collector import BackendMetrics

    store = S3ObjectStore.from_config(config)
    backend_config = BackendConfig(
        key_prefix=config.key_prefix,
        cache_name=config.cache_name,
        backend_kind="s3",
    )
    metrics = BackendMetrics("s3", config.cache_name, registry=metrics_registry)
    return ObjectStoreBackend(store, backend_config, codec=codec, metrics=metrics)


__all__ = ["S3ObjectStore", "S3Config", "new_s3_backend"]
