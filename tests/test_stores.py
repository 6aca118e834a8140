"""Tests for object store implementations.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import io
import threading

import boto3
import fakeredis
import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.response import StreamingBody
from botocore.stub import Stubber
from redis import exceptions as redis_exceptions

from bucketcache_core.cache.entry import Entry, EntryMeta
from bucketcache_core.cache.namespace import storage_path
from bucketcache_core.exceptions import ObjectNotFoundError, StoreError, TransportError
from bucketcache_core.metrics.collector import MetricsRegistry
from bucketcache_core.protocol.codec import EntryCodec
from bucketcache_core.store.file import FileObjectStore, FileStoreConfig
from bucketcache_core.store.memory import MemoryObjectStore
from bucketcache_core.store.redis import RedisConfig, RedisObjectStore
from bucketcache_core.store.s3 import S3Config, S3ObjectStore, new_s3_backend

BUCKET = "bucket"


def raising(error):
    def method(*args, **kwargs):
        raise error
    return method


def streaming_body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


@pytest.fixture
def redis_client():
    """Create fake Redis client for testing."""
    return fakeredis.FakeRedis()


@pytest.fixture
def s3_client():
    """Create a real S3 client that never leaves the process."""
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def s3_stub(s3_client):
    """Activate a stubber on the S3 client."""
    with Stubber(s3_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


class TestMemoryObjectStore:
    """Tests for MemoryObjectStore."""

    def test_basic_operations(self):
        """Test put/get/delete."""
        store = MemoryObjectStore()

        store.put("/p/a", b"1")
        assert store.get("/p/a") == b"1"
        assert store.exists("/p/a")

        store.delete("/p/a")
        with pytest.raises(ObjectNotFoundError):
            store.get("/p/a")

    def test_delete_missing(self):
        """Test deleting a missing object succeeds."""
        MemoryObjectStore().delete("/nothing")

    def test_list_by_prefix(self):
        """Test prefix listing."""
        store = MemoryObjectStore()
        for path in ("/p/a", "/p/b", "/p2/c", "/q/d"):
            store.put(path, b"")

        assert store.list_by_prefix("/p/") == ["/p/a", "/p/b"]
        assert store.list_by_prefix("/p") == ["/p/a", "/p/b", "/p2/c"]

    def test_stats(self):
        """Test operation statistics."""
        store = MemoryObjectStore()
        store.put("/a", b"x")
        store.get("/a")
        store.delete("/a")

        stats = store.get_stats()
        assert (stats.writes, stats.reads, stats.deletes) == (1, 1, 1)

    def test_concurrent_readers_and_writers(self):
        """Test size and exists while other threads write."""
        store = MemoryObjectStore()
        seen = []

        def writer(n):
            for i in range(200):
                store.put(f"/w{n}/{i}", b"")

        def reader():
            for i in range(200):
                seen.append((store.size(), store.exists(f"/w0/{i}")))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        threads.append(threading.Thread(target=reader))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.size() == 800
        assert len(seen) == 200


class TestFileObjectStore:
    """Tests for FileObjectStore."""

    def make_store(self, tmp_path) -> FileObjectStore:
        return FileObjectStore(FileStoreConfig(base_path=str(tmp_path), shard_count=8))

    def test_basic_operations(self, tmp_path):
        """Test put/get/overwrite/delete."""
        store = self.make_store(tmp_path)

        store.put("/p/a", b"first")
        store.put("/p/a", b"second")
        assert store.get("/p/a") == b"second"

        store.delete("/p/a")
        assert not store.exists("/p/a")
        with pytest.raises(ObjectNotFoundError):
            store.get("/p/a")

    def test_delete_missing(self, tmp_path):
        """Test deleting a missing object succeeds."""
        self.make_store(tmp_path).delete("/p/none")

    def test_list_returns_original_paths(self, tmp_path):
        """Test listing decodes file names back into paths."""
        store = self.make_store(tmp_path)
        paths = ["/p/a%2Fb", "/p/plain", "/p/file.tmp", "/other/x"]
        for path in paths:
            store.put(path, b"data")

        assert store.list_by_prefix("/p/") == ["/p/a%2Fb", "/p/file.tmp", "/p/plain"]

    def test_no_temp_files_left(self, tmp_path):
        """Test atomic writes leave no temp files behind."""
        store = self.make_store(tmp_path)
        store.put("/p/a", b"data")

        leftovers = [f for f in tmp_path.rglob("*") if "#tmp" in f.name]
        assert leftovers == []

    def test_persistence(self, tmp_path):
        """Test objects survive a new store instance."""
        self.make_store(tmp_path).put("/p/a", b"kept")

        assert self.make_store(tmp_path).get("/p/a") == b"kept"

    def test_invalid_shard_count(self, tmp_path):
        """Test shard count bounds."""
        with pytest.raises(ValueError):
            FileObjectStore(FileStoreConfig(base_path=str(tmp_path), shard_count=0))

    def test_long_paths(self, tmp_path):
        """Test paths longer than the file name limit."""
        store = self.make_store(tmp_path)
        path = storage_path("p", "/".join(["seg"] * 100))

        store.put(path, b"deep")

        assert store.get(path) == b"deep"
        assert store.exists(path)
        assert store.list_by_prefix("/p/") == [path]
        assert all(len(f.name) <= 64 for f in tmp_path.rglob("*"))

    def test_data_with_newlines(self, tmp_path):
        """Test payload bytes after the path header are kept intact."""
        store = self.make_store(tmp_path)
        data = b"\n\nline\n\x00\xff\n"

        store.put("/p/a", data)

        assert store.get("/p/a") == data

    def test_failed_write_raises_store_error(self, tmp_path):
        """Test write failures surface as StoreError and clean up."""
        store = self.make_store(tmp_path)
        store._get_file("/p/a").mkdir()

        with pytest.raises(StoreError) as exc_info:
            store.put("/p/a", b"data")

        assert exc_info.value.path == "/p/a"
        assert exc_info.value.code
        assert [f for f in tmp_path.rglob("*") if "#tmp" in f.name] == []
        assert store.get_stats().errors == 1


class TestRedisObjectStore:
    """Tests for RedisObjectStore."""

    def test_basic_operations(self, redis_client):
        """Test put/get/delete under the key prefix."""
        store = RedisObjectStore(RedisConfig(prefix="objects:"), client=redis_client)

        store.put("/p/a", b"1")
        assert redis_client.keys() == [b"objects:/p/a"]
        assert store.get("/p/a") == b"1"
        assert store.exists("/p/a")

        store.delete("/p/a")
        with pytest.raises(ObjectNotFoundError):
            store.get("/p/a")

    def test_list_by_prefix(self, redis_client):
        """Test listing strips the key prefix and escapes glob characters."""
        store = RedisObjectStore(RedisConfig(prefix="objects:"), client=redis_client)
        for path in ("/p*/a", "/p*/b", "/px/c"):
            store.put(path, b"")

        assert store.list_by_prefix("/p*/") == ["/p*/a", "/p*/b"]

    def test_connection_error_is_transport_error(self, redis_client, monkeypatch):
        """Test connection failures map to TransportError."""
        monkeypatch.setattr(
            redis_client, "get", raising(redis_exceptions.ConnectionError("refused"))
        )
        store = RedisObjectStore(client=redis_client)

        with pytest.raises(TransportError) as exc_info:
            store.get("/p/a")
        assert exc_info.value.code == "ConnectionError"
        assert store.get_stats().errors == 1

    def test_other_errors_are_store_errors(self, redis_client, monkeypatch):
        """Test generic redis failures map to StoreError."""
        monkeypatch.setattr(
            redis_client, "set", raising(redis_exceptions.ResponseError("WRONGTYPE"))
        )
        store = RedisObjectStore(client=redis_client)

        with pytest.raises(StoreError) as exc_info:
            store.put("/p/a", b"")
        assert not isinstance(exc_info.value, TransportError)
        assert exc_info.value.code == "ResponseError"


class TestS3ObjectStore:
    """Tests for S3ObjectStore."""

    def test_basic_operations(self, s3_client, s3_stub):
        """Test put/get/delete."""
        key = {"Bucket": BUCKET, "Key": "/p/a"}
        s3_stub.add_response("put_object", {}, dict(key, Body=b"payload"))
        s3_stub.add_response("get_object", {"Body": streaming_body(b"payload")}, key)
        s3_stub.add_response("head_object", {}, key)
        s3_stub.add_response("delete_object", {}, key)
        s3_stub.add_client_error(
            "head_object", service_error_code="404", http_status_code=404, expected_params=key
        )
        s3_stub.add_client_error(
            "get_object", service_error_code="NoSuchKey", http_status_code=404, expected_params=key
        )
        store = S3ObjectStore(s3_client, BUCKET)

        store.put("/p/a", b"payload")
        assert store.get("/p/a") == b"payload"
        assert store.exists("/p/a")

        store.delete("/p/a")
        assert not store.exists("/p/a")
        with pytest.raises(ObjectNotFoundError):
            store.get("/p/a")

    def test_get_closes_body(self, s3_client, s3_stub):
        """Test the response stream is released after reading."""
        body = streaming_body(b"payload")
        s3_stub.add_response("get_object", {"Body": body}, {"Bucket": BUCKET, "Key": "/p/a"})

        assert S3ObjectStore(s3_client, BUCKET).get("/p/a") == b"payload"
        assert body._raw_stream.closed

    def test_delete_missing(self, s3_client, s3_stub):
        """Test deleting a missing object succeeds."""
        s3_stub.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)

        S3ObjectStore(s3_client, BUCKET).delete("/p/none")

    def test_listing_is_paginated(self, s3_client, s3_stub):
        """Test every page of a listing is collected."""
        s3_stub.add_response(
            "list_objects_v2",
            {
                "Contents": [{"Key": "/p/0"}, {"Key": "/p/1"}],
                "IsTruncated": True,
                "NextContinuationToken": "page-2",
            },
            {"Bucket": BUCKET, "Prefix": "/p/"},
        )
        s3_stub.add_response(
            "list_objects_v2",
            {"Contents": [{"Key": "/p/2"}], "IsTruncated": False},
            {"Bucket": BUCKET, "Prefix": "/p/", "ContinuationToken": "page-2"},
        )
        s3_stub.add_response(
            "list_objects_v2",
            {"KeyCount": 0, "IsTruncated": False},
            {"Bucket": BUCKET, "Prefix": "/none/"},
        )
        store = S3ObjectStore(s3_client, BUCKET)

        assert store.list_by_prefix("/p/") == ["/p/0", "/p/1", "/p/2"]
        assert store.list_by_prefix("/none/") == []

    def test_access_denied_is_transport_error(self, s3_client, s3_stub):
        """Test auth failures map to TransportError."""
        s3_stub.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(TransportError) as exc_info:
            S3ObjectStore(s3_client, BUCKET).get("/p/a")
        assert exc_info.value.code == "AccessDenied"

    def test_endpoint_failure_is_transport_error(self, s3_client, monkeypatch):
        """Test connection failures map to TransportError."""
        error = EndpointConnectionError(endpoint_url="http://127.0.0.1:9")
        monkeypatch.setattr(s3_client, "put_object", raising(error))

        with pytest.raises(TransportError) as exc_info:
            S3ObjectStore(s3_client, BUCKET).put("/p/a", b"")
        assert exc_info.value.code == "EndpointConnectionError"

    def test_other_client_errors_are_store_errors(self, s3_client, s3_stub):
        """Test other service errors map to StoreError."""
        s3_stub.add_client_error("list_objects_v2", service_error_code="InternalError", http_status_code=500)

        with pytest.raises(StoreError) as exc_info:
            S3ObjectStore(s3_client, BUCKET).list_by_prefix("/p/")
        assert not isinstance(exc_info.value, TransportError)

    def test_ensure_bucket_ignores_existing(self, s3_client, s3_stub):
        """Test an existing bucket is accepted."""
        s3_stub.add_client_error(
            "create_bucket",
            service_error_code="BucketAlreadyOwnedByYou",
            http_status_code=409,
            expected_params={
                "Bucket": BUCKET,
                "CreateBucketConfiguration": {"LocationConstraint": "eu-central-1"},
            },
        )
        s3_stub.add_response("head_bucket", {"ResponseMetadata": {"HTTPStatusCode": 200}}, {"Bucket": BUCKET})
        store = S3ObjectStore(s3_client, BUCKET)

        store.ensure_bucket(region="eu-central-1", delay=0, max_attempts=2)

    def test_ensure_bucket_fails_when_unavailable(self, s3_client, s3_stub):
        """Test a bucket that never appears raises TransportError."""
        s3_stub.add_client_error("create_bucket", service_error_code="AccessDenied", http_status_code=403)
        for _ in range(2):
            s3_stub.add_client_error("head_bucket", service_error_code="404", http_status_code=404)

        with pytest.raises(TransportError):
            S3ObjectStore(s3_client, BUCKET).ensure_bucket(delay=0, max_attempts=2)


class TestS3Backend:
    """Tests for the S3 backend factory."""

    def test_new_s3_backend(self, s3_client, s3_stub, monkeypatch):
        """Test the factory wires store, prefix and metrics."""
        captured = {}

        def fake_client(service, **kwargs):
            captured["service"] = service
            captured.update(kwargs)
            return s3_client

        monkeypatch.setattr(boto3, "client", fake_client)
        entry = Entry(data={"v": 1}, meta=EntryMeta(lifetime=10, gracetime=5))
        record = EntryCodec().encode(entry)
        path = {"Bucket": "test-bucket", "Key": "/prefix/k"}

        s3_stub.add_response("create_bucket", {}, {"Bucket": "test-bucket"})
        s3_stub.add_response("head_bucket", {"ResponseMetadata": {"HTTPStatusCode": 200}}, {"Bucket": "test-bucket"})
        s3_stub.add_response("put_object", {}, dict(path, Body=record))
        s3_stub.add_response("get_object", {"Body": streaming_body(record)}, path)
        s3_stub.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            http_status_code=404,
            expected_params={"Bucket": "test-bucket", "Key": "/prefix/missing"},
        )
        s3_stub.add_response(
            "list_objects_v2",
            {"Contents": [{"Key": "/prefix/k"}], "IsTruncated": False},
            {"Bucket": "test-bucket", "Prefix": "/prefix/"},
        )
        s3_stub.add_response("delete_object", {}, path)

        registry = MetricsRegistry()
        config = S3Config(
            bucket="test-bucket",
            key_prefix="prefix",
            cache_name="s3BackendTest",
            endpoint_url="http://127.0.0.1:9000",
            region="us-east-1",
            access_key_id="MYACCESSKEY",
            secret_access_key="MYSECRETKEY",
            force_path_style=True,
            bucket_wait_delay=0,
        )

        backend = new_s3_backend(config, metrics_registry=registry)
        backend.set("k", entry)
        result, found = backend.get("k")
        backend.get("missing")
        backend.flush()

        assert captured["service"] == "s3"
        assert captured["endpoint_url"] == "http://127.0.0.1:9000"
        assert captured["aws_access_key_id"] == "MYACCESSKEY"
        assert found and result.data == {"v": 1}

        counters = registry.get_counters("s3", "s3BackendTest")
        assert (counters.hits, counters.misses) == (1, 1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
