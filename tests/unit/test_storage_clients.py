"""
Unit tests for object store clients.

The S3 client runs on a real boto3 client wrapped in botocore's Stubber, so
every call is checked against the S3 API model (operation names, parameter
names and types) without touching the network.
"""

import io
from datetime import datetime, timezone

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from bitstore.config.settings import Settings
from bitstore.dependencies import create_bitstore_service
from bitstore.infrastructure.storage.client import (
    BlobMetadata,
    ContainerNotFoundError,
    ObjectStoreConfig,
    ObjectStoreError,
    S3ObjectStoreClient,
    TransientObjectStoreClient,
    create_object_store_client,
)
from bitstore.infrastructure.storage.staging import staging_file


@pytest.fixture
def s3():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3):
    with Stubber(s3) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def client(s3) -> S3ObjectStoreClient:
    config = ObjectStoreConfig(access_key="a", secret_key="s", region="us-east-1")
    return S3ObjectStoreClient(config, s3_client=s3)


@pytest.fixture
def aws_environment(monkeypatch, tmp_path):
    """Keep the developer's AWS config out of endpoint resolution."""
    for name in ("AWS_DEFAULT_REGION", "AWS_REGION", "AWS_ENDPOINT_URL", "AWS_ENDPOINT_URL_S3"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "no-config"))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "no-credentials"))


# ---------------------------------------------------------------------------
# S3 Client Tests
# ---------------------------------------------------------------------------

class TestS3Containers:
    """Tests for bucket existence and creation."""

    def test_existing_bucket(self, client, stubber):
        stubber.add_response("head_bucket", {}, {"Bucket": "bucket"})

        assert client.container_exists("bucket") is True

    @pytest.mark.parametrize("code", ["404", "NoSuchBucket", "NotFound"])
    def test_missing_bucket(self, client, stubber, code):
        stubber.add_client_error(
            "head_bucket",
            service_error_code=code,
            http_status_code=404,
            expected_params={"Bucket": "bucket"},
        )

        assert client.container_exists("bucket") is False

    def test_forbidden_bucket_check_raises(self, client, stubber):
        stubber.add_client_error("head_bucket", service_error_code="403", http_status_code=403)

        with pytest.raises(ObjectStoreError):
            client.container_exists("bucket")

    def test_network_failure_raises(self, client, s3, monkeypatch):
        def unreachable(**kwargs):
            raise EndpointConnectionError(endpoint_url="https://s3.amazonaws.com")

        monkeypatch.setattr(s3, "head_bucket", unreachable)

        with pytest.raises(ObjectStoreError) as exc_info:
            client.container_exists("bucket")

        assert isinstance(exc_info.value.__cause__, EndpointConnectionError)

    def test_create_in_us_east_sends_no_location(self, client, stubber):
        stubber.add_response("create_bucket", {}, {"Bucket": "bucket"})

        client.create_container("bucket")

    def test_create_with_auto_region_sends_no_location(self, s3, stubber):
        config = ObjectStoreConfig(
            access_key="a",
            secret_key="s",
            endpoint_url="https://account.r2.cloudflarestorage.com",
            region="auto",
        )
        client = S3ObjectStoreClient(config, s3_client=s3)
        stubber.add_response("create_bucket", {}, {"Bucket": "bucket"})

        client.create_container("bucket")

    def test_create_outside_us_east_sends_location(self, s3, stubber):
        config = ObjectStoreConfig(access_key="a", secret_key="s", region="eu-west-1")
        client = S3ObjectStoreClient(config, s3_client=s3)
        stubber.add_response(
            "create_bucket",
            {},
            {
                "Bucket": "bucket",
                "CreateBucketConfiguration": {"LocationConstraint": "eu-west-1"},
            },
        )

        client.create_container("bucket")

    def test_create_is_idempotent(self, client, stubber):
        stubber.add_client_error(
            "create_bucket",
            service_error_code="BucketAlreadyOwnedByYou",
            http_status_code=409,
        )

        client.create_container("bucket")

    def test_create_taken_name_raises(self, client, stubber):
        stubber.add_client_error(
            "create_bucket",
            service_error_code="BucketAlreadyExists",
            http_status_code=409,
        )

        with pytest.raises(ObjectStoreError):
            client.create_container("bucket")


class TestS3Objects:
    """Tests for object get/put/head/delete."""

    def test_get_returns_body(self, client, stubber):
        body = StreamingBody(io.BytesIO(b"data"), 4)
        stubber.add_response("get_object", {"Body": body}, {"Bucket": "bucket", "Key": "k"})

        assert client.get_blob("bucket", "k").read() == b"data"

    def test_get_missing_key_returns_none(self, client, stubber):
        stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

        assert client.get_blob("bucket", "k") is None

    def test_get_missing_bucket_raises_container_not_found(self, client, stubber):
        stubber.add_client_error("get_object", service_error_code="NoSuchBucket", http_status_code=404)

        with pytest.raises(ContainerNotFoundError):
            client.get_blob("bucket", "k")

    def test_get_access_denied_raises(self, client, stubber):
        stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(ObjectStoreError) as exc_info:
            client.get_blob("bucket", "k")

        assert not isinstance(exc_info.value, ContainerNotFoundError)
        assert isinstance(exc_info.value.__cause__, ClientError)

    def test_put_sends_length_and_strips_etag_quotes(self, client, stubber):
        stubber.add_response(
            "put_object",
            {"ETag": '"5d41402abc4b2a76b9719d911017c592"'},
            {
                "Bucket": "bucket",
                "Key": "k",
                "Body": ANY,
                "ContentLength": 5,
                "ContentType": "application/octet-stream",
            },
        )

        etag = client.put_blob("bucket", "k", io.BytesIO(b"hello"), 5)

        assert etag == "5d41402abc4b2a76b9719d911017c592"

    def test_put_failure_raises(self, client, stubber):
        stubber.add_client_error("put_object", service_error_code="InternalError", http_status_code=500)

        with pytest.raises(ObjectStoreError):
            client.put_blob("bucket", "k", io.BytesIO(b""), 0)

    def test_head_maps_metadata(self, client, stubber):
        modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        stubber.add_response(
            "head_object",
            {"ContentLength": 42, "ETag": '"abc"', "LastModified": modified},
            {"Bucket": "bucket", "Key": "k"},
        )

        metadata = client.blob_metadata("bucket", "k")

        assert metadata == BlobMetadata(size=42, etag="abc", last_modified=modified)

    def test_head_missing_returns_none(self, client, stubber):
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

        assert client.blob_metadata("bucket", "k") is None

    def test_delete(self, client, stubber):
        stubber.add_response("delete_object", {}, {"Bucket": "bucket", "Key": "k"})

        client.remove_blob("bucket", "k")

    def test_delete_missing_is_ignored(self, client, stubber):
        stubber.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)

        client.remove_blob("bucket", "k")

    def test_delete_failure_raises(self, client, stubber):
        stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(ObjectStoreError):
            client.remove_blob("bucket", "k")


class TestS3Endpoints:
    """The region setting must never leak 'auto' into an AWS hostname."""

    def test_auto_region_without_endpoint_targets_aws(self, aws_environment):
        config = ObjectStoreConfig(access_key="a", secret_key="s", region="auto")

        client = S3ObjectStoreClient(config)

        endpoint = client._s3_client.meta.endpoint_url
        assert "auto" not in endpoint
        assert endpoint.endswith(".amazonaws.com")

    def test_default_settings_target_aws(self, aws_environment):
        settings = Settings(_env_file=None, bitstore_backend="aws-s3", bitstore_bucket_name="b")

        service = create_bitstore_service(settings)

        endpoint = service._client._s3_client.meta.endpoint_url
        assert "auto" not in endpoint
        assert endpoint.endswith(".amazonaws.com")

    def test_explicit_region_is_used(self, aws_environment):
        config = ObjectStoreConfig(access_key="a", secret_key="s", region="eu-west-1")

        client = S3ObjectStoreClient(config)

        assert client._s3_client.meta.region_name == "eu-west-1"

    def test_r2_keeps_endpoint_and_auto_region(self, aws_environment):
        config = ObjectStoreConfig(
            access_key="a",
            secret_key="s",
            endpoint_url="https://account.r2.cloudflarestorage.com",
        )

        client = create_object_store_client("r2", config)

        assert client._s3_client.meta.endpoint_url == "https://account.r2.cloudflarestorage.com"
        assert client._s3_client.meta.region_name == "auto"


# ---------------------------------------------------------------------------
# Transient Client Tests
# ---------------------------------------------------------------------------

class TestTransientClient:
    """Tests for the in-memory store."""

    @pytest.fixture
    def store(self) -> TransientObjectStoreClient:
        store = TransientObjectStoreClient()
        store.create_container("c")
        return store

    def test_create_container_is_idempotent(self, store):
        store.put_blob("c", "k", io.BytesIO(b"x"), 1)

        store.create_container("c")

        assert store.blob_metadata("c", "k") is not None

    def test_rejects_length_mismatch(self, store):
        with pytest.raises(ObjectStoreError, match="length mismatch"):
            store.put_blob("c", "k", io.BytesIO(b"abc"), 5)

    def test_operations_on_missing_container(self):
        store = TransientObjectStoreClient()

        assert store.container_exists("c") is False
        with pytest.raises(ContainerNotFoundError):
            store.get_blob("c", "k")
        with pytest.raises(ContainerNotFoundError):
            store.blob_metadata("c", "k")

    def test_metadata_reflects_content(self, store):
        etag = store.put_blob("c", "k", io.BytesIO(b"hello"), 5)

        metadata = store.blob_metadata("c", "k")

        assert metadata.size == 5
        assert metadata.etag == etag == "5d41402abc4b2a76b9719d911017c592"
        assert metadata.last_modified.tzinfo is not None

    def test_remove_missing_is_noop(self, store):
        store.remove_blob("c", "never")


# ---------------------------------------------------------------------------
# Factory Tests
# ---------------------------------------------------------------------------

class TestCreateObjectStoreClient:

    def test_transient(self):
        assert isinstance(create_object_store_client("transient"), TransientObjectStoreClient)

    @pytest.mark.parametrize("backend", ["s3", "aws-s3", "R2 "])
    def test_s3_compatible(self, backend):
        config = ObjectStoreConfig(
            access_key="a",
            secret_key="s",
            endpoint_url="https://example.r2.cloudflarestorage.com",
        )

        assert isinstance(create_object_store_client(backend, config), S3ObjectStoreClient)

    def test_s3_requires_config(self):
        with pytest.raises(ValueError, match="config is required"):
            create_object_store_client("s3")

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown object store backend"):
            create_object_store_client("swift")


# ---------------------------------------------------------------------------
# Staging Tests
# ---------------------------------------------------------------------------

class TestStagingFile:
    """Tests for the scoped staging buffer."""

    def test_read_back_what_was_written(self, tmp_path):
        with staging_file(directory=str(tmp_path)) as scratch:
            scratch.write(b"buffered")
            scratch.seek(0)

            assert scratch.read() == b"buffered"

    def test_removed_on_exit(self, tmp_path):
        with staging_file(prefix="x-", directory=str(tmp_path)) as scratch:
            scratch.write(b"data")
            assert list(tmp_path.iterdir())

        assert list(tmp_path.iterdir()) == []

    def test_removed_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with staging_file(directory=str(tmp_path)):
                raise RuntimeError("boom")

        assert list(tmp_path.iterdir()) == []

    def test_tolerates_file_moved_away(self, tmp_path):
        target = tmp_path / "final"

        with staging_file(directory=str(tmp_path)) as scratch:
            scratch.write(b"data")
            scratch.close()
            (tmp_path / scratch.name).rename(target)

        assert target.read_bytes() == b"data"
