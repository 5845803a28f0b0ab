"""
Shared fixtures for bitstore tests.

Everything here runs offline: object storage is the transient in-memory
client and staging files go to pytest's tmp_path.
"""

import pytest

from bitstore.config.settings import get_settings
from bitstore.core.models import Bitstream
from bitstore.infrastructure.storage.backend import ObjectStoreBitStoreService
from bitstore.infrastructure.storage.client import TransientObjectStoreClient


class FailingObjectStoreClient(TransientObjectStoreClient):
    """Transient store whose calls can be told to blow up."""
    
    def __init__(self, fail_on: set[str]) -> None:
        super().__init__()
        self.fail_on = fail_on
    
    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise ConnectionError(f"simulated {operation} failure")
    
    def container_exists(self, container):
        self._maybe_fail("container_exists")
        return super().container_exists(container)
    
    def create_container(self, container):
        self._maybe_fail("create_container")
        super().create_container(container)
    
    def get_blob(self, container, key):
        self._maybe_fail("get_blob")
        return super().get_blob(container, key)
    
    def put_blob(self, container, key, payload, content_length):
        self._maybe_fail("put_blob")
        return super().put_blob(container, key, payload, content_length)
    
    def blob_metadata(self, container, key):
        self._maybe_fail("blob_metadata")
        return super().blob_metadata(container, key)
    
    def remove_blob(self, container, key):
        self._maybe_fail("remove_blob")
        super().remove_blob(container, key)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; tests must not leak them."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def transient_client() -> TransientObjectStoreClient:
    return TransientObjectStoreClient()


@pytest.fixture
def service(transient_client, staging_dir) -> ObjectStoreBitStoreService:
    """An initialised object-store backend over the transient client."""
    backend = ObjectStoreBitStoreService(
        client=transient_client,
        container="test-assets",
        access_key="access",
        secret_key="secret",
        staging_dir=str(staging_dir),
    )
    backend.init()
    return backend


@pytest.fixture
def bitstream() -> Bitstream:
    return Bitstream(internal_id="abc123")


@pytest.fixture
def failing_client():
    """Factory for transient stores that fail on the named operations."""
    return FailingObjectStoreClient
