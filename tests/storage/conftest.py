"""
Conftest for storage tests - backends rooted in a temporary directory.
"""
import pytest

from picstore.storage.local import LocalStorageBackend
from picstore.storage.s3 import S3StorageBackend
from tests.helpers import fake_deriver
from tests.storage.fakes import BASE_URL, FakeS3Client


@pytest.fixture
def storage(tmp_path):
    """Create a local storage backend with temporary directory."""
    return LocalStorageBackend(
        base_path=str(tmp_path),
        base_url=BASE_URL,
        deriver=fake_deriver,
        max_size_mb=1,
    )


@pytest.fixture
def s3_client():
    return FakeS3Client(buckets=["media"])


@pytest.fixture
def s3_storage(s3_client):
    return S3StorageBackend(
        bucket="media",
        prefix="uploads",
        base_url="https://cdn.example.com",
        deriver=fake_deriver,
        client=s3_client,
        max_size_mb=1,
    )
