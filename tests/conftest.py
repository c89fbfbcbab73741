"""Root pytest configuration for objstream tests."""
import pytest

from objstream.settings import Settings
from objstream.stream import ObjectReadSeeker
from tests.storage.fakes.fake_fetcher import FakeObjectFetcher

BLOB = b"0123456789"


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep tests independent of the developer's objstream/Azure environment."""
    for name in [
        "OBJSTREAM_ENDPOINT_URL",
        "OBJSTREAM_INSECURE",
        "OBJSTREAM_HTTP_TIMEOUT",
        "OBJSTREAM_AZURE_BLOB_ENDPOINT",
        "OBJSTREAM_AZURE_TIMEOUT",
        "OBJSTREAM_TEMP_DIR",
        "OBJSTREAM_TEMP_PREFIX",
        "OBJSTREAM_READ_CHUNK_SIZE",
        "AZURE_STORAGE_CONNECTION_STRING",
        "AZURE_STORAGE_ACCOUNT",
        "AZURE_STORAGE_KEY",
    ]:
        monkeypatch.delenv(name, raising=False)


# Standardized test fixtures
@pytest.fixture
def settings(tmp_path):
    """Standard test settings with an isolated temp directory."""
    return Settings(
        endpoint_url="http://localhost:9000",
        insecure=True,
        temp_dir=str(tmp_path),
        temp_prefix="objstream-test-",
        read_chunk_size=4,
    )


@pytest.fixture
def fetcher():
    """Fake fetcher holding the 10-byte object bucket/blob."""
    fake = FakeObjectFetcher()
    fake.put("bucket", "blob", BLOB)
    return fake


@pytest.fixture
def stream(fetcher):
    """Object stream bound to bucket/blob."""
    s = ObjectReadSeeker(fetcher, "bucket", "blob")
    yield s
    s.close()
