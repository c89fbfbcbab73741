"""
Tests for the Azure Blob fetcher.

Tests the fetch contract against a mocked BlobServiceClient without heavy SDK
setup or a live account.
"""
from __future__ import annotations

import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

azure_exceptions = pytest.importorskip("azure.core.exceptions")

from objstream.errors import ObjectNotFound, TransportAuthError, TransportError
from objstream.settings import Settings
from objstream.storage.azure_fetcher import AzureBlobFetcher
from objstream.stream import ObjectReadSeeker
from tests.conftest import BLOB


def make_downloader(data: bytes, chunk_size: int = 4):
    downloader = MagicMock()
    downloader.size = len(data)
    downloader.properties = SimpleNamespace(
        etag='"0x8D"',
        content_settings=SimpleNamespace(content_type="application/octet-stream"),
    )
    downloader.chunks.return_value = iter([data[i:i + chunk_size] for i in range(0, len(data), chunk_size)])
    return downloader


@pytest.fixture
def service_client():
    """Mock BlobServiceClient whose blobs are served from a dict."""
    blobs = {("container", "blob"): BLOB}
    client = MagicMock()

    def get_blob_client(container, blob):
        blob_client = MagicMock()
        data = blobs.get((container, blob))

        def download_blob(offset=0):
            if data is None:
                raise azure_exceptions.ResourceNotFoundError("The specified blob does not exist.")
            if offset >= len(data):
                error = azure_exceptions.HttpResponseError(message="The range specified is invalid")
                error.status_code = 416
                raise error
            return make_downloader(data[offset:])

        def get_blob_properties():
            if data is None:
                raise azure_exceptions.ResourceNotFoundError("The specified blob does not exist.")
            return SimpleNamespace(size=len(data), etag='"0x8D"', content_settings=None)

        blob_client.download_blob.side_effect = download_blob
        blob_client.get_blob_properties.side_effect = get_blob_properties
        return blob_client

    client.get_blob_client.side_effect = get_blob_client
    return client


@pytest.fixture
def azure_fetcher(service_client):
    return AzureBlobFetcher(settings=Settings(), service_client=service_client)


class TestAzureBlobFetcher:
    """Test basic AzureBlobFetcher functionality."""

    def test_constructor_requires_azure_auth(self):
        """Test that Azure authentication is required without an injected client."""
        with pytest.raises(ValueError, match="Azure authentication not configured"):
            AzureBlobFetcher(settings=Settings())

    def test_constructor_with_connection_string(self):
        settings = Settings(az_connection_string="DefaultEndpointsProtocol=https;AccountName=test;AccountKey=key")

        assert AzureBlobFetcher(settings=settings) is not None

    def test_constructor_with_account_key(self):
        settings = Settings(az_account="testaccount", az_key="testkey123")

        assert AzureBlobFetcher(settings=settings) is not None

    def test_methods_require_azure_sdk(self):
        """Test that fetch methods raise ImportError when the SDK is missing."""
        settings = Settings(az_connection_string="DefaultEndpointsProtocol=https;AccountName=test;AccountKey=key")

        with patch.dict(sys.modules, {"azure.storage.blob": None, "azure.core": None}):
            fetcher = AzureBlobFetcher(settings=settings)

            with pytest.raises(ImportError, match="azure-storage-blob package required"):
                fetcher.fetch_metadata("container", "blob")

            with pytest.raises(ImportError, match="azure-storage-blob package required"):
                fetcher.fetch_range("container", "blob", 0)

    def test_fetch_range_from_start(self, azure_fetcher, service_client):
        source, stat = azure_fetcher.fetch_range("container", "blob", 0)

        assert source.read() == BLOB
        assert stat.size == 10
        assert stat.content_type == "application/octet-stream"
        service_client.get_blob_client.assert_called_with(container="container", blob="blob")

    def test_fetch_range_from_offset_reports_total_size(self, azure_fetcher):
        """Test that the stat carries the whole blob size, not the range size."""
        source, stat = azure_fetcher.fetch_range("container", "blob", 6)

        assert source.read(100) == b"6789"
        assert stat.size == 10

    def test_offset_past_end_yields_empty_source(self, azure_fetcher):
        source, stat = azure_fetcher.fetch_range("container", "blob", 10)

        assert source.read(4) == b""
        assert stat.size == 10

    def test_missing_blob(self, azure_fetcher):
        with pytest.raises(ObjectNotFound) as exc_info:
            azure_fetcher.fetch_range("container", "missing", 0)

        assert exc_info.value.key == "missing"
        assert isinstance(exc_info.value.__cause__, azure_exceptions.ResourceNotFoundError)

    def test_auth_failure(self, service_client):
        service_client.get_blob_client.side_effect = None
        blob_client = service_client.get_blob_client.return_value
        blob_client.get_blob_properties.side_effect = azure_exceptions.ClientAuthenticationError("bad key")
        fetcher = AzureBlobFetcher(settings=Settings(), service_client=service_client)

        with pytest.raises(TransportAuthError, match="authentication failed"):
            fetcher.fetch_metadata("container", "blob")

    def test_service_error(self, service_client):
        service_client.get_blob_client.side_effect = None
        blob_client = service_client.get_blob_client.return_value
        blob_client.download_blob.side_effect = azure_exceptions.ServiceRequestError("connection reset")
        fetcher = AzureBlobFetcher(settings=Settings(), service_client=service_client)

        with pytest.raises(TransportError, match="Azure blob error"):
            fetcher.fetch_range("container", "blob", 0)

    def test_chunk_failure_maps_to_transport_error(self, service_client):
        """Test that an SDK error while iterating chunks is mapped."""
        def failing_chunks():
            yield b"0123"
            raise azure_exceptions.ServiceResponseError("stream interrupted")

        downloader = make_downloader(BLOB)
        downloader.chunks.return_value = failing_chunks()
        service_client.get_blob_client.side_effect = None
        service_client.get_blob_client.return_value.download_blob.side_effect = None
        service_client.get_blob_client.return_value.download_blob.return_value = downloader
        fetcher = AzureBlobFetcher(settings=Settings(), service_client=service_client)

        source, _ = fetcher.fetch_range("container", "blob", 0)

        assert source.read(4) == b"0123"
        with pytest.raises(TransportError):
            source.read(4)

    def test_close_stops_iteration(self, azure_fetcher):
        source, _ = azure_fetcher.fetch_range("container", "blob", 0)
        source.read(2)

        source.close()

        assert source.read(4) == b""

    def test_close_releases_built_client(self):
        """Test that close() closes a service client the fetcher created itself."""
        settings = Settings(az_account="testaccount", az_key="testkey123")
        fetcher = AzureBlobFetcher(settings=settings)

        with patch("azure.storage.blob.BlobServiceClient") as client_cls:
            fetcher._get_service_client()
        fetcher.close()

        client_cls.return_value.close.assert_called_once()

    def test_close_keeps_injected_client(self, azure_fetcher, service_client):
        azure_fetcher.close()

        service_client.close.assert_not_called()

    def test_fetch_metadata(self, azure_fetcher, service_client):
        stat = azure_fetcher.fetch_metadata("container", "blob")

        assert stat.size == 10
        assert stat.etag == '"0x8D"'
        assert stat.content_type is None


class TestStreamOverAzure:
    """ObjectReadSeeker driven by the Azure fetcher."""

    def test_read_seek_read(self, azure_fetcher):
        stream = ObjectReadSeeker(azure_fetcher, "container", "blob")

        # Reads return at most one downloader chunk (4 bytes here)
        assert stream.read(5) == b"0123"
        stream.seek(2)
        assert stream.read(10) == b"2345"
        assert not stream.eof
        assert stream.read(10) == b"6789"
        assert stream.eof
