"""
Azure Blob Storage fetcher.

Implements ObjectFetcher with azure-storage-blob. The SDK is imported lazily so
the package works without it when only HTTP endpoints are used.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Optional, Tuple

from ..errors import ObjectNotFound, TransportAuthError, TransportError
from ..settings import Settings
from .base import ObjectStat

__all__ = ["AzureBlobFetcher", "AzureByteSource"]

logger = logging.getLogger(__name__)


def _azure_exceptions():
    try:
        from azure.core import exceptions
    except ImportError:
        raise ImportError("azure-storage-blob package required for Azure blob fetching")
    return exceptions


def _map_azure_error(e: Exception, bucket: str, key: str) -> TransportError:
    exceptions = _azure_exceptions()
    if isinstance(e, exceptions.ResourceNotFoundError):
        return ObjectNotFound(f"Blob not found: {bucket}/{key}", bucket=bucket, key=key)
    if isinstance(e, exceptions.ClientAuthenticationError):
        return TransportAuthError(f"Azure authentication failed for {bucket}/{key}: {e}",
                                  bucket=bucket, key=key)
    return TransportError(f"Azure blob error for {bucket}/{key}: {e}", bucket=bucket, key=key)


class AzureByteSource:
    """ByteSource over the chunk iterator of a StorageStreamDownloader."""

    def __init__(self, chunks: Iterator[bytes], bucket: str, key: str) -> None:
        self._chunks: Optional[Iterator[bytes]] = chunks
        self._buffer = b""
        self._bucket = bucket
        self._key = key

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            parts = [self._buffer]
            self._buffer = b""
            while True:
                chunk = self._next_chunk()
                if not chunk:
                    return b"".join(parts)
                parts.append(chunk)

        if not self._buffer:
            self._buffer = self._next_chunk()
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def close(self) -> None:
        # The downloader holds no connection between chunks; dropping the
        # iterator stops any further range requests.
        chunks, self._chunks = self._chunks, None
        self._buffer = b""
        if chunks is not None and hasattr(chunks, "close"):
            chunks.close()

    def _next_chunk(self) -> bytes:
        if self._chunks is None:
            return b""
        exceptions = _azure_exceptions()
        try:
            for chunk in self._chunks:
                if chunk:
                    return chunk
            return b""
        except exceptions.AzureError as e:
            raise _map_azure_error(e, self._bucket, self._key) from e


class AzureBlobFetcher:
    """
    ObjectFetcher for Azure Blob Storage.

    Buckets map to containers and keys to blob names. Uses a connection string
    or account+key authentication, with an optional custom endpoint for Azurite
    and private clouds.
    """

    def __init__(self, *, settings: Settings, service_client: Optional[Any] = None) -> None:
        """
        Initialize Azure fetcher with settings.

        Args:
            settings: Settings containing Azure authentication and configuration
            service_client: Preconfigured BlobServiceClient (tests, custom credentials)

        Raises:
            ValueError: If Azure authentication is not configured and no client is given
        """
        self._settings = settings
        self._service_client = service_client
        self._owns_client = service_client is None

        if service_client is None:
            has_conn_str = bool(settings.az_connection_string)
            has_account_key = bool(settings.az_account and settings.az_key)
            if not has_conn_str and not has_account_key:
                raise ValueError("Azure authentication not configured: need AZURE_STORAGE_CONNECTION_STRING "
                                 "or (AZURE_STORAGE_ACCOUNT + AZURE_STORAGE_KEY)")

        logger.debug(f"Azure fetcher timeout: {settings.azure_timeout_s}s, "
                     f"custom endpoint: {settings.az_blob_endpoint or 'none'}")

    def close(self) -> None:
        """Close the service client if this fetcher created it."""
        if self._owns_client and self._service_client is not None:
            client, self._service_client = self._service_client, None
            client.close()

    def _get_service_client(self):
        if self._service_client is not None:
            return self._service_client

        try:
            from azure.storage.blob import BlobServiceClient
        except ImportError:
            raise ImportError("azure-storage-blob package required for Azure blob fetching")

        s = self._settings
        if s.az_connection_string:
            account_match = re.search(r'AccountName=([^;]+)', s.az_connection_string)
            if s.az_blob_endpoint and account_match:
                # Connection string + custom endpoint (Azurite/private cloud)
                client = BlobServiceClient(
                    account_url=f"{s.az_blob_endpoint.rstrip('/')}/{account_match.group(1)}",
                    credential=None,
                    connection_timeout=s.azure_timeout_s,
                )
            else:
                client = BlobServiceClient.from_connection_string(
                    s.az_connection_string,
                    connection_timeout=s.azure_timeout_s,
                )
        else:
            if s.az_blob_endpoint:
                account_url = f"{s.az_blob_endpoint.rstrip('/')}/{s.az_account}"
            else:
                account_url = f"https://{s.az_account}.blob.core.windows.net"
            client = BlobServiceClient(
                account_url=account_url,
                credential=s.az_key,
                connection_timeout=s.azure_timeout_s,
            )

        self._service_client = client
        return client

    def _blob_client(self, bucket: str, key: str):
        return self._get_service_client().get_blob_client(container=bucket, blob=key)

    def fetch_range(self, bucket: str, key: str, offset: int) -> Tuple[AzureByteSource, ObjectStat]:
        """
        Download the blob from ``offset`` to the end as a chunked source.

        Raises:
            ObjectNotFound: If the blob does not exist
            TransportAuthError: If authentication fails
            TransportError: For other Azure errors
        """
        exceptions = _azure_exceptions()
        blob_client = self._blob_client(bucket, key)

        try:
            downloader = blob_client.download_blob(offset=offset)
        except exceptions.HttpResponseError as e:
            if getattr(e, "status_code", None) == 416:
                # Range starts at or past the end of the blob
                return AzureByteSource(iter(()), bucket, key), self.fetch_metadata(bucket, key)
            raise _map_azure_error(e, bucket, key) from e
        except exceptions.AzureError as e:
            raise _map_azure_error(e, bucket, key) from e

        properties = downloader.properties
        stat = ObjectStat(
            bucket=bucket,
            key=key,
            size=offset + downloader.size,
            etag=getattr(properties, "etag", None),
            content_type=getattr(getattr(properties, "content_settings", None), "content_type", None),
        )
        return AzureByteSource(downloader.chunks(), bucket, key), stat

    def fetch_metadata(self, bucket: str, key: str) -> ObjectStat:
        """
        Get blob metadata without downloading content.

        Raises:
            ObjectNotFound: If the blob does not exist
            TransportAuthError: If authentication fails
            TransportError: For other Azure errors
        """
        exceptions = _azure_exceptions()
        blob_client = self._blob_client(bucket, key)

        try:
            properties = blob_client.get_blob_properties()
        except exceptions.AzureError as e:
            raise _map_azure_error(e, bucket, key) from e

        return ObjectStat(
            bucket=bucket,
            key=key,
            size=properties.size,
            etag=getattr(properties, "etag", None),
            content_type=getattr(getattr(properties, "content_settings", None), "content_type", None),
        )
