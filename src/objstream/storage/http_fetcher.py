"""
HTTP range fetcher for S3-compatible object endpoints.

Implements ObjectFetcher over plain HTTP(S) using path-style addressing
({endpoint}/{bucket}/{key}). Request signing is out of scope: use a public
bucket, a presigning proxy, or an httpx client configured with its own auth.
"""
from __future__ import annotations

import logging
import re
from typing import Iterator, Optional, Tuple
from urllib.parse import quote

import httpx

from ..errors import ObjectNotFound, TransportAuthError, TransportError
from ..settings import Settings
from .base import ObjectStat

__all__ = ["HttpRangeFetcher", "HttpByteSource"]

logger = logging.getLogger(__name__)

_CONTENT_RANGE = re.compile(r"^bytes\s+(?:\d+-\d+|\*)/(\d+|\*)$")

# Offsets and sizes refer to stored bytes, so transfer compression is refused
_IDENTITY_ENCODING = {"Accept-Encoding": "identity"}


class HttpByteSource:
    """ByteSource over a streamed httpx response body."""

    def __init__(self, response: httpx.Response, bucket: str, key: str) -> None:
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_raw()
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
        self._response.close()

    def _next_chunk(self) -> bytes:
        try:
            for chunk in self._chunks:
                if chunk:
                    return chunk
            return b""
        except (httpx.RequestError, httpx.StreamError) as e:
            raise TransportError(f"Error reading {self._bucket}/{self._key}: {e}",
                                 bucket=self._bucket, key=self._key) from e


class _EmptyByteSource:
    """Source for a range that starts at or past the end of the object."""

    def read(self, size: int = -1) -> bytes:
        return b""

    def close(self) -> None:
        pass


def _total_size(response: httpx.Response) -> int:
    """Total object size from Content-Range, falling back to Content-Length."""
    content_range = response.headers.get("Content-Range")
    if content_range:
        match = _CONTENT_RANGE.match(content_range.strip())
        if match and match.group(1) != "*":
            return int(match.group(1))
        return -1
    content_length = response.headers.get("Content-Length")
    return int(content_length) if content_length else -1


def _raise_for_status(response: httpx.Response, bucket: str, key: str) -> None:
    status = response.status_code
    if status < 400:
        return
    if status == 404:
        raise ObjectNotFound(f"Object not found: {bucket}/{key}", bucket=bucket, key=key)
    if status in (401, 403):
        raise TransportAuthError(f"Access denied ({status}) for {bucket}/{key}",
                                 bucket=bucket, key=key)
    raise TransportError(f"Object store error {status} for {bucket}/{key}",
                         bucket=bucket, key=key)


class HttpRangeFetcher:
    """
    ObjectFetcher backed by an httpx client.

    fetch_range issues a streamed GET with ``Range: bytes=N-``; fetch_metadata
    issues a HEAD. No retries are attempted here.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        endpoint: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize fetcher.

        Args:
            settings: Settings providing endpoint_url, timeout and TLS options
            endpoint: Base URL overriding settings.endpoint_url
            client: Preconfigured httpx client (tests, custom auth)

        Raises:
            ValueError: If no endpoint is configured
        """
        base = endpoint or settings.endpoint_url
        if not base:
            raise ValueError("HTTP fetcher requires an endpoint (OBJSTREAM_ENDPOINT_URL)")
        self.endpoint = base.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(settings.http_timeout_s),
            follow_redirects=True,
            verify=not settings.insecure,
            headers={"User-Agent": "objstream/0.1.0"},
        )
        logger.debug(f"HTTP fetcher using endpoint {self.endpoint}, timeout {settings.http_timeout_s}s")

    def __enter__(self) -> "HttpRangeFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            self.client.close()

    def _object_url(self, bucket: str, key: str) -> str:
        return f"{self.endpoint}/{quote(bucket, safe='')}/{quote(key, safe='/')}"

    def fetch_range(self, bucket: str, key: str, offset: int) -> Tuple[HttpByteSource, ObjectStat]:
        """
        Stream the object from ``offset`` to the end.

        Raises:
            ObjectNotFound: HTTP 404
            TransportAuthError: HTTP 401/403
            TransportError: Other HTTP errors, network errors, or a server that
                ignored the Range header
        """
        headers = dict(_IDENTITY_ENCODING)
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"
        request = self.client.build_request("GET", self._object_url(bucket, key), headers=headers)

        try:
            response = self.client.send(request, stream=True)
        except httpx.RequestError as e:
            raise TransportError(f"Network error fetching {bucket}/{key}: {e}",
                                 bucket=bucket, key=key) from e

        if response.status_code == 416:
            # Range starts at or past the end of the object
            response.close()
            size = _total_size(response)
            return _EmptyByteSource(), ObjectStat(bucket=bucket, key=key, size=max(size, 0))

        try:
            _raise_for_status(response, bucket, key)
            if offset > 0 and response.status_code != 206:
                raise TransportError(
                    f"Server ignored Range request for {bucket}/{key} (status {response.status_code})",
                    bucket=bucket, key=key,
                )
            encoding = response.headers.get("Content-Encoding", "identity").strip().lower()
            if encoding != "identity":
                raise TransportError(
                    f"Server applied {encoding} encoding to {bucket}/{key} despite identity request",
                    bucket=bucket, key=key,
                )
        except TransportError:
            response.close()
            raise

        size = _total_size(response)
        if size >= 0 and "Content-Range" not in response.headers:
            # Content-Length only covers the requested range
            size += offset

        stat = ObjectStat(
            bucket=bucket,
            key=key,
            size=size,
            etag=response.headers.get("ETag"),
            content_type=response.headers.get("Content-Type"),
        )
        return HttpByteSource(response, bucket, key), stat

    def fetch_metadata(self, bucket: str, key: str) -> ObjectStat:
        """
        Get object metadata with a HEAD request.

        Raises:
            ObjectNotFound: HTTP 404
            TransportAuthError: HTTP 401/403
            TransportError: Other failures, or no Content-Length in the response
        """
        try:
            response = self.client.head(self._object_url(bucket, key), headers=_IDENTITY_ENCODING)
        except httpx.RequestError as e:
            raise TransportError(f"Network error querying {bucket}/{key}: {e}",
                                 bucket=bucket, key=key) from e

        _raise_for_status(response, bucket, key)

        content_length = response.headers.get("Content-Length")
        if content_length is None:
            raise TransportError(f"No Content-Length in HEAD response for {bucket}/{key}",
                                 bucket=bucket, key=key)

        return ObjectStat(
            bucket=bucket,
            key=key,
            size=int(content_length),
            etag=response.headers.get("ETag"),
            content_type=response.headers.get("Content-Type"),
        )
