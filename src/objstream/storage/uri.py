"""
URI parsing utilities for object locations.

Provides consistent parsing and validation of object URIs across backends
(S3-compatible HTTP endpoints, Azure Blob Storage).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional
import re

__all__ = ["ParsedURI", "parse_object_uri"]


@dataclass(frozen=True)
class ParsedURI:
    """
    Parsed components of an object URI.

    Attributes:
        scheme: Backend scheme (s3, az, http, https)
        bucket: Container/bucket name
        key: Object key/path within the bucket
        original: Original URI string for error messages
        endpoint: Base URL for http(s) URIs, None otherwise
    """
    scheme: Literal["s3", "az", "http", "https"]
    bucket: str
    key: str
    original: str
    endpoint: Optional[str] = None


def parse_object_uri(uri: str) -> ParsedURI:
    """
    Parse and validate an object URI.

    Accepts URIs in the forms:
    - {s3|az}://bucket/key
    - {http|https}://host[:port]/bucket/key (path-style)

    Validation:
    - Rejects URIs containing ".." (path traversal)
    - Rejects URIs with backslashes (non-POSIX paths)
    - Rejects empty bucket or key parts

    Args:
        uri: Object URI to parse

    Returns:
        ParsedURI with validated components

    Raises:
        ValueError: If URI format is invalid or contains unsafe patterns

    Examples:
        >>> parse_object_uri("s3://mybucket/data/file.csv")
        ParsedURI(scheme='s3', bucket='mybucket', key='data/file.csv', original='...', endpoint=None)

        >>> parse_object_uri("http://localhost:9000/mybucket/blob")
        ParsedURI(scheme='http', bucket='mybucket', key='blob', original='...', endpoint='http://localhost:9000')
    """
    if not uri:
        raise ValueError("URI cannot be empty")

    # Check for unsafe patterns first
    if ".." in uri:
        raise ValueError(f"URI contains path traversal: {uri}")

    if "\\" in uri:
        raise ValueError(f"URI contains backslashes (use forward slashes): {uri}")

    match = re.match(r"^(s3|az|https?)://(.+)$", uri)
    if not match:
        raise ValueError(f"Invalid URI format, expected scheme://bucket/key: {uri}")

    scheme, remainder = match.groups()

    endpoint = None
    if scheme in ("http", "https"):
        if "/" not in remainder:
            raise ValueError(f"URI missing bucket/key path: {uri}")
        host, remainder = remainder.split("/", 1)
        if not host:
            raise ValueError(f"URI host cannot be empty: {uri}")
        endpoint = f"{scheme}://{host}"

    # Check for weird leading forms like "//something"
    if remainder.startswith("/"):
        raise ValueError(f"URI path cannot start with '/': {uri}")

    if "/" not in remainder:
        raise ValueError(f"URI missing key part, expected bucket/key: {uri}")

    bucket, key = remainder.split("/", 1)

    if not bucket:
        raise ValueError(f"Bucket name cannot be empty: {uri}")

    if not key:
        raise ValueError(f"Key cannot be empty: {uri}")

    return ParsedURI(
        scheme=scheme,  # type: ignore  # validated by the regex above
        bucket=bucket,
        key=key,
        original=uri,
        endpoint=endpoint,
    )
