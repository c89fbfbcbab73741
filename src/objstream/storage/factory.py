"""
Fetcher selection by URI scheme.
"""
from __future__ import annotations

from ..settings import Settings
from .azure_fetcher import AzureBlobFetcher
from .base import ObjectFetcher
from .http_fetcher import HttpRangeFetcher
from .uri import parse_object_uri

__all__ = ["fetcher_for"]


def fetcher_for(uri: str, settings: Settings) -> ObjectFetcher:
    """
    Create the appropriate fetcher for an object URI.

    Args:
        uri: Object URI (s3://, az://, http(s)://host/bucket/key)
        settings: Settings for fetcher configuration

    Returns:
        ObjectFetcher for the URI scheme

    Raises:
        ValueError: For invalid URIs, or s3:// without a configured endpoint_url
    """
    parsed = parse_object_uri(uri)

    if parsed.scheme == "az":
        return AzureBlobFetcher(settings=settings)
    elif parsed.scheme in ("http", "https"):
        return HttpRangeFetcher(settings=settings, endpoint=parsed.endpoint)
    elif parsed.scheme == "s3":
        if not settings.endpoint_url:
            raise ValueError(f"s3:// URIs require OBJSTREAM_ENDPOINT_URL to be set: {uri}")
        return HttpRangeFetcher(settings=settings)
    else:
        # This shouldn't happen since parse_object_uri validates schemes
        raise ValueError(f"Unsupported URI scheme: {parsed.scheme}")
