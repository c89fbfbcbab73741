# Storage boundary: fetch protocol, URI parsing and backend fetchers

from .base import ByteSource, ObjectFetcher, ObjectStat
from .uri import ParsedURI, parse_object_uri
from .factory import fetcher_for

__all__ = ["ByteSource", "ObjectFetcher", "ObjectStat", "ParsedURI", "parse_object_uri", "fetcher_for"]
