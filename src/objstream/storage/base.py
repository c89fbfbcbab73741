"""
Storage interfaces for objstream.

These protocols define the boundary between the stream core and storage
implementations, enabling clean dependency injection and testing with fakes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable


@dataclass(frozen=True)
class ObjectStat:
    """
    Metadata for a remote object.
    
    Invariants:
    - size: total byte length of the object, not of the fetched range;
      -1 only from a range fetch whose backend did not report a total
    - etag/content_type: optional hints, the stream never branches on them
    """
    bucket: str
    key: str
    size: int
    etag: Optional[str] = None
    content_type: Optional[str] = None


__all__ = ["ObjectStat", "ByteSource", "ObjectFetcher"]


@runtime_checkable
class ByteSource(Protocol):
    """Readable byte source returned by a range fetch."""
    
    def read(self, size: int = -1) -> bytes:
        """Return up to ``size`` bytes; ``b""`` means end of data."""
        ...

    def close(self) -> None:
        """Release the underlying connection; safe before the source is drained."""
        ...


@runtime_checkable
class ObjectFetcher(Protocol):
    """Protocol for the two fetch operations the stream core consumes."""
    
    def fetch_range(self, bucket: str, key: str, offset: int) -> Tuple[ByteSource, ObjectStat]:
        """
        Open a byte source from ``offset`` through the end of the object.
        
        An offset at or past the end yields an empty source rather than an error.
        
        Args:
            bucket: Container or bucket name
            key: Object key within the bucket
            offset: Absolute start offset (>= 0)
            
        Returns:
            (source, stat) where stat.size is the total object size
            
        Raises:
            ObjectNotFound: If the object does not exist
            TransportError: For other network or service errors
        """
        ...

    def fetch_metadata(self, bucket: str, key: str) -> ObjectStat:
        """
        Get object metadata without transferring object bytes.
        
        Raises:
            ObjectNotFound: If the object does not exist
            TransportError: For other network or service errors
        """
        ...
