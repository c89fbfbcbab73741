"""
Error classes for objstream.

Provides a small taxonomy of errors raised while streaming remote objects.
Storage adapters map HTTP status codes and SDK exceptions onto these so callers
see a consistent error interface regardless of the backend.

Filesystem failures (temp file creation, removal, sweeping) are not wrapped:
they surface as the standard ``OSError`` raised by ``os``/``tempfile``.
"""
from __future__ import annotations

import io
from typing import Optional


class ObjstreamError(Exception):
    """Base class for all objstream errors."""
    pass


class TransportError(ObjstreamError):
    """
    A fetch or metadata query against the object store failed.
    
    Raised when:
    - The connection fails or times out
    - The backend returns an unexpected status
    - The SDK raises a service error
    
    Never retried internally; the caller decides whether to try again.
    """
    
    def __init__(self, message: str, bucket: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.bucket = bucket
        self.key = key


class ObjectNotFound(TransportError):
    """
    Object or bucket does not exist.
    
    Raised when:
    - HTTP 404 Not Found
    - SDK resource not found exceptions
    """
    pass


class TransportAuthError(TransportError):
    """
    Authentication or authorization error.
    
    Raised when:
    - HTTP 401 Unauthorized (invalid credentials)
    - HTTP 403 Forbidden (insufficient permissions)
    - SDK authentication failures
    """
    pass


class UnsupportedSeekMode(ObjstreamError, io.UnsupportedOperation):
    """Seek mode other than io.SEEK_SET was requested on an object stream."""
    
    def __init__(self, whence: int):
        super().__init__(f"seek whence={whence} not supported, only io.SEEK_SET")
        self.whence = whence


__all__ = [
    "ObjstreamError",
    "TransportError",
    "ObjectNotFound",
    "TransportAuthError",
    "UnsupportedSeekMode",
]
