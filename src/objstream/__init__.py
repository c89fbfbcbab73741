"""
objstream: lazy, seekable streams over remote objects and scoped temp files.
"""
from __future__ import annotations

from .errors import ObjectNotFound, ObjstreamError, TransportAuthError, TransportError, UnsupportedSeekMode
from .settings import Settings, create_settings_from_env
from .stream import ObjectReadSeeker
from .tempfiles import ScopedTempFile, scoped_temp_file, sweep_stale
from .transfer import open_object, spool_to_temp, stage_upload, sweep_on_startup

__version__ = "0.1.0"

__all__ = [
    "ObjectReadSeeker",
    "ScopedTempFile",
    "scoped_temp_file",
    "sweep_stale",
    "Settings",
    "create_settings_from_env",
    "open_object",
    "spool_to_temp",
    "stage_upload",
    "sweep_on_startup",
    "ObjstreamError",
    "TransportError",
    "ObjectNotFound",
    "TransportAuthError",
    "UnsupportedSeekMode",
]
