"""
Helpers composing object streams with scoped temp files.

These are the thin glue a download or staged-upload step needs: open a stream
for a URI, spool a stream into a temp file, stage a local file before upload,
and reclaim temp files left behind by a crashed run.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from .settings import Settings
from .storage.base import ObjectFetcher
from .storage.factory import fetcher_for
from .storage.uri import parse_object_uri
from .stream import ObjectReadSeeker
from .tempfiles import ScopedTempFile, sweep_stale

__all__ = ["open_object", "spool_to_temp", "stage_upload", "sweep_on_startup"]

logger = logging.getLogger(__name__)


def open_object(uri: str, settings: Settings, fetcher: Optional[ObjectFetcher] = None) -> ObjectReadSeeker:
    """
    Open a lazy stream for an object URI. No request is made until the first read.

    Args:
        uri: Object URI (s3://, az://, http(s)://host/bucket/key)
        settings: Settings used to build a fetcher when none is given
        fetcher: Fetcher to use instead of the one selected by URI scheme; the
            caller keeps ownership of it

    Raises:
        ValueError: If the URI is invalid or its backend is not configured
    """
    parsed = parse_object_uri(uri)
    if fetcher is not None:
        return ObjectReadSeeker(fetcher, parsed.bucket, parsed.key)
    # A fetcher built here is closed together with the stream
    return ObjectReadSeeker(fetcher_for(uri, settings), parsed.bucket, parsed.key, owns_fetcher=True)


def _copy_into_temp(source: BinaryIO, settings: Settings, prefix: Optional[str]) -> ScopedTempFile:
    tmp = ScopedTempFile.acquire(prefix or settings.temp_prefix, settings.resolved_temp_dir())
    try:
        shutil.copyfileobj(source, tmp, settings.read_chunk_size)
        tmp.flush()
        tmp.seek(0)
    except BaseException:
        tmp.release()
        raise
    return tmp


def spool_to_temp(stream: BinaryIO, settings: Settings, prefix: Optional[str] = None) -> ScopedTempFile:
    """
    Copy a readable stream into a new temp file and rewind it.

    The caller owns the returned file and must release it (use it in a with
    block). If the copy fails the temp file is released before the error
    propagates.

    Raises:
        TransportError: If reading the stream fails
        OSError: If the temp file cannot be created or written
    """
    tmp = _copy_into_temp(stream, settings, prefix)
    logger.debug(f"Spooled {tmp.path.stat().st_size} bytes into {tmp.path}")
    return tmp


def stage_upload(source_path: Union[str, Path], settings: Settings, prefix: Optional[str] = None) -> ScopedTempFile:
    """
    Stage a local file into a temp copy ahead of an upload.

    The staged copy is stable even if the original changes while the upload
    is in progress.

    Raises:
        OSError: If the source cannot be read or the temp file written
    """
    with open(source_path, "rb") as source:
        tmp = _copy_into_temp(source, settings, prefix)
    logger.debug(f"Staged {source_path} into {tmp.path}")
    return tmp


def sweep_on_startup(settings: Settings) -> List[str]:
    """Remove temp files a previous process left behind under the configured prefix."""
    return sweep_stale(settings.temp_prefix, settings.resolved_temp_dir())
