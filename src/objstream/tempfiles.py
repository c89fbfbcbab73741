"""
Scoped temporary files for buffering object data.

ScopedTempFile owns one uniquely named file under an explicit directory and
removes it exactly once. sweep_stale() reclaims files left behind by a process
that exited without releasing them.
"""
from __future__ import annotations

import glob
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

__all__ = ["ScopedTempFile", "scoped_temp_file", "sweep_stale"]

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class ScopedTempFile:
    """
    Read/write temp file whose backing path is removed on release().

    Use as a context manager (or via scoped_temp_file()) so the file is released
    on every exit path. release() is idempotent: ownership is tracked by a flag
    under a per-instance lock, not by relying on double close being harmless.
    """

    def __init__(self, file: BinaryIO, path: Path) -> None:
        self._file = file
        self.path = path
        self._owned = True
        self._lock = threading.Lock()

    @classmethod
    def acquire(cls, prefix: str, directory: Optional[PathLike] = None) -> "ScopedTempFile":
        """
        Create a new uniquely named file positioned at offset 0.

        Args:
            prefix: Name prefix; a random suffix is appended
            directory: Parent directory (defaults to the platform temp directory)

        Raises:
            OSError: If the directory is missing, unwritable or exhausted
        """
        parent = os.fspath(directory) if directory is not None else tempfile.gettempdir()
        fd, name = tempfile.mkstemp(prefix=prefix, dir=parent)
        try:
            file = os.fdopen(fd, "w+b")
        except BaseException:
            os.close(fd)
            os.unlink(name)
            raise
        logger.debug(f"Acquired temp file {name}")
        return cls(file, Path(name))

    def __enter__(self) -> "ScopedTempFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "owned" if self._owned else "released"
        return f"<ScopedTempFile {self.path} {state}>"

    @property
    def name(self) -> str:
        return str(self.path)

    @property
    def released(self) -> bool:
        return not self._owned

    @property
    def closed(self) -> bool:
        return self._file.closed

    def release(self) -> None:
        """
        Close the handle and delete the backing file.

        A second call after a successful release does nothing. If closing or
        deleting fails the resource stays owned, so calling release() again is
        safe.

        Raises:
            OSError: If the file cannot be closed or removed
        """
        with self._lock:
            if not self._owned:
                return
            self._file.close()
            try:
                self.path.unlink()
            except FileNotFoundError:
                logger.debug(f"Temp file {self.path} already removed")
            self._owned = False
            logger.debug(f"Released temp file {self.path}")

    # File-like surface; everything goes through the held handle

    def _handle(self) -> BinaryIO:
        if not self._owned:
            raise ValueError(f"temp file {self.path} has been released")
        return self._file

    def write(self, data) -> int:
        return self._handle().write(data)

    def read(self, size: int = -1) -> bytes:
        return self._handle().read(size)

    def readinto(self, b) -> int:
        return self._handle().readinto(b)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._handle().seek(offset, whence)

    def tell(self) -> int:
        return self._handle().tell()

    def flush(self) -> None:
        self._handle().flush()

    def truncate(self, size: Optional[int] = None) -> int:
        return self._handle().truncate(size)

    def fileno(self) -> int:
        return self._handle().fileno()

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True


@contextmanager
def scoped_temp_file(prefix: str, directory: Optional[PathLike] = None) -> Iterator[ScopedTempFile]:
    """Acquire a ScopedTempFile and release it however the block exits."""
    tmp = ScopedTempFile.acquire(prefix, directory)
    try:
        yield tmp
    finally:
        tmp.release()


def sweep_stale(prefix: str, directory: Optional[PathLike] = None) -> List[str]:
    """
    Delete every entry in ``directory`` whose name starts with ``prefix``.

    Stops at the first entry that cannot be removed and raises its error, leaving
    the remaining files for a later sweep.

    Args:
        prefix: Name prefix used when the files were acquired
        directory: Directory to sweep (defaults to the platform temp directory)

    Returns:
        Paths that were removed, empty if nothing matched

    Raises:
        ValueError: If prefix is empty (would match every entry)
        OSError: On the first removal failure
    """
    if not prefix:
        raise ValueError("sweep prefix cannot be empty")

    parent = os.fspath(directory) if directory is not None else tempfile.gettempdir()
    pattern = os.path.join(glob.escape(parent), glob.escape(prefix)) + "*"

    removed: List[str] = []
    for stale in sorted(glob.glob(pattern)):
        os.remove(stale)
        removed.append(stale)

    if removed:
        logger.info(f"Removed {len(removed)} stale temp file(s) matching {prefix}* in {parent}")
    return removed
