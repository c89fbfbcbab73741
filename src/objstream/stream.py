"""
Lazy, seekable stream over a remote object.

ObjectReadSeeker exposes a synchronous, randomly seekable binary stream on top of
a one-shot "fetch from offset to end" operation. No network call is made until
the first read after construction or after a seek.

Read state is modelled as a tagged value rather than independent flags:

    Idle(offset)      -> no handle; the next read fetches from ``offset``
    Fetching(...)     -> a handle opened at ``start``, delivered up to ``position``
    Exhausted(offset) -> the fetch reached end of object and its handle is closed

Every seek closes an active handle and moves to Idle, so a handle whose start
does not match the logical offset cannot exist.
"""
from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Union

from .errors import UnsupportedSeekMode
from .storage.base import ByteSource, ObjectFetcher, ObjectStat

__all__ = ["ObjectReadSeeker", "Idle", "Fetching", "Exhausted", "ReadState"]

logger = logging.getLogger(__name__)

# Read size used when discarding trailing bytes before closing a handle
DRAIN_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Idle:
    offset: int


@dataclass
class Fetching:
    start: int                   # Offset the fetch was issued at
    position: int                # Absolute offset of the next undelivered byte
    source: ByteSource
    size: int                    # Total object size, -1 if the backend did not report it


@dataclass(frozen=True)
class Exhausted:
    offset: int


ReadState = Union[Idle, Fetching, Exhausted]


def _drain(source: ByteSource) -> None:
    """Read and discard whatever is left so the transport can reuse the connection."""
    try:
        while source.read(DRAIN_CHUNK_SIZE):
            pass
    except Exception as e:
        # Best effort; the handle is closed right after either way
        logger.debug(f"Ignoring error while draining byte source: {e}")


class ObjectReadSeeker(io.RawIOBase):
    """
    Read-only, seekable raw stream bound to one remote object.

    Only absolute seeking (io.SEEK_SET) is supported. All operations serialize
    on a per-instance lock; an instance can be handed between threads but reads
    are never interleaved.

    Example:
        >>> stream = ObjectReadSeeker(fetcher, "bucket", "blob")
        >>> stream.read(5)
        >>> stream.seek(2)
        >>> stream.read()  # bytes [2:] of the object
    """

    def __init__(self, fetcher: ObjectFetcher, bucket: str, key: str, *, owns_fetcher: bool = False) -> None:
        """
        Args:
            fetcher: Fetch capability bound to the object store
            bucket: Container or bucket name
            key: Object key within the bucket
            owns_fetcher: Close the fetcher (and its connection pool) when the stream closes
        """
        super().__init__()
        self._owns_fetcher = owns_fetcher
        self.bucket = bucket
        self.key = key
        self.stat: Optional[ObjectStat] = None
        self._fetcher = fetcher
        self._lock = threading.Lock()
        self._state: ReadState = Idle(0)

    def __repr__(self) -> str:
        return f"<ObjectReadSeeker {self.bucket}/{self.key} state={self._state!r}>"

    @property
    def state(self) -> ReadState:
        """Current read state (for inspection; do not mutate)."""
        return self._state

    @property
    def eof(self) -> bool:
        """True once a fetch has been read to the end and its handle released."""
        return isinstance(self._state, Exhausted)

    def readable(self) -> bool:
        self._ensure_open()
        return True

    def seekable(self) -> bool:
        self._ensure_open()
        return True

    def readinto(self, b) -> int:
        """
        Read up to len(b) bytes into b and return the count.

        Issues a fetch from the current offset if none is active. The call that
        delivers the final bytes of the object also releases the handle, so
        ``eof`` may already be true when a non-zero count is returned; later
        calls return 0.

        Raises:
            TransportError: If the fetch could not be issued (state unchanged)
                or the source failed mid-read (handle released, state Idle)
        """
        with self._lock:
            self._ensure_open()
            view = memoryview(b).cast("B")
            if len(view) == 0:
                return 0

            state = self._state
            if isinstance(state, Exhausted):
                return 0
            if isinstance(state, Idle):
                state = self._open_fetch(state.offset)
                if self._at_end(state):
                    self._finish(state)
                    return 0

            try:
                data = state.source.read(len(view))
            except Exception:
                self._abort(state)
                raise

            n = len(data)
            view[:n] = data
            state.position += n

            if n == 0 or self._at_end(state):
                self._finish(state)
            return n

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """
        Move to an absolute offset without touching the network.

        Any active fetch is closed; the next read re-fetches from ``offset``.

        Raises:
            UnsupportedSeekMode: If whence is not io.SEEK_SET
            ValueError: If offset is negative
        """
        with self._lock:
            self._ensure_open()
            if whence != io.SEEK_SET:
                raise UnsupportedSeekMode(whence)
            if offset < 0:
                raise ValueError(f"negative seek position {offset}")

            state = self._state
            self._state = Idle(offset)
            if isinstance(state, Fetching):
                logger.debug(f"Seek to {offset} invalidates fetch of {self.bucket}/{self.key} "
                             f"started at {state.start}")
                state.source.close()
            return offset

    def tell(self) -> int:
        with self._lock:
            self._ensure_open()
            return self._offset()

    def size(self) -> int:
        """
        Return the object size using a metadata-only query.

        Does not change the read state; safe to call between reads.

        Raises:
            ObjectNotFound: If the object does not exist
            TransportError: For other metadata query failures
        """
        with self._lock:
            self._ensure_open()
            stat = self._fetcher.fetch_metadata(self.bucket, self.key)
            self.stat = stat
            return stat.size

    def close(self) -> None:
        """
        Release any active handle without draining it, and the fetcher if the
        stream owns it. Idempotent.
        """
        with self._lock:
            if self.closed:
                return
            state = self._state
            self._state = Exhausted(self._offset())
            try:
                if isinstance(state, Fetching):
                    state.source.close()
            finally:
                try:
                    if self._owns_fetcher:
                        self._close_fetcher()
                finally:
                    super().close()

    def _close_fetcher(self) -> None:
        close = getattr(self._fetcher, "close", None)
        if close is not None:
            logger.debug(f"Closing fetcher owned by stream for {self.bucket}/{self.key}")
            close()

    def _offset(self) -> int:
        state = self._state
        if isinstance(state, Fetching):
            return state.position
        return state.offset

    def _ensure_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed object stream")

    def _open_fetch(self, offset: int) -> Fetching:
        source, stat = self._fetcher.fetch_range(self.bucket, self.key, offset)
        logger.debug(f"Fetching {self.bucket}/{self.key} from offset {offset} (size={stat.size})")
        self.stat = stat
        state = Fetching(start=offset, position=offset, source=source, size=stat.size)
        self._state = state
        return state

    @staticmethod
    def _at_end(state: Fetching) -> bool:
        return state.size >= 0 and state.position >= state.size

    def _finish(self, state: Fetching) -> None:
        self._state = Exhausted(state.position)
        logger.debug(f"Reached end of {self.bucket}/{self.key} at offset {state.position}")
        _drain(state.source)
        state.source.close()

    def _abort(self, state: Fetching) -> None:
        self._state = Idle(state.position)
        logger.debug(f"Read of {self.bucket}/{self.key} failed at offset {state.position}, "
                     f"releasing handle")
        _drain(state.source)
        state.source.close()
