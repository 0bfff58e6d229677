"""An in-memory encrypted stream that stores data as sealed chunks."""

from __future__ import annotations

import threading
from collections import deque

from .buffer import (
    Enclave,
    LockedBuffer,
    new_buffer,
    new_buffer_from_entire_reader,
    new_enclave,
)
from .core import crypto
from .core.crypto import PAGE_SIZE

# The largest amount of data held decrypted in locked memory at once.
STREAM_CHUNK_SIZE = PAGE_SIZE * 4


class Stream:
    """An encrypted container that data is written to and read from in order.

    Written data is split into chunks of at most STREAM_CHUNK_SIZE bytes,
    each sealed in its own Enclave.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: deque[Enclave] = deque()

    def write(self, data) -> int:
        """Encrypt data onto the end of the stream and wipe data if writable.

        Returns the number of bytes written.
        """
        view = memoryview(data).cast("B")
        with self._lock:
            for start in range(0, len(view), STREAM_CHUNK_SIZE):
                chunk = view[start : start + STREAM_CHUNK_SIZE]
                if chunk.readonly:
                    chunk = bytearray(chunk)
                self._chunks.append(new_enclave(chunk))
        return len(view)

    def readinto(self, buf) -> int:
        """Decrypt the next chunk into buf and return the number of bytes placed.

        Returns 0 when the stream is empty. Whatever part of the chunk does not
        fit is re-encrypted and returned by the next read.
        """
        target = memoryview(buf).cast("B")
        with self._lock:
            chunk = self._next()
            if chunk is None:
                return 0
            with chunk:
                data = chunk.bytes()
                crypto.copy(target, data)
                if len(target) < len(data):
                    rest = new_buffer(len(data) - len(target))
                    rest.copy(data[len(target) :])
                    self._chunks.appendleft(rest.seal())
                    return len(target)
                return len(data)

    def size(self) -> int:
        """The number of bytes currently stored in the stream."""
        with self._lock:
            return sum(enclave.size() for enclave in self._chunks)

    def next(self) -> LockedBuffer:
        """Decrypt and return the next chunk; raises EOFError if the stream is empty."""
        with self._lock:
            chunk = self._next()
        if chunk is None:
            raise EOFError("stream is empty")
        return chunk

    def _next(self) -> LockedBuffer | None:
        if not self._chunks:
            return None
        return self._chunks.popleft().open()

    def flush(self) -> LockedBuffer:
        """Read all remaining data into a single immutable LockedBuffer."""
        return new_buffer_from_entire_reader(self)