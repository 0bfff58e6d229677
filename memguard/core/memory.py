"""Guarded memory regions for holding sensitive data."""

from __future__ import annotations

import mmap
import threading

try:
    import resource
except ImportError:  # not available on every platform
    resource = None

from .crypto import (
    PAGE_SIZE,
    MemguardError,
    copy,
    equal,
    round_to_page_size,
    scramble,
    wipe,
)

_EMPTY = memoryview(b"")


class NullBufferError(MemguardError, ValueError):
    """A buffer was requested with a size less than one."""

    def __init__(self) -> None:
        super().__init__("buffer size must be greater than zero")


class BufferExpiredError(MemguardError):
    """An operation was attempted on a buffer that has been destroyed."""

    def __init__(self) -> None:
        super().__init__("buffer has been purged from memory and can no longer be used")


class CanaryVerificationError(MemguardError):
    """The guard values around a buffer were altered."""

    def __init__(self) -> None:
        super().__init__("canary verification failed; buffer overflow detected")


def disable_core_dumps() -> None:
    """Prevent the process from writing core dumps."""
    if resource is not None:
        resource.setrlimit(resource.RLIMIT_CORE, (0, 0))


def _advise_no_dump(memory: mmap.mmap) -> None:
    advice = getattr(mmap, "MADV_DONTDUMP", None)
    if advice is not None:
        memory.madvise(advice)


class Buffer:
    """A page-aligned allocation holding sensitive data between guard pages.

    The data sits at the very end of the inner pages; the rest of the inner
    region holds a random canary that is mirrored into both guard pages and
    checked when the buffer is destroyed.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise NullBufferError()

        self.lock = threading.RLock()

        inner_len = round_to_page_size(size)
        self._memory = mmap.mmap(-1, 2 * PAGE_SIZE + inner_len)
        _advise_no_dump(self._memory)

        view = memoryview(self._memory)
        end = PAGE_SIZE + inner_len
        self._view = view
        self._preguard = view[:PAGE_SIZE]
        self._inner = view[PAGE_SIZE:end]
        self._postguard = view[end:]
        self._data = view[end - size : end]
        self._canary = view[PAGE_SIZE : end - size]

        scramble(self._canary)
        copy(self._preguard, self._canary)
        copy(self._postguard, self._canary)

        self._alive = True
        self._mutable = True

        buffers.add(self)

    def __enter__(self) -> Buffer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.destroy()

    def _view_of(self, region):
        if region is None:
            return _EMPTY
        return region if self._mutable else region.toreadonly()

    @property
    def data(self) -> memoryview:
        """The region holding the data; empty once destroyed, read-only while frozen."""
        with self.lock:
            return self._view_of(self._data)

    @property
    def inner(self) -> memoryview:
        """The whole inner region between the guard pages."""
        with self.lock:
            return self._view_of(self._inner)

    @property
    def alive(self) -> bool:
        """True while the buffer has not been destroyed."""
        with self.lock:
            return self._alive

    @property
    def mutable(self) -> bool:
        """True while the buffer's memory may be written."""
        with self.lock:
            return self._mutable

    def freeze(self) -> None:
        """Make the data immutable. Does nothing once destroyed."""
        with self.lock:
            if self._alive:
                self._mutable = False

    def melt(self) -> None:
        """Make the data mutable. Does nothing once destroyed."""
        with self.lock:
            if self._alive:
                self._mutable = True

    def scramble(self) -> None:
        """Overwrite the data with cryptographically-secure random bytes."""
        with self.lock:
            scramble(self.data)

    def destroy(self) -> None:
        """Wipe the data, verify the canary and release the memory.

        Raises CanaryVerificationError if the guard values were altered; the
        data itself has been wiped by then. Destroying twice does nothing.
        """
        with self.lock:
            if self._alive:
                self._mutable = True
                wipe(self._data)
                canary_len = len(self._canary)
                if not equal(self._preguard, self._postguard) or not equal(
                    self._preguard[:canary_len], self._canary
                ):
                    raise CanaryVerificationError()
                wipe(self._view)
                self._release()
        buffers.remove(self)

    def _release(self) -> None:
        memory = self._memory
        self._alive = False
        self._mutable = False
        self._memory = None
        self._view = None
        self._preguard = None
        self._inner = None
        self._postguard = None
        self._data = None
        self._canary = None
        try:
            memory.close()
        except BufferError:
            # Views handed out earlier still reference the (wiped) mapping;
            # it is released when they are collected.
            pass


class BufferList:
    """A thread-safe list of live buffers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def add(self, *args) -> None:
        """Append the given buffers."""
        with self._lock:
            self._items.extend(args)

    def copy(self) -> list:
        """Return a snapshot of the list."""
        with self._lock:
            return list(self._items)

    def remove(self, buffer) -> None:
        """Remove the given buffer if present."""
        with self._lock:
            for index, item in enumerate(self._items):
                if item is buffer:
                    del self._items[index]
                    break

    def exists(self, buffer) -> bool:
        """Report whether the given buffer is in the list."""
        with self._lock:
            return any(item is buffer for item in self._items)

    def flush(self) -> list:
        """Empty the list and return its previous contents."""
        with self._lock:
            items, self._items = self._items, []
            return items


buffers = BufferList()

disable_core_dumps()