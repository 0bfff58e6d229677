"""Guarded buffers and encrypted enclaves for sensitive data."""

from __future__ import annotations

import io

from .core import crypto, sealing
from .core.crypto import PAGE_SIZE, DecryptionFailedError, MemguardError
from .core.exit import panic
from .core.memory import Buffer, BufferExpiredError, NullBufferError

_EMPTY = memoryview(b"")


class PartialReadError(MemguardError):
    """A reader stopped before the requested data was read.

    The data that was read is available, frozen, as ``buffer``.
    """

    def __init__(self, buffer: LockedBuffer, message: str) -> None:
        super().__init__(message)
        self.buffer = buffer


class _MemoryReader(io.RawIOBase):
    """A reader over a memory region that does not copy the region."""

    def __init__(self, view: memoryview) -> None:
        super().__init__()
        self._view = view
        self._position = 0

    def readable(self) -> bool:
        return True

    def readinto(self, target) -> int:
        count = crypto.copy(target, self._view[self._position :])
        self._position += count
        return count


class LockedBuffer:
    """Raw sensitive data held in guarded memory.

    A buffer built without a core buffer is a null buffer: size zero, not
    alive and not mutable.
    """

    def __init__(self, buffer: Buffer | None = None) -> None:
        self._buffer = buffer

    def __enter__(self) -> LockedBuffer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.destroy()

    def freeze(self) -> None:
        """Make the memory immutable; reversed by melt."""
        if self._buffer is not None:
            self._buffer.freeze()

    def melt(self) -> None:
        """Make the memory mutable; reversed by freeze."""
        if self._buffer is not None:
            self._buffer.melt()

    def seal(self) -> Enclave | None:
        """Encrypt the contents into an Enclave and destroy this buffer.

        Returns None if the buffer has already been destroyed.
        """
        if self._buffer is None:
            return None
        try:
            sealed = sealing.seal(self._buffer)
        except BufferExpiredError:
            return None
        except MemguardError as err:
            panic(err)
        return Enclave(sealed)

    def copy(self, src) -> None:
        """Copy src into the start of the buffer in constant time."""
        self.copy_at(0, src)

    def copy_at(self, offset: int, src) -> None:
        """Copy src into the buffer at offset in constant time."""
        if not self.is_alive():
            return
        with self._buffer.lock:
            crypto.copy(self._buffer.data[offset:], src)

    def move(self, src) -> None:
        """Copy src into the start of the buffer, then wipe src."""
        self.move_at(0, src)

    def move_at(self, offset: int, src) -> None:
        """Copy src into the buffer at offset, then wipe src when it is writable."""
        if not self.is_alive():
            return
        with self._buffer.lock:
            crypto.copy(self._buffer.data[offset:], src)
        if not isinstance(src, bytes):
            crypto.wipe(src)

    def scramble(self) -> None:
        """Overwrite the data with cryptographically-secure random bytes."""
        if self.is_alive():
            self._buffer.scramble()

    def wipe(self) -> None:
        """Overwrite the data with zeroes."""
        if not self.is_alive():
            return
        with self._buffer.lock:
            crypto.wipe(self._buffer.data)

    def size(self) -> int:
        """The length of the data; zero once destroyed."""
        return len(self.bytes())

    def destroy(self) -> None:
        """Wipe and release the memory; the buffer is unusable afterwards."""
        if self._buffer is None:
            return
        try:
            self._buffer.destroy()
        except MemguardError as err:
            panic(err)

    def is_alive(self) -> bool:
        """True while the buffer has not been destroyed."""
        return self._buffer is not None and self._buffer.alive

    def is_mutable(self) -> bool:
        """True while the buffer's memory may be written."""
        return self._buffer is not None and self._buffer.mutable

    def equal_to(self, buf) -> bool:
        """Compare the contents with buf in constant time."""
        if self._buffer is None:
            return crypto.equal(_EMPTY, buf)
        with self._buffer.lock:
            return crypto.equal(self._buffer.data, buf)

    def bytes(self) -> memoryview:
        """A view of the protected memory; read-only while frozen, empty once destroyed."""
        if self._buffer is None:
            return _EMPTY
        return self._buffer.data

    def reader(self) -> io.RawIOBase:
        """A reader over the protected memory that does not copy it."""
        return _MemoryReader(self.bytes())

    def string(self) -> str:
        """The contents decoded as UTF-8; undecodable bytes are kept as surrogates."""
        return bytes(self.bytes()).decode("utf-8", errors="surrogateescape")

    def _cast(self, fmt: str, width: int) -> memoryview | None:
        if not self.is_alive():
            return None
        with self._buffer.lock:
            view = self._buffer.data
            count = len(view) // width
            if count < 1:
                return None
            return view[: count * width].cast(fmt)

    def uint16(self) -> memoryview | None:
        """The memory as unsigned 16 bit integers, or None if too small or destroyed."""
        return self._cast("H", 2)

    def uint32(self) -> memoryview | None:
        """The memory as unsigned 32 bit integers, or None if too small or destroyed."""
        return self._cast("I", 4)

    def uint64(self) -> memoryview | None:
        """The memory as unsigned 64 bit integers, or None if too small or destroyed."""
        return self._cast("Q", 8)

    def int8(self) -> memoryview | None:
        """The memory as signed 8 bit integers, or None if destroyed."""
        return self._cast("b", 1)

    def int16(self) -> memoryview | None:
        """The memory as signed 16 bit integers, or None if too small or destroyed."""
        return self._cast("h", 2)

    def int32(self) -> memoryview | None:
        """The memory as signed 32 bit integers, or None if too small or destroyed."""
        return self._cast("i", 4)

    def int64(self) -> memoryview | None:
        """The memory as signed 64 bit integers, or None if too small or destroyed."""
        return self._cast("q", 8)

    def _byte_array(self, length: int) -> memoryview | None:
        if not self.is_alive():
            return None
        with self._buffer.lock:
            view = self._buffer.data
            if len(view) < length:
                return None
            return view[:length]

    def byte_array8(self) -> memoryview | None:
        """The first 8 bytes of memory, or None if smaller or destroyed."""
        return self._byte_array(8)

    def byte_array16(self) -> memoryview | None:
        """The first 16 bytes of memory, or None if smaller or destroyed."""
        return self._byte_array(16)

    def byte_array32(self) -> memoryview | None:
        """The first 32 bytes of memory, or None if smaller or destroyed."""
        return self._byte_array(32)

    def byte_array64(self) -> memoryview | None:
        """The first 64 bytes of memory, or None if smaller or destroyed."""
        return self._byte_array(64)


class Enclave:
    """A sealed and encrypted container for sensitive data."""

    __slots__ = ("_sealed",)

    def __init__(self, sealed: sealing.Enclave) -> None:
        self._sealed = sealed

    def open(self) -> LockedBuffer:
        """Decrypt into a new immutable LockedBuffer.

        Raises DecryptionFailedError if the key changed or the data is corrupt.
        """
        try:
            buffer = sealing.open_enclave(self._sealed)
        except DecryptionFailedError:
            raise
        except MemguardError as err:
            panic(err)
        buffer.freeze()
        return LockedBuffer(buffer)

    def size(self) -> int:
        """The number of bytes of data stored in the enclave."""
        return sealing.enclave_size(self._sealed)


def new_buffer(size: int) -> LockedBuffer:
    """Create a mutable, zeroed buffer; a size below one gives a null buffer."""
    try:
        return LockedBuffer(Buffer(size))
    except NullBufferError:
        return LockedBuffer()


def new_buffer_from_bytes(src) -> LockedBuffer:
    """Move src into a new immutable buffer; a writable src is wiped."""
    buffer = new_buffer(len(src))
    if buffer.size() == 0:
        return buffer
    buffer.move(src)
    buffer.freeze()
    return buffer


def new_buffer_random(size: int) -> LockedBuffer:
    """Create an immutable buffer filled with cryptographically-secure random bytes."""
    buffer = new_buffer(size)
    if buffer.size() == 0:
        return buffer
    buffer.scramble()
    buffer.freeze()
    return buffer


def _read_into(reader, view: memoryview) -> int | None:
    """Read into view; None means no data yet, zero means end of data."""
    readinto = getattr(reader, "readinto", None)
    if readinto is not None:
        return readinto(view)
    chunk = reader.read(len(view))
    if chunk is None:
        return None
    count = len(chunk)
    view[:count] = chunk
    return count


def _truncated(buffer: LockedBuffer, length: int) -> LockedBuffer:
    """Return the first length bytes of buffer in a new frozen buffer and destroy it."""
    if length == 0:
        buffer.destroy()
        return LockedBuffer()
    result = new_buffer(length)
    result.copy(buffer.bytes()[:length])
    result.freeze()
    buffer.destroy()
    return result


def _grown(buffer: LockedBuffer) -> LockedBuffer:
    """Return a copy of buffer one page larger and destroy the original."""
    larger = new_buffer(buffer.size() + PAGE_SIZE)
    larger.copy(buffer.bytes())
    buffer.destroy()
    return larger


def new_buffer_from_reader(reader, size: int) -> LockedBuffer:
    """Read exactly size bytes from reader into an immutable buffer.

    Raises PartialReadError, carrying whatever was read, if fewer bytes arrive.
    """
    buffer = new_buffer(size)
    if buffer.size() == 0:
        return buffer

    view = buffer.bytes()
    filled = 0
    while filled < size:
        try:
            count = _read_into(reader, view[filled:])
        except Exception as err:
            raise PartialReadError(_truncated(buffer, filled), str(err)) from err
        if count is None:
            continue
        if count == 0:
            raise PartialReadError(_truncated(buffer, filled), "unexpected end of data")
        filled += count

    buffer.freeze()
    return buffer


def new_buffer_from_reader_until(reader, delim) -> LockedBuffer:
    """Read from reader into an immutable buffer up to, not including, delim.

    Raises PartialReadError, carrying whatever was read, if the data ends or
    the reader fails before the delimiter.
    """
    if isinstance(delim, (bytes, bytearray)):
        (delim,) = delim
    buffer = new_buffer(PAGE_SIZE)
    index = 0
    while True:
        if index == buffer.size():
            buffer = _grown(buffer)
        view = buffer.bytes()
        try:
            count = _read_into(reader, view[index : index + 1])
        except Exception as err:
            raise PartialReadError(_truncated(buffer, index), str(err)) from err
        if count is None:
            continue
        if count == 0:
            raise PartialReadError(_truncated(buffer, index), "unexpected end of data")
        if view[index] == delim:
            return _truncated(buffer, index)
        index += 1


def new_buffer_from_entire_reader(reader) -> LockedBuffer:
    """Read from reader until the end of its data into an immutable buffer.

    Raises PartialReadError, carrying whatever was read, if the reader fails.
    """
    buffer = new_buffer(PAGE_SIZE)
    read = 0
    while True:
        try:
            count = _read_into(reader, buffer.bytes()[read:])
        except Exception as err:
            raise PartialReadError(_truncated(buffer, read), str(err)) from err
        if count is None:
            continue
        if count == 0:
            return _truncated(buffer, read)
        read += count
        if read == buffer.size():
            buffer = _grown(buffer)


def new_enclave(src) -> Enclave | None:
    """Seal src into an Enclave and wipe src; returns None if src is empty."""
    if isinstance(src, bytes):
        src = bytearray(src)
    try:
        sealed = sealing.new_enclave(src)
    except sealing.NullEnclaveError:
        return None
    except MemguardError as err:
        panic(err)
    return Enclave(sealed)


def new_enclave_random(size: int) -> Enclave | None:
    """Seal size random bytes into an Enclave; returns None if size is below one."""
    return new_buffer_random(size).seal()