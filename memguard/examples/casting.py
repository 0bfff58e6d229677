"""Guarded memory regions viewed as fixed-size arrays and records."""

from __future__ import annotations

from ..buffer import LockedBuffer, new_buffer

_KEY = slice(0, 32)
_SALT = slice(32, 48)
_COUNTER = slice(48, 56)
_SOMETHING = 56


class Secure:
    """A record of sensitive fields laid over 64 bytes of memory.

    Layout: a 32 byte key, two unsigned 64 bit salt values, an unsigned
    64 bit counter and a boolean flag, padded to 64 bytes. Integers use the
    machine's native byte order.
    """

    SIZE = 64

    __slots__ = ("_view",)

    def __init__(self, memory) -> None:
        view = memoryview(memory).cast("B")
        if len(view) < self.SIZE:
            raise ValueError(f"a Secure record needs {self.SIZE} bytes of memory")
        self._view = view[: self.SIZE]

    @property
    def key(self) -> memoryview:
        """The 32 byte key, as a view of the underlying memory."""
        return self._view[_KEY]

    @property
    def salt(self) -> memoryview:
        """The two salt values, as a view of the underlying memory."""
        return self._view[_SALT].cast("Q")

    @property
    def counter(self) -> int:
        """The counter value."""
        return self._view[_COUNTER].cast("Q")[0]

    @counter.setter
    def counter(self, value: int) -> None:
        self._view[_COUNTER].cast("Q")[0] = value

    @property
    def something(self) -> bool:
        """The boolean flag."""
        return bool(self._view[_SOMETHING])

    @something.setter
    def something(self, value: bool) -> None:
        self._view[_SOMETHING] = 1 if value else 0


def byte_array10() -> tuple[LockedBuffer, memoryview]:
    """Allocate 10 bytes and return the buffer with a view of exactly 10 bytes."""
    buffer = new_buffer(10)
    return buffer, buffer.bytes()[:10]


def uint64_array4() -> tuple[LockedBuffer, memoryview]:
    """Allocate 32 bytes and return them viewed as four unsigned 64 bit integers."""
    buffer = new_buffer(32)
    return buffer, buffer.bytes().cast("Q")


def secure_struct() -> tuple[LockedBuffer, Secure]:
    """Allocate one Secure record in guarded memory."""
    buffer = new_buffer(Secure.SIZE)
    return buffer, Secure(buffer.bytes())


def _records(buffer: LockedBuffer, count: int) -> list[Secure]:
    view = buffer.bytes()
    return [
        Secure(view[index * Secure.SIZE : (index + 1) * Secure.SIZE])
        for index in range(count)
    ]


def secure_struct_array() -> tuple[LockedBuffer, tuple[Secure, Secure]]:
    """Allocate two consecutive Secure records in guarded memory."""
    buffer = new_buffer(Secure.SIZE * 2)
    first, second = _records(buffer, 2)
    return buffer, (first, second)


def secure_struct_slice(size: int) -> tuple[LockedBuffer | None, list[Secure] | None]:
    """Allocate size consecutive Secure records; (None, None) if size is below one."""
    if size < 1:
        return None, None
    buffer = new_buffer(Secure.SIZE * size)
    return buffer, _records(buffer, size)