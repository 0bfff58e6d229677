"""Working on a large secret in chunks through an encrypted Stream."""

from __future__ import annotations

from ..buffer import new_buffer, new_buffer_random
from ..core.crypto import PAGE_SIZE, MemguardError
from ..session import safe_panic
from ..stream import Stream


def slow_rand_byte() -> int:
    """Write 16 KiB of random data to a Stream, read it back a page at a time,
    and return the XOR of all its bytes.
    """
    data = new_buffer_random(1024 * 16)
    data.melt()  # the stream wipes the source as it writes

    stream = Stream()
    stream.write(data.bytes())
    data.destroy()

    parity = 0
    with new_buffer(PAGE_SIZE) as chunk:
        view = chunk.bytes()
        while True:
            try:
                count = stream.readinto(view)
            except MemguardError as err:
                safe_panic(err)
            if count == 0:
                break
            for value in view[:count]:
                parity ^= value
    return parity