"""A container that keeps a 32 byte secret split across two guarded buffers."""

from __future__ import annotations

import threading

from .crypto import KEY_SIZE, MemguardError, hash_bytes, scramble, wipe
from .memory import Buffer

# Time between automatic re-key cycles, in seconds.
INTERVAL = 0.5


class CofferExpiredError(MemguardError):
    """An operation was attempted on a coffer that has been destroyed."""

    def __init__(self) -> None:
        super().__init__("attempted usage of destroyed key object")


def _xor_into(target, *others) -> None:
    """XOR every sequence in others into target, byte by byte."""
    result = bytearray(target)
    for other in others:
        for index, value in enumerate(other):
            result[index] ^= value
    target[:] = result
    wipe(result)


class Coffer:
    """Holds a 32 byte value as left = value XOR hash(right).

    The partitions are re-randomised in the background every INTERVAL
    seconds without changing the value they encode.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._left: Buffer | None = Buffer(KEY_SIZE)
        self._right: Buffer | None = Buffer(KEY_SIZE)
        self._rand: Buffer | None = Buffer(KEY_SIZE)
        self._stop = threading.Event()

        self.init()

        worker = threading.Thread(
            target=self._rekey_cycle, name="coffer-rekey", daemon=True
        )
        worker.start()

    def _rekey_cycle(self) -> None:
        while not self._stop.wait(INTERVAL):
            try:
                self.rekey()
            except MemguardError:
                break

    def init(self) -> None:
        """Replace the stored value with a fresh random 32 byte value."""
        with self.lock:
            if self._destroyed():
                raise CofferExpiredError()
            left = self._left.data
            right = self._right.data
            scramble(left)
            scramble(right)
            hashed = hash_bytes(right)
            _xor_into(left, hashed)
            wipe(hashed)

    def view(self) -> Buffer:
        """Return the stored value in a new Buffer, which the caller must destroy."""
        with self.lock:
            if self._destroyed():
                raise CofferExpiredError()
            result = Buffer(KEY_SIZE)
            hashed = hash_bytes(self._right.data)
            _xor_into(hashed, self._left.data)
            result.data[:] = hashed
            wipe(hashed)
            return result

    def rekey(self) -> None:
        """Re-randomise both partitions while keeping the stored value."""
        with self.lock:
            if self._destroyed():
                raise CofferExpiredError()
            rand = self._rand.data
            left = self._left.data
            right = self._right.data

            scramble(rand)
            hash_current = hash_bytes(right)
            _xor_into(right, rand)
            hash_new = hash_bytes(right)
            _xor_into(left, hash_current, hash_new)
            wipe(hash_current)
            wipe(hash_new)

    def destroy(self) -> None:
        """Wipe and release every partition; the coffer cannot be used afterwards."""
        with self.lock:
            self._stop.set()
            messages = []
            for part in (self._left, self._right, self._rand):
                if part is None:
                    continue
                try:
                    part.destroy()
                except MemguardError as err:
                    messages.append(str(err))
            if messages:
                raise MemguardError("\n".join(messages))

    def destroyed(self) -> bool:
        """True once the coffer can no longer be used."""
        with self.lock:
            return self._destroyed()

    def _destroyed(self) -> bool:
        if self._left is None or self._right is None:
            return True
        return not self._left.alive or not self._right.alive