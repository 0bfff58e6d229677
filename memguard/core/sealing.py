"""Encrypted enclaves sealed under a session key held in a Coffer."""

from __future__ import annotations

import threading
from dataclasses import dataclass

from .coffer import Coffer
from .crypto import OVERHEAD, MemguardError, decrypt, encrypt, wipe
from .memory import Buffer, BufferExpiredError, NullBufferError

# Guards replacement of the session key.
key_lock = threading.RLock()
_key: Coffer | None = None


class NullEnclaveError(MemguardError, ValueError):
    """An enclave was requested for data of length less than one."""

    def __init__(self) -> None:
        super().__init__("enclave size must be greater than zero")


@dataclass(eq=False)
class Enclave:
    """A sealed and encrypted container for sensitive data."""

    ciphertext: bytearray


def get_or_create_key() -> Coffer:
    """Return the session key, creating a fresh one if there is none."""
    global _key
    with key_lock:
        if _key is None or _key.destroyed():
            _key = Coffer()
        return _key


def get_key() -> Coffer | None:
    """Return the current session key without creating one."""
    with key_lock:
        return _key


def new_enclave(buf) -> Enclave:
    """Encrypt buf into a new Enclave and wipe buf."""
    if len(buf) < 1:
        raise NullEnclaveError()

    with get_or_create_key().view() as key_view:
        ciphertext = encrypt(buf, key_view.data)

    wipe(buf)
    return Enclave(ciphertext)


def seal(buffer: Buffer) -> Enclave:
    """Encrypt a Buffer's data into an Enclave and destroy the Buffer."""
    if not buffer.alive:
        raise BufferExpiredError()

    buffer.melt()
    with buffer.lock:
        enclave = new_enclave(buffer.data)
    buffer.destroy()
    return enclave


def open_enclave(enclave: Enclave) -> Buffer:
    """Decrypt an Enclave into a new Buffer; the Enclave is left untouched."""
    try:
        buffer = Buffer(len(enclave.ciphertext) - OVERHEAD)
    except NullBufferError:
        from .exit import panic

        panic(MemguardError("ciphertext has invalid length"))

    try:
        with get_or_create_key().view() as key_view:
            decrypt(enclave.ciphertext, key_view.data, buffer.data)
    except BaseException:
        buffer.destroy()
        raise
    return buffer


def enclave_size(enclave: Enclave) -> int:
    """Return the number of plaintext bytes stored in an Enclave."""
    return len(enclave.ciphertext) - OVERHEAD