"""Session-wide helpers for protecting sensitive data in memory.

Two containers are provided. An Enclave encrypts data and keeps only the
ciphertext; a LockedBuffer is a guarded allocation holding plaintext. Store
secrets in enclaves while they are not needed, open them where they are,
and destroy the resulting buffers as soon as possible.

Existing enclaves stop being decryptable once the session is purged, so
call ``purge`` before the program finishes, or leave through ``safe_exit``
or ``safe_panic``. ``memguard.signals.catch_interrupt`` wipes the session
when the process is interrupted.
"""

from __future__ import annotations

from typing import NoReturn

from .core import crypto
from .core.exit import exit_process, panic
from .core.exit import purge as _purge_session


def scramble_bytes(buf) -> None:
    """Overwrite a writable buffer with cryptographically-secure random bytes."""
    try:
        crypto.scramble(buf)
    except OSError as err:
        panic(err)


def wipe_bytes(buf) -> None:
    """Overwrite a writable buffer with zeroes."""
    crypto.wipe(buf)


def purge() -> None:
    """Reset the session key and destroy every LockedBuffer.

    Enclaves sealed before the purge can no longer be opened.
    """
    _purge_session()


def safe_panic(value) -> NoReturn:
    """Wipe everything that can be wiped, then raise value."""
    panic(value)


def safe_exit(code: int) -> NoReturn:
    """Destroy everything sensitive, then exit with the given status code."""
    exit_process(code)