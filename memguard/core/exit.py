"""Session-wide purging and safe termination."""

from __future__ import annotations

import sys
from contextlib import ExitStack
from typing import NoReturn

from . import sealing
from .crypto import MemguardError
from .memory import buffers


def purge() -> None:
    """Destroy every live buffer and the session key.

    Enclaves sealed before the purge can no longer be opened; the next
    operation creates a fresh key. If a buffer fails its canary check its
    data is still wiped, and the error is raised once all are handled.
    """
    errors: list[MemguardError] = []

    with sealing.key_lock:
        key = sealing.get_key()
        with ExitStack() as stack:
            if key is not None and not key.destroyed():
                # Halts the re-key cycle while the key's buffers go.
                stack.enter_context(key.lock)

            for buffer in buffers.flush():
                try:
                    buffer.destroy()
                except MemguardError as err:
                    errors.append(err)

    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise MemguardError("; ".join(str(err) for err in errors))


def exit_process(code: int) -> NoReturn:
    """Destroy the session key and all buffers, then exit with code."""
    key = sealing.get_key()
    if key is not None:
        try:
            key.destroy()
        except MemguardError:
            pass

    for buffer in buffers.copy():
        try:
            buffer.destroy()
        except MemguardError as err:
            panic(err)

    sys.exit(code)


def panic(value) -> NoReturn:
    """Purge the session, then raise value (wrapped if it is not an exception)."""
    purge()
    if isinstance(value, BaseException):
        raise value
    raise RuntimeError(value)