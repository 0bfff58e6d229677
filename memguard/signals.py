"""Wiping the session and terminating when the process receives a signal."""

from __future__ import annotations

import signal
import threading
from typing import Callable

from .core.exit import exit_process

_UNCATCHABLE = frozenset(
    getattr(signal, name) for name in ("SIGKILL", "SIGSTOP") if hasattr(signal, name)
)

_lock = threading.Lock()
_handler: Callable | None = None
_previous: dict = {}


def _as_signal(signum):
    try:
        return signal.Signals(signum)
    except ValueError:
        return signum


def _dispatch(signum, frame) -> None:
    handler = _handler
    if handler is not None:
        handler(_as_signal(signum))
    exit_process(1)


def catch_signal(handler: Callable, *args) -> None:
    """Run handler when one of the given signals arrives, then wipe and exit with 1.

    With no signals given, every catchable signal is caught. Each call
    replaces the handler and signals set by the previous one.
    """
    global _handler
    requested = args or tuple(signal.valid_signals())

    with _lock:
        _handler = handler

        for signum, previous in _previous.items():
            try:
                signal.signal(signum, previous)
            except (OSError, TypeError):
                signal.signal(signum, signal.SIG_DFL)
        _previous.clear()

        for signum in requested:
            if signum in _UNCATCHABLE or signum in _previous:
                continue
            try:
                previous = signal.signal(signum, _dispatch)
            except OSError:
                continue
            _previous[signum] = signal.SIG_DFL if previous is None else previous


def catch_interrupt() -> None:
    """Wipe sensitive data and exit with 1 when an interrupt is received."""
    catch_signal(lambda _signal: None, signal.SIGINT)