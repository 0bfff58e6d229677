"""Reading a key from standard input straight into guarded memory."""

from __future__ import annotations

import sys

from ..buffer import Enclave, PartialReadError, new_buffer_from_reader_until


def read_key_from_stdin(stream=None) -> Enclave:
    """Read one line from stream (standard input by default) and seal it in an Enclave.

    Raises PartialReadError if the input ends before a newline, and
    ValueError if the line is empty.
    """
    if stream is None:
        stream = sys.stdin.buffer
    try:
        key = new_buffer_from_reader_until(stream, ord("\n"))
    except PartialReadError as err:
        err.buffer.destroy()
        raise
    if key.size() == 0:
        raise ValueError("no input received")
    return key.seal()