"""Sending a key over a local socket directly into guarded memory."""

from __future__ import annotations

import signal
import socket
import threading

from ..buffer import PartialReadError, new_buffer_from_reader, new_buffer_random
from ..session import purge, safe_panic
from ..signals import catch_signal

HOST = "127.0.0.1"


def _send_random(port: int, size: int, sent: list, errors: list) -> None:
    try:
        with socket.create_connection((HOST, port)) as conn:
            with new_buffer_random(size) as buf:
                # Kept for comparison afterwards; this leaks the secret.
                sent.append(bytes(buf.bytes()))
                conn.sendall(buf.bytes())
    except Exception as err:  # reported by the receiving side
        errors.append(err)


def socket_key(size: int) -> int:
    """Transfer size random bytes from a client thread to a local server.

    The received key is checked against what was sent, sealed, reopened and
    destroyed, and the session is purged before returning. Returns the number
    of bytes recovered from the sealed key.
    """
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        listener.bind((HOST, 0))
        listener.listen(1)
        port = listener.getsockname()[1]

        if threading.current_thread() is threading.main_thread():

            def on_signal(received) -> None:
                print("Received signal:", getattr(received, "name", received))
                listener.close()

            catch_signal(on_signal, signal.SIGINT, signal.SIGTERM)

        sent: list = []
        errors: list = []
        client = threading.Thread(
            target=_send_random, args=(port, size, sent, errors), daemon=True
        )
        client.start()

        conn, _ = listener.accept()
        with conn, conn.makefile("rb", buffering=0) as stream:
            try:
                buf = new_buffer_from_reader(stream, size)
            except PartialReadError as err:
                safe_panic(err)

        client.join()
        if errors:
            buf.destroy()
            safe_panic(errors[0])

        if not buf.equal_to(sent[0]):
            buf.destroy()
            safe_panic(RuntimeError("sent != received"))

        key = buf.seal()
        opened = key.open()
        received = opened.size()
        opened.destroy()
        return received
    finally:
        listener.close()
        purge()