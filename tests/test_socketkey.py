from memguard.core.memory import buffers
from memguard.examples.socketkey import socket_key


def test_socket_key():
    assert socket_key(4096) == 4096


def test_socket_key_small():
    assert socket_key(32) == 32


def test_socket_key_purges_session():
    received = socket_key(64)
    assert received == 64
    assert buffers.copy() == []