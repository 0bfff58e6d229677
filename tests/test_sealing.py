import pytest

from memguard.core.crypto import OVERHEAD, DecryptionFailedError, MemguardError
from memguard.core.memory import Buffer, BufferExpiredError
from memguard.core.sealing import (
    Enclave,
    NullEnclaveError,
    enclave_size,
    get_key,
    get_or_create_key,
    new_enclave,
    open_enclave,
    seal,
)


def test_new_enclave():
    data = bytearray(b"yellow submarine")
    e = new_enclave(data)
    assert data == bytearray(16)
    assert len(e.ciphertext) == 16 + OVERHEAD

    with pytest.raises(NullEnclaveError):
        new_enclave(bytearray())


def test_seal():
    b = Buffer(32)
    e = seal(b)
    assert len(e.ciphertext) == 32 + OVERHEAD
    assert not b.alive

    buf = open_enclave(e)
    assert bytes(buf.data) == bytes(32)

    with pytest.raises(BufferExpiredError):
        seal(b)
    buf.destroy()


def test_seal_frozen_buffer():
    b = Buffer(4)
    b.data[:] = b"abcd"
    b.freeze()
    e = seal(b)
    buf = open_enclave(e)
    assert bytes(buf.data) == b"abcd"
    buf.destroy()


def test_open():
    e = new_enclave(bytearray(b"yellow submarine"))
    buf = open_enclave(e)
    assert bytes(buf.data) == b"yellow submarine"
    buf.destroy()

    # The enclave can be opened again.
    again = open_enclave(e)
    assert bytes(again.data) == b"yellow submarine"
    again.destroy()

    for index in range(len(e.ciphertext)):
        e.ciphertext[index] = 0xDB
    with pytest.raises(DecryptionFailedError):
        open_enclave(e)


def test_open_invalid_length():
    with pytest.raises(MemguardError):
        open_enclave(Enclave(bytearray(5)))


def test_enclave_size():
    assert enclave_size(Enclave(bytearray(1234))) == 1234 - OVERHEAD


def test_key_is_reused_until_destroyed():
    first = get_or_create_key()
    assert get_or_create_key() is first
    assert get_key() is first
    first.destroy()
    second = get_or_create_key()
    assert second is not first
    assert not second.destroyed()