import pytest

from memguard.buffer import new_buffer, new_enclave_random
from memguard.core.crypto import DecryptionFailedError
from memguard.session import (
    purge,
    safe_exit,
    safe_panic,
    scramble_bytes,
    wipe_bytes,
)


def test_scramble_bytes():
    buf = bytearray(32)
    scramble_bytes(buf)
    assert len(buf) == 32
    assert any(buf)


def test_scramble_bytes_changes_each_time():
    first = bytearray(32)
    second = bytearray(32)
    scramble_bytes(first)
    scramble_bytes(second)
    assert first != second


def test_wipe_bytes():
    buf = bytearray(32)
    scramble_bytes(buf)
    wipe_bytes(buf)
    assert buf == bytearray(32)


def test_purge():
    key = new_enclave_random(32)
    buf = key.open()
    assert buf.is_alive()
    purge()
    assert not buf.is_alive()
    with pytest.raises(DecryptionFailedError):
        key.open()


def test_safe_panic_raises_exception_value():
    with pytest.raises(ValueError, match="boom"):
        safe_panic(ValueError("boom"))


def test_safe_panic_wraps_other_values_and_purges():
    buf = new_buffer(16)
    assert buf.is_alive()
    with pytest.raises(RuntimeError, match="test"):
        safe_panic("test")
    assert not buf.is_alive()


def test_safe_exit_destroys_buffers_and_exits():
    buf = new_buffer(16)
    with pytest.raises(SystemExit) as info:
        safe_exit(3)
    assert info.value.code == 3
    assert not buf.is_alive()
    assert buf.size() == 0