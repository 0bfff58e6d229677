import base64

import pytest

from memguard.core.crypto import (
    OVERHEAD,
    PAGE_SIZE,
    BufferTooSmallError,
    DecryptionFailedError,
    InvalidKeyLengthError,
    copy,
    decrypt,
    encrypt,
    equal,
    hash_bytes,
    move,
    round_to_page_size,
    scramble,
    wipe,
)


def _random(size):
    buf = bytearray(size)
    scramble(buf)
    return buf


def test_round_to_page_size():
    assert round_to_page_size(0) == 0
    assert round_to_page_size(1) == PAGE_SIZE
    assert round_to_page_size(PAGE_SIZE) == PAGE_SIZE
    assert round_to_page_size(PAGE_SIZE + 1) == 2 * PAGE_SIZE


def test_copy_dst_longer_than_src():
    a = _random(8)
    b = _random(16)
    assert copy(b, a) == 8
    assert b[:8] == a


def test_copy_dst_shorter_than_src():
    b = _random(16)
    c = _random(32)
    assert copy(b, c) == 16
    assert b == c[:16]


def test_copy_equal_lengths():
    b = _random(16)
    b2 = _random(16)
    assert copy(b, b2) == 16
    assert b == b2


def test_copy_into_empty_read_only_view():
    assert copy(memoryview(b""), b"abc") == 0


def test_move_wipes_source():
    a = _random(32)
    b = _random(32)
    expected = bytes(b)
    move(a, b)
    assert b == bytearray(32)
    assert a == expected


def test_equal():
    a = _random(8)
    b = _random(16)
    c = bytearray(b)
    assert not equal(a, b)
    assert equal(b, c)
    c[8] ^= 0xFF
    assert not equal(b, c)


def test_scramble():
    b = bytearray(32)
    scramble(b)
    assert b != bytearray(32)
    c = bytearray(32)
    scramble(c)
    assert c != bytearray(32)
    assert b != c


@pytest.mark.parametrize(
    "message, digest",
    [
        (b"", "DldRwCblQ7Loqy6wYJnaodHl30d3j3eH+qtFzfEv46g="),
        (b"hash", "l+2qaVlkOBNtzRKFU+kEvAP1JkJvcn0nC2mEH7bPUNM="),
        (b"test", "kosgNmlD4q/RHrwOri5TqTvxd6T881vMZNUDcE5l4gI="),
    ],
)
def test_hash_known_values(message, digest):
    assert base64.b64encode(bytes(hash_bytes(message))).decode() == digest


def test_wipe():
    b = _random(32)
    wipe(b)
    assert b == bytearray(32)


def test_encrypt_decrypt_round_trip():
    m = _random(64)
    k = _random(32)
    x = encrypt(m, k)
    assert len(x) == len(m) + OVERHEAD

    dm = bytearray(len(x) - OVERHEAD)
    assert decrypt(x, k, dm) == len(x) - OVERHEAD
    assert dm == m


def test_decrypt_output_too_small():
    m = _random(64)
    k = _random(32)
    x = encrypt(m, k)
    with pytest.raises(BufferTooSmallError):
        decrypt(x, k, bytearray(len(x) - OVERHEAD - 1))


def test_decrypt_into_larger_output():
    m = _random(64)
    k = _random(32)
    x = encrypt(m, k)
    out = bytearray(len(x) - OVERHEAD + 8)
    assert decrypt(x, k, out) == len(x) - OVERHEAD
    assert out[: len(m)] == m


def test_decrypt_with_wrong_key():
    m = _random(64)
    x = encrypt(m, _random(32))
    with pytest.raises(DecryptionFailedError):
        decrypt(x, _random(32), bytearray(64))


def test_decrypt_modified_ciphertext():
    m = _random(64)
    k = _random(32)
    x = encrypt(m, k)
    for i in range(0, len(x), 32):
        x[i] = 0xDB
    with pytest.raises(DecryptionFailedError):
        decrypt(x, k, bytearray(64))


def test_decrypt_short_ciphertext():
    with pytest.raises(DecryptionFailedError):
        decrypt(bytearray(OVERHEAD - 1), _random(32), bytearray(8))


def test_invalid_key_length():
    m = _random(64)
    ik = _random(16)
    with pytest.raises(InvalidKeyLengthError):
        encrypt(m, ik)
    x = encrypt(m, _random(32))
    with pytest.raises(InvalidKeyLengthError):
        decrypt(x, ik, bytearray(64))