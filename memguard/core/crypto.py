"""Authenticated encryption, hashing and constant-time byte helpers."""

from __future__ import annotations

import hashlib
import hmac
import mmap
import os

from nacl.exceptions import CryptoError
from nacl.secret import SecretBox

PAGE_SIZE = mmap.PAGESIZE
KEY_SIZE = SecretBox.KEY_SIZE
NONCE_SIZE = SecretBox.NONCE_SIZE
# The size by which a ciphertext exceeds its plaintext: authenticator plus nonce.
OVERHEAD = SecretBox.MACBYTES + NONCE_SIZE


class MemguardError(Exception):
    """Base class for every error raised by this package."""


class InvalidKeyLengthError(MemguardError, ValueError):
    """The key given for encryption or decryption is not exactly 32 bytes."""

    def __init__(self) -> None:
        super().__init__("key must be exactly 32 bytes")


class BufferTooSmallError(MemguardError, ValueError):
    """The output buffer given for decryption cannot hold the plaintext."""

    def __init__(self) -> None:
        super().__init__("the given buffer is too small to hold the plaintext")


class DecryptionFailedError(MemguardError):
    """Decryption failed: the key is wrong or the ciphertext is corrupt."""

    def __init__(self) -> None:
        super().__init__("decryption failed: key is wrong or ciphertext is corrupt")


def round_to_page_size(length: int) -> int:
    """Round a length up to a multiple of the system page size."""
    return (length + (PAGE_SIZE - 1)) & ~(PAGE_SIZE - 1)


def encrypt(plaintext, key) -> bytearray:
    """Encrypt plaintext under a 32 byte key; the nonce is prepended to the result."""
    if len(key) != KEY_SIZE:
        raise InvalidKeyLengthError()
    box = SecretBox(bytes(key))
    nonce = os.urandom(NONCE_SIZE)
    return bytearray(box.encrypt(bytes(plaintext), nonce))


def decrypt(ciphertext, key, output) -> int:
    """Decrypt ciphertext with a 32 byte key into the start of output.

    Returns the length of the plaintext written.
    """
    if len(key) != KEY_SIZE:
        raise InvalidKeyLengthError()
    if len(output) < len(ciphertext) - OVERHEAD:
        raise BufferTooSmallError()
    if len(ciphertext) < OVERHEAD:
        raise DecryptionFailedError()

    raw = bytes(ciphertext)
    box = SecretBox(bytes(key))
    try:
        plaintext = bytearray(box.decrypt(raw[NONCE_SIZE:], raw[:NONCE_SIZE]))
    except CryptoError:
        raise DecryptionFailedError() from None

    length = len(plaintext)
    move(output, plaintext)
    return length


def hash_bytes(data) -> bytearray:
    """Return the 32 byte BLAKE2b digest of data."""
    return bytearray(hashlib.blake2b(bytes(data), digest_size=32).digest())


def scramble(buf) -> None:
    """Fill a writable buffer with cryptographically-secure random bytes."""
    if len(buf):
        buf[:] = os.urandom(len(buf))


def wipe(buf) -> None:
    """Overwrite a writable buffer with zeroes."""
    if len(buf):
        buf[:] = bytes(len(buf))


def copy(dst, src) -> int:
    """Copy as many bytes as fit from src into the start of dst; return the count."""
    count = min(len(dst), len(src))
    if count:
        dst[:count] = src[:count]
    return count


def move(dst, src) -> int:
    """Copy src into dst and then wipe src; return the number of bytes copied."""
    count = copy(dst, src)
    wipe(src)
    return count


def equal(x, y) -> bool:
    """Compare two byte sequences in constant time."""
    return hmac.compare_digest(bytes(x), bytes(y))