# memguard

Keep secrets in memory for as short a time as possible, and encrypted the rest
of the time.

The package offers two containers, both in `memguard.buffer`:

- **`LockedBuffer`**: a page-aligned allocation that holds raw sensitive bytes
  between two guard regions. It can be frozen (its views become read-only) and
  melted (writable again). Destroying it wipes the data, checks a random canary
  placed around the data to catch overflows, and releases the memory.
- **`Enclave`**: an encrypted container. Data is sealed with
  XSalsa20-Poly1305 (PyNaCl's `SecretBox`) under a session key. That key is
  held in a `memguard.core.coffer.Coffer`, split across two buffers and
  re-randomised in a background thread every half second. Enclaves hold only
  ciphertext; open them when the plaintext is needed.

The usual workflow is to keep sensitive values in enclaves, open them into a
`LockedBuffer` just where they are used, and destroy that buffer right after.

## Quick look

```python
from memguard import buffer, session, signals

# Wipe everything and exit with status 1 if the process is interrupted.
signals.catch_interrupt()

try:
    # 32 random bytes, sealed straight away.
    key = buffer.new_enclave_random(32)

    # Decrypt into an immutable guarded buffer.
    plain = key.open()
    try:
        print(plain.size(), plain.bytes().hex())
    finally:
        plain.destroy()
finally:
    # Destroy every live buffer and start a fresh session key.
    session.purge()
```

`LockedBuffer` is also a context manager that destroys the buffer on exit.

## Editing a secret

Buffers returned by `Enclave.open` are frozen. Melt one to change it, then seal
it again; sealing destroys the buffer.

```python
from memguard import buffer

def invert(key):
    b = key.open()
    b.melt()
    data = b.bytes()
    for i, value in enumerate(data):
        data[i] = value ^ 0xFF
    return b.seal()
```

## Building buffers

- `new_buffer(size)`: a zero-filled, mutable buffer.
- `new_buffer_from_bytes(src)`: copies `src` in, wipes a writable source, freezes.
- `new_buffer_random(size)`: random contents, frozen.
- `new_buffer_from_reader(reader, size)`: reads exactly `size` bytes.
- `new_buffer_from_reader_until(reader, delim)`: reads up to, not including, a
  delimiter byte.
- `new_buffer_from_entire_reader(reader)`: reads until the end of the data.

Readers may offer `readinto` or `read`. A short read or a failing reader raises
`PartialReadError`, whose `buffer` attribute holds the data that did arrive.
A buffer of size zero comes back already destroyed: `size()` is `0` and
`is_alive()` is `False`.

`new_enclave(src)` seals bytes directly (wiping a writable source) and
returns `None` for empty input; `new_enclave_random(size)` returns `None` for a
size below one. `Enclave.open` raises
`memguard.core.crypto.DecryptionFailedError` once the session has been purged.

Buffers also offer constant-time `copy`, `copy_at`, `move`, `move_at` and
`equal_to`, plus `scramble`, `wipe`, `reader`, `string`, typed views
(`int8`, `int16`, `int32`, `int64`, `uint16`, `uint32`, `uint64`) and
fixed-length views (`byte_array8`, `byte_array16`, `byte_array32`,
`byte_array64`). The typed and fixed-length views return `None` when the buffer
is destroyed or too small.

## Streams

`memguard.stream.Stream` stores data as a queue of encrypted chunks of at most
`STREAM_CHUNK_SIZE` bytes. Write to it, then read it back piece by piece with
`readinto` (which returns `0` when empty), take one decrypted chunk at a time
with `next` (which raises `EOFError` when empty), or collect everything with
`flush`. `size()` reports how many bytes are stored.

```python
from memguard.stream import Stream

s = Stream()
payload = bytearray(b"yellow submarine" * 1000)
s.write(payload)          # payload is wiped afterwards
everything = s.flush()
print(everything.size())
everything.destroy()
```

## Ending a session

In `memguard.session`:

- `purge()` destroys all live buffers and the session key; existing enclaves
  can no longer be opened.
- `safe_exit(code)` wipes everything and exits with `code`.
- `safe_panic(value)` purges, then raises `value` (wrapped in `RuntimeError`
  if it is not an exception).
- `scramble_bytes(buf)` and `wipe_bytes(buf)` work on any writable byte buffer.

In `memguard.signals`, `catch_signal(handler, *signals)` runs `handler`, wipes
the session and exits with status 1 when one of the given signals arrives (all
catchable signals if none are given); `catch_interrupt()` does the same for
`SIGINT`. Each call replaces the previous one.

## Examples

`memguard.examples` holds small working programs:

- `casting`: guarded memory viewed as fixed-size arrays and as `Secure`
  records of 64 bytes.
- `stdin`: `read_key_from_stdin()` reads a line into guarded memory and seals it.
- `streamdemo`: `slow_rand_byte()` pushes 16 KiB of random data through a
  `Stream` and returns the XOR of its bytes.
- `socketkey`: `socket_key(size)` sends a random key over a local TCP socket
  straight into a guarded buffer, seals and reopens it.

## What it does not do

Memory is allocated with `mmap` and marked to be left out of core dumps where
the platform allows, and core dumps are disabled through `resource` on import.
The pages are not locked into RAM, the guard regions are ordinary readable
memory checked only on destruction, and freezing makes the views handed out
read-only rather than changing the pages' protection. There is no command-line
program.