"""Low-level primitives: cryptography, guarded memory, the session key and teardown."""

__all__ = ["crypto", "memory", "coffer", "sealing", "exit"]