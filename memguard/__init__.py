"""Guarded buffers and encrypted enclaves for sensitive data held in memory."""

__version__ = "0.1.0"

__all__ = ["buffer", "session", "signals", "stream"]