"""Small programs showing how the buffers, enclaves and streams are used."""

__all__ = ["casting", "stdin", "streamdemo", "socketkey"]