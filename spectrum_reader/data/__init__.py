"""Sequence sources for spectrum-reader training runs."""

from .sequences import available, load_sequences, read_array

__all__ = ["available", "load_sequences", "read_array"]
