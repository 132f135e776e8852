"""Exception types raised by the spectrum-reader engine."""

from __future__ import annotations


class SaveFileNotFoundError(FileNotFoundError):
    """Raised when a network save file does not exist.

    This is the only recoverable failure in the engine: callers may catch it
    and fall back to a freshly initialised network.
    """


class SaveFormatError(ValueError):
    """Raised when a save file or parameter record is malformed."""


class ShapeMismatchError(ValueError):
    """Raised when a gradient does not match the parameter it targets."""


class UnknownActivationError(KeyError):
    """Raised when an activation key is not part of the catalog."""


__all__ = [
    "SaveFileNotFoundError",
    "SaveFormatError",
    "ShapeMismatchError",
    "UnknownActivationError",
]
