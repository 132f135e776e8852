"""Weight and bias containers with text serialisation."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .errors import SaveFormatError, ShapeMismatchError
from .types import Array


def _format_value(value: np.float32) -> str:
    """Shortest text that parses back to the same float32."""

    return np.format_float_positional(value, unique=True, trim="-")


def _parse_dims(text: str, expected: int) -> List[int]:
    parts = text.split(",")
    if len(parts) != expected:
        raise SaveFormatError(f"Expected {expected} dimension(s), found {text!r}")
    try:
        dims = [int(part) for part in parts]
    except ValueError as exc:
        raise SaveFormatError(f"Failed to parse dimensions {text!r}") from exc
    if any(dim < 1 for dim in dims):
        raise SaveFormatError(f"Dimensions must be positive, found {dims}")
    return dims


def _parse_values(text: str, count: int) -> Array:
    tokens = text.split(",")
    if len(tokens) != count:
        raise SaveFormatError(f"Expected {count} values, found {len(tokens)}")
    try:
        return np.array([float(token) for token in tokens], dtype=np.float32)
    except ValueError as exc:
        raise SaveFormatError(f"Failed to parse parameter values: {exc}") from exc


def _split_record(text: str) -> Tuple[str, str]:
    parts = text.strip().split("#")
    if len(parts) != 2:
        raise SaveFormatError(f"Malformed parameter record {text[:40]!r}")
    return parts[0], parts[1]


class Weight:
    """A ``(rows, cols)`` float32 matrix with a fixed shape."""

    def __init__(self, array: Array) -> None:
        array = np.array(array, dtype=np.float32)
        if array.ndim != 2:
            raise ValueError(f"Weight requires a 2-D array, got shape {array.shape}")
        self._array = array

    @classmethod
    def random(
        cls,
        rows: int,
        cols: int,
        low: float,
        high: float,
        rng: np.random.Generator | None = None,
    ) -> "Weight":
        rng = rng or np.random.default_rng()
        return cls(rng.uniform(low, high, size=(rows, cols)))

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Weight":
        return cls(np.zeros((rows, cols), dtype=np.float32))

    @classmethod
    def from_text(cls, text: str) -> "Weight":
        """Parse ``"rows,cols#v0,v1,..."`` (row-major)."""

        dims_text, values_text = _split_record(text)
        rows, cols = _parse_dims(dims_text, 2)
        values = _parse_values(values_text, rows * cols)
        return cls(values.reshape(rows, cols))

    @property
    def array(self) -> Array:
        return self._array

    @property
    def shape(self) -> Tuple[int, int]:
        return self._array.shape  # type: ignore[return-value]

    def update(self, gradient: Array, learning_rate: float) -> None:
        """Descend along ``gradient`` in place."""

        if np.shape(gradient) != self._array.shape:
            raise ShapeMismatchError(
                f"Gradient shape {np.shape(gradient)} does not match weight {self._array.shape}"
            )
        self._array -= np.float32(learning_rate) * np.asarray(gradient, dtype=np.float32)

    def to_text(self) -> str:
        rows, cols = self._array.shape
        values = ",".join(_format_value(v) for v in self._array.ravel())
        return f"{rows},{cols}#{values}"

    def copy(self) -> "Weight":
        return Weight(self._array)

    def __str__(self) -> str:
        return self.to_text()

    def __repr__(self) -> str:
        return f"Weight(shape={self.shape})"


class Bias:
    """A length ``n`` float32 vector with a fixed shape."""

    def __init__(self, array: Array | Sequence[float]) -> None:
        array = np.array(array, dtype=np.float32)
        if array.ndim != 1:
            raise ValueError(f"Bias requires a 1-D array, got shape {array.shape}")
        self._array = array

    @classmethod
    def random(
        cls,
        size: int,
        low: float,
        high: float,
        rng: np.random.Generator | None = None,
    ) -> "Bias":
        rng = rng or np.random.default_rng()
        return cls(rng.uniform(low, high, size=size))

    @classmethod
    def from_text(cls, text: str) -> "Bias":
        """Parse ``"len#v0,v1,..."``."""

        dims_text, values_text = _split_record(text)
        (size,) = _parse_dims(dims_text, 1)
        return cls(_parse_values(values_text, size))

    @property
    def array(self) -> Array:
        return self._array

    @property
    def shape(self) -> Tuple[int]:
        return self._array.shape  # type: ignore[return-value]

    def __len__(self) -> int:
        return int(self._array.shape[0])

    def update(self, gradient: Array, learning_rate: float) -> None:
        if np.shape(gradient) != self._array.shape:
            raise ShapeMismatchError(
                f"Gradient shape {np.shape(gradient)} does not match bias {self._array.shape}"
            )
        self._array -= np.float32(learning_rate) * np.asarray(gradient, dtype=np.float32)

    def to_text(self) -> str:
        values = ",".join(_format_value(v) for v in self._array)
        return f"{len(self)}#{values}"

    def copy(self) -> "Bias":
        return Bias(self._array)

    def __str__(self) -> str:
        return self.to_text()

    def __repr__(self) -> str:
        return f"Bias(len={len(self)})"


__all__ = ["Weight", "Bias"]
