"""Pixel element types and casting between them.

Three storage primitives are supported: unsigned 8-bit, unsigned 16-bit and
32-bit float. Each has a nominal range (0..255, 0..65535, 0.0..1.0) and all
conversions are linear maps between nominal ranges that saturate at the ends.

Example:
    >>> ElementType.U16.bitpix
    16
    >>> cast_u8(65535, ElementType.U16)
    255
    >>> to_f32(255, ElementType.U8)
    1.0
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import NDArray

from skyframe.parallel import map_rows

__all__ = [
    "ElementType",
    "cast_u8",
    "to_f32",
    "from_f32",
    "cast_array_u8",
    "array_to_f32",
]


class ElementType(Enum):
    """Supported pixel element types.

    The value of each member is its FITS BITPIX code, which is also the tag
    written by the serialization codec.
    """

    U8 = 8
    U16 = 16
    F32 = -32

    @property
    def dtype(self) -> np.dtype[Any]:
        """Little-endian numpy dtype for this element type."""
        return np.dtype(_DTYPES[self])

    @property
    def size(self) -> int:
        """Bytes per element."""
        return self.dtype.itemsize

    @property
    def bitpix(self) -> int:
        """FITS BITPIX code (8, 16, -32)."""
        return self.value

    @property
    def is_integer(self) -> bool:
        return self is not ElementType.F32

    @property
    def nominal_min(self) -> float:
        return 0.0 if self is ElementType.F32 else 0

    @property
    def nominal_max(self) -> int | float:
        """Upper end of the nominal range: 255, 65535 or 1.0."""
        return _NOMINAL_MAX[self]

    @classmethod
    def from_dtype(cls, dtype: Any) -> ElementType:
        """Look up the element type for a numpy dtype.

        Byte order is ignored, so big-endian uint16 maps to U16.

        Raises:
            TypeError: If the dtype is not uint8, uint16 or float32.
        """
        dt = np.dtype(dtype)
        for member, name in _DTYPES.items():
            if dt.kind == np.dtype(name).kind and dt.itemsize == np.dtype(name).itemsize:
                return member
        raise TypeError(f"Unsupported pixel dtype: {dt}")

    @classmethod
    def from_bitpix(cls, bitpix: int) -> ElementType:
        """Look up the element type for a BITPIX code.

        Raises:
            ValueError: If the code is not 8, 16 or -32.
        """
        return cls(bitpix)


_DTYPES = {
    ElementType.U8: "<u1",
    ElementType.U16: "<u2",
    ElementType.F32: "<f4",
}

_NOMINAL_MAX: dict[ElementType, int | float] = {
    ElementType.U8: 255,
    ElementType.U16: 65535,
    ElementType.F32: 1.0,
}


# =============================================================================
# Scalar conversions
# =============================================================================


def cast_u8(value: float, source: ElementType) -> int:
    """Map a sample from its nominal range onto 0..255.

    Rounds to nearest and saturates at both ends; infinities saturate too.
    NaN maps to 0.

    Args:
        value: Sample value in ``source`` space.
        source: Element type the value belongs to.

    Returns:
        Integer in [0, 255].

    Example:
        >>> cast_u8(0.5, ElementType.F32)
        128
        >>> cast_u8(-3.0, ElementType.F32)
        0
        >>> cast_u8(float("inf"), ElementType.F32)
        255
    """
    sample = float(value)
    if math.isnan(sample):
        return 0
    if source is ElementType.U8:
        return int(min(max(sample, 0.0), 255.0))
    scaled = sample / source.nominal_max * 255.0 + 0.5
    return math.floor(min(max(scaled, 0.0), 255.0))


def to_f32(value: float, source: ElementType) -> float:
    """Normalize a sample into 0.0..1.0 (F32 passes through unchanged)."""
    if source is ElementType.F32:
        return float(np.float32(value))
    return float(np.float32(float(value) / source.nominal_max))


def from_f32(value: float, target: ElementType) -> int | float:
    """Scale a normalized sample into ``target`` space.

    Integer targets round to nearest and saturate, infinities included;
    NaN becomes 0.
    """
    if target is ElementType.F32:
        return float(np.float32(value))
    sample = float(value)
    if math.isnan(sample):
        return 0
    top = target.nominal_max
    return math.floor(min(max(sample * top + 0.5, 0.0), top))


# =============================================================================
# Array conversions
# =============================================================================


def _rows_to_u8(src: NDArray[Any], out: NDArray[np.uint8]) -> None:
    if src.dtype == np.uint8:
        out[...] = src
        return
    top = 65535.0 if src.dtype.kind == "u" else 1.0
    scaled = np.floor(src.astype(np.float64) / top * 255.0 + 0.5)
    scaled = np.nan_to_num(scaled, nan=0.0, posinf=255.0, neginf=0.0)
    out[...] = np.clip(scaled, 0, 255).astype(np.uint8)


def cast_array_u8(array: NDArray[Any]) -> NDArray[np.uint8]:
    """Vectorised cast_u8 over an array of any supported element type.

    The leading axis is treated as rows and split across the worker pool
    for large arrays; the result is identical either way.

    Args:
        array: uint8, uint16 or float32 array, any shape.

    Returns:
        New uint8 array of the same shape.

    Raises:
        TypeError: If the dtype is unsupported.
    """
    ElementType.from_dtype(array.dtype)
    out = np.empty(array.shape, dtype=np.uint8)
    if array.ndim == 0 or array.size == 0:
        _rows_to_u8(array, out)
        return out
    pixels = array.size // (array.shape[-1] if array.ndim >= 3 else 1)

    def work(start: int, stop: int) -> None:
        _rows_to_u8(array[start:stop], out[start:stop])

    map_rows(work, array.shape[0], pixels)
    return out


def array_to_f32(array: NDArray[Any]) -> NDArray[np.float32]:
    """Vectorised to_f32: normalize integer arrays, copy float32 arrays."""
    element = ElementType.from_dtype(array.dtype)
    if element is ElementType.F32:
        return array.astype(np.float32, copy=True)
    return (array.astype(np.float64) / element.nominal_max).astype(np.float32)
