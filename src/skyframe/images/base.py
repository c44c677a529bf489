"""Read-only capability shared by borrowed and owned images."""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from skyframe.colorspace import ColorSpace
from skyframe.errors import BufferSizeMismatchError, InvalidDimensionsError
from skyframe.pixels import ElementType

__all__ = ["ImageBase", "MAX_DIMENSION", "MAX_CHANNELS", "check_dimensions"]

MAX_DIMENSION = 65536
MAX_CHANNELS = 255


def check_dimensions(width: int, height: int, channels: int) -> None:
    """Raise InvalidDimensionsError unless 1 <= width, height <= 65536 and
    1 <= channels <= 255."""
    for name, value, top in (
        ("width", width, MAX_DIMENSION),
        ("height", height, MAX_DIMENSION),
        ("channels", channels, MAX_CHANNELS),
    ):
        if isinstance(value, bool) or not isinstance(value, int | np.integer):
            raise InvalidDimensionsError(f"{name} must be an integer, got {value!r}")
        if not 1 <= value <= top:
            raise InvalidDimensionsError(f"{name} must be in [1, {top}], got {value}")


def check_length(elements: int, width: int, height: int, channels: int) -> None:
    expected = width * height * channels
    if elements != expected:
        raise BufferSizeMismatchError(
            f"Buffer holds {elements} elements, expected {expected} "
            f"({width}x{height}x{channels})"
        )


class ImageBase:
    """Dimensions, color space and element type plus array/byte views.

    Subclasses provide ``_pixels()``, the flat row-major, channel-interleaved
    array of ``width * height * channels`` elements.
    """

    _width: int
    _height: int
    _color_space: ColorSpace
    _element_type: ElementType

    def _pixels(self) -> NDArray[Any]:
        raise NotImplementedError

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def channels(self) -> int:
        return self._color_space.channels

    @property
    def color_space(self) -> ColorSpace:
        return self._color_space

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def data(self) -> NDArray[Any]:
        """Flat pixel array."""
        return self._pixels()

    @property
    def nbytes(self) -> int:
        return self.width * self.height * self.channels * self.element_type.size

    def as_array(self) -> NDArray[Any]:
        """Pixels as an (height, width, channels) view."""
        return self._pixels().reshape(self.height, self.width, self.channels)

    def as_bytes(self) -> bytes:
        """Raw little-endian pixel bytes."""
        pixels = self._pixels()
        return pixels.astype(self.element_type.dtype, copy=False).tobytes()

    def describe(self) -> dict[str, Any]:
        """Summary fields for log records."""
        return {
            "width": self.width,
            "height": self.height,
            "color_space": str(self.color_space),
            "element_type": self.element_type.name,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.width}x{self.height}, "
            f"{self.color_space}, {self.element_type.name})"
        )


def flat_view(array: NDArray[Any], element_type: ElementType) -> NDArray[Any]:
    """Flat, zero-copy view of a C-contiguous array.

    Raises:
        BufferSizeMismatchError: If the array is not contiguous, since a flat
            view would need a copy.
    """
    if not array.flags.c_contiguous:
        raise BufferSizeMismatchError("Pixel array must be C-contiguous")
    if array.dtype.byteorder == ">":
        raise BufferSizeMismatchError(f"Pixel array byte order not supported: {array.dtype}")
    return array.reshape(-1)
