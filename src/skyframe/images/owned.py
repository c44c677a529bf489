"""Owned image container."""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray

from skyframe.colorspace import ColorSpace
from skyframe.images.base import ImageBase, check_dimensions, check_length
from skyframe.images.ref import ImageRef
from skyframe.pixels import ElementType

__all__ = ["ImageOwned"]


class ImageOwned(ImageBase):
    """Image that exclusively owns its pixel array.

    The constructor always copies, so later changes to ``data`` by the caller
    cannot leak into the image. Equality compares dimensions, color space,
    element type and pixel bytes.

    Args:
        data: Pixel array of width * height * channels elements, any shape.
            A 2-D or 3-D array is flattened row-major.
        width: Width in pixels.
        height: Height in pixels.
        color_space: Color space; fixes the channel count.

    Raises:
        InvalidDimensionsError: Width, height or channels out of range.
        BufferSizeMismatchError: Wrong number of elements.
        TypeError: Unsupported dtype.
    """

    def __init__(
        self, data: NDArray[Any], width: int, height: int, color_space: ColorSpace
    ) -> None:
        array = np.asarray(data)
        element_type = ElementType.from_dtype(array.dtype)
        check_dimensions(width, height, color_space.channels)
        check_length(array.size, width, height, color_space.channels)
        self._data = np.array(array, dtype=element_type.dtype, order="C").reshape(-1)
        self._width = width
        self._height = height
        self._color_space = color_space
        self._element_type = element_type

    @classmethod
    def _adopt(
        cls, data: NDArray[Any], width: int, height: int, color_space: ColorSpace
    ) -> ImageOwned:
        # Takes ownership of a freshly allocated array without copying
        image = cls.__new__(cls)
        image._data = data.reshape(-1)
        image._width = width
        image._height = height
        image._color_space = color_space
        image._element_type = ElementType.from_dtype(data.dtype)
        return image

    @classmethod
    def zeros(
        cls,
        width: int,
        height: int,
        color_space: ColorSpace,
        element_type: ElementType = ElementType.U8,
    ) -> ImageOwned:
        """Black image of the given shape."""
        check_dimensions(width, height, color_space.channels)
        data = np.zeros(width * height * color_space.channels, dtype=element_type.dtype)
        return cls._adopt(data, width, height, color_space)

    @classmethod
    def from_ref(cls, ref: ImageRef) -> ImageOwned:
        """Copy a borrowed image."""
        return cls(ref.data, ref.width, ref.height, ref.color_space)

    @classmethod
    def from_bytes(
        cls,
        raw: bytes,
        width: int,
        height: int,
        color_space: ColorSpace,
        element_type: ElementType = ElementType.U8,
    ) -> ImageOwned:
        """Build from raw little-endian pixel bytes (copied)."""
        with ImageRef(raw, width, height, color_space, element_type) as ref:
            return cls.from_ref(ref)

    def _pixels(self) -> NDArray[Any]:
        return self._data

    def _replace(self, data: NDArray[Any], color_space: ColorSpace) -> None:
        """Swap in a new pixel array of the same width and height."""
        check_length(data.size, self._width, self._height, color_space.channels)
        self._data = data.reshape(-1)
        self._color_space = color_space
        self._element_type = ElementType.from_dtype(data.dtype)

    def copy(self) -> ImageOwned:
        return ImageOwned(self._data, self._width, self._height, self._color_space)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageOwned):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.color_space == other.color_space
            and self.element_type is other.element_type
            and self.as_bytes() == other.as_bytes()
        )

    __hash__ = None  # type: ignore[assignment]
