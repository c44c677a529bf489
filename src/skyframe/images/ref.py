"""Borrowed, zero-copy image container.

ImageRef wraps a buffer owned by the caller (a numpy array, bytes,
bytearray, memoryview or any buffer-protocol object) without copying it.
The caller must not mutate or free the buffer while the ImageRef is in use.
The borrow has an explicit scope: after release(), or on leaving a ``with``
block, every access raises BorrowReleasedError. Copying an ImageRef is
refused because it would duplicate the borrow; call ImageOwned.from_ref()
to get an owned copy.

Example:
    >>> frame = np.zeros((480, 640), dtype=np.uint16)
    >>> with ImageRef(frame, 640, 480, ColorSpace.bayer("RGGB")) as ref:
    ...     owned = ImageOwned.from_ref(ref)
"""

from __future__ import annotations

from typing import Any, NoReturn

import numpy as np
from numpy.typing import NDArray

from skyframe.colorspace import ColorSpace
from skyframe.errors import BorrowReleasedError, BufferSizeMismatchError
from skyframe.images.base import ImageBase, check_dimensions, check_length, flat_view
from skyframe.pixels import ElementType

__all__ = ["ImageRef"]


class ImageRef(ImageBase):
    """Read-only view over a caller-owned pixel buffer.

    Args:
        buffer: Pixel storage. numpy arrays keep their dtype (which picks the
            element type unless ``element_type`` is given); other buffers are
            read as raw little-endian bytes.
        width: Image width in pixels, 1-65536.
        height: Image height in pixels, 1-65536.
        color_space: Color space; fixes the channel count.
        element_type: Element type of a raw byte buffer. Defaults to U8 for
            byte buffers.

    Raises:
        InvalidDimensionsError: Width or height out of range.
        BufferSizeMismatchError: Buffer length is not exactly
            width * height * channels elements, or the array is not
            contiguous.
        TypeError: numpy dtype is not uint8, uint16 or float32.
    """

    def __init__(
        self,
        buffer: Any,
        width: int,
        height: int,
        color_space: ColorSpace,
        element_type: ElementType | None = None,
    ) -> None:
        check_dimensions(width, height, color_space.channels)

        # uint8 arrays with a wider element_type are raw byte buffers
        typed = isinstance(buffer, np.ndarray) and (
            buffer.dtype != np.uint8 or element_type in (None, ElementType.U8)
        )
        if typed:
            kind = ElementType.from_dtype(buffer.dtype)
            if element_type is not None and element_type is not kind:
                raise TypeError(
                    f"Array dtype {buffer.dtype} does not match {element_type.name}"
                )
            view = flat_view(buffer, kind)
        else:
            kind = element_type or ElementType.U8
            raw = memoryview(buffer).cast("B")
            if len(raw) % kind.size:
                raise BufferSizeMismatchError(
                    f"Buffer of {len(raw)} bytes is not a whole number of "
                    f"{kind.name} elements"
                )
            view = np.frombuffer(raw, dtype=kind.dtype)

        check_length(view.size, width, height, color_space.channels)

        view = view.view()
        view.flags.writeable = False
        self._view: NDArray[Any] | None = view
        self._width = width
        self._height = height
        self._color_space = color_space
        self._element_type = kind

    def _pixels(self) -> NDArray[Any]:
        if self._view is None:
            raise BorrowReleasedError("ImageRef used after its borrow was released")
        return self._view

    @property
    def released(self) -> bool:
        return self._view is None

    def release(self) -> None:
        """End the borrow. Idempotent."""
        self._view = None

    def __enter__(self) -> ImageRef:
        self._pixels()
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()

    def __copy__(self) -> NoReturn:
        raise TypeError("ImageRef cannot be copied; use ImageOwned.from_ref()")

    def __deepcopy__(self, memo: dict[int, Any]) -> NoReturn:
        raise TypeError("ImageRef cannot be copied; use ImageOwned.from_ref()")

    def __reduce_ex__(self, protocol: Any) -> NoReturn:
        raise TypeError("ImageRef cannot be pickled; use ImageOwned.from_ref()")
