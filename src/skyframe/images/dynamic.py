"""Type-erased image wrappers.

DynamicImageRef and DynamicImageOwned hold an image of any supported
element type behind one interface. The element type is the single erasure
axis; ``element_type`` reports the active variant, and every operation
produces results of the same variant (except cast_u8, which always yields
U8).

Example:
    >>> frame = DynamicImageRef.wrap(buffer, 1920, 1080, ColorSpace.bayer("RGGB"),
    ...                              ElementType.U16)
    >>> rgb = frame.debayer(DemosaicMethod.LINEAR)
    >>> rgb.element_type
    <ElementType.U16: 16>
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import Any, NoReturn

from numpy.typing import NDArray

from skyframe.colorspace import ColorSpace
from skyframe.demosaic import DemosaicMethod, debayer
from skyframe.images.base import ImageBase
from skyframe.images.owned import ImageOwned
from skyframe.images.ref import ImageRef
from skyframe.pixels import ElementType, cast_array_u8
from skyframe.processing import ExposureRecommendation, OptimumExposure, to_luma

__all__ = ["DynamicImage", "DynamicImageRef", "DynamicImageOwned"]


class DynamicImage:
    """Operations shared by the borrowed and owned type-erased images."""

    _image: ImageBase

    @property
    def image(self) -> ImageBase:
        """The wrapped typed image."""
        return self._image

    @property
    def element_type(self) -> ElementType:
        return self._image.element_type

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def channels(self) -> int:
        return self._image.channels

    @property
    def color_space(self) -> ColorSpace:
        return self._image.color_space

    @property
    def data(self) -> NDArray[Any]:
        return self._image.data

    def as_array(self) -> NDArray[Any]:
        return self._image.as_array()

    def as_bytes(self) -> bytes:
        return self._image.as_bytes()

    def debayer(
        self, method: DemosaicMethod | str | None = None, roi: tuple[int, int] = (0, 0)
    ) -> DynamicImageOwned:
        """Demosaic into a new owned RGB image of the same element type."""
        return DynamicImageOwned(debayer(self._image, method, roi))

    def cast_u8(self) -> DynamicImageOwned:
        """New owned U8 copy, values mapped from the nominal range to 0-255."""
        image = self._image
        pixels = cast_array_u8(image.as_array())
        return DynamicImageOwned(
            ImageOwned._adopt(pixels, image.width, image.height, image.color_space)
        )

    def calc_opt_exp(
        self, calculator: OptimumExposure, exposure: timedelta, binning: int = 1
    ) -> ExposureRecommendation:
        """Run one step of the exposure calculator over this image."""
        return calculator.calculate(self._image, exposure, binning)

    def to_owned(self) -> DynamicImageOwned:
        """Owned deep copy."""
        image = self._image
        return DynamicImageOwned(
            ImageOwned(image.data, image.width, image.height, image.color_space)
        )

    def to_bytes(self, compress: bool | None = None) -> bytes:
        """Serialize; see skyframe.serialization.serialize()."""
        from skyframe.serialization import serialize

        return serialize(self, compress=compress)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._image!r})"


class DynamicImageRef(DynamicImage):
    """Type-erased borrowed image.

    Shares the borrow scope of the wrapped ImageRef: releasing either one
    ends it for both.
    """

    def __init__(self, image: ImageRef) -> None:
        if not isinstance(image, ImageRef):
            raise TypeError(f"Expected ImageRef, got {type(image).__name__}")
        self._image = image

    @classmethod
    def wrap(
        cls,
        buffer: Any,
        width: int,
        height: int,
        color_space: ColorSpace,
        element_type: ElementType | None = None,
    ) -> DynamicImageRef:
        """Borrow ``buffer`` directly; arguments as for ImageRef."""
        return cls(ImageRef(buffer, width, height, color_space, element_type))

    @property
    def image(self) -> ImageRef:
        return self._image  # type: ignore[return-value]

    def release(self) -> None:
        self.image.release()

    def __enter__(self) -> DynamicImageRef:
        self.image.__enter__()
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()

    def __copy__(self) -> NoReturn:
        raise TypeError("DynamicImageRef cannot be copied; use to_owned()")

    def __deepcopy__(self, memo: dict[int, Any]) -> NoReturn:
        raise TypeError("DynamicImageRef cannot be copied; use to_owned()")

    def __reduce_ex__(self, protocol: Any) -> NoReturn:
        raise TypeError("DynamicImageRef cannot be pickled; use to_owned()")


class DynamicImageOwned(DynamicImage):
    """Type-erased owned image."""

    def __init__(self, image: ImageOwned) -> None:
        if not isinstance(image, ImageOwned):
            raise TypeError(f"Expected ImageOwned, got {type(image).__name__}")
        self._image = image

    @property
    def image(self) -> ImageOwned:
        return self._image  # type: ignore[return-value]

    def to_luma(self, weights: Sequence[float] | None = None) -> None:
        """Convert to Gray in place; see skyframe.processing.to_luma()."""
        to_luma(self.image, weights)

    @classmethod
    def from_bytes(cls, data: bytes) -> DynamicImageOwned:
        """Deserialize; timestamp and metadata, if present, are dropped."""
        from skyframe.serialization import deserialize

        result = deserialize(data)
        if isinstance(result, DynamicImageOwned):
            return result
        return result.image

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DynamicImageOwned):
            return NotImplemented
        return self.image == other.image

    __hash__ = None  # type: ignore[assignment]
