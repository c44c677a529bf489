"""numpy and image-file interop.

from_array()/to_array() move pixels between plain numpy arrays and skyframe
images. load_image() and encode_png() go through an ImageCodec, a small
Protocol over OpenCV so tests can inject a fake codec instead of importing
cv2.

Usage:
    # Production (default codec)
    frame = load_image("flat_0001.png")
    png = encode_png(frame)

    # Testing
    class FakeCodec:
        def read(self, path):
            return np.zeros((4, 4), dtype=np.uint8)
        def encode_png(self, img):
            return b"\\x89PNGfake"
    frame = load_image("any.png", codec=FakeCodec())

The cv2 import is deferred to CV2ImageCodec.__init__, so importing this
module never loads OpenCV.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import numpy as np

from skyframe.colorspace import ColorSpace, ColorSpaceKind
from skyframe.images.base import ImageBase
from skyframe.images.dynamic import DynamicImage, DynamicImageOwned
from skyframe.images.generic import GenericImage
from skyframe.images.owned import ImageOwned
from skyframe.observability import get_logger
from skyframe.pixels import ElementType, cast_array_u8

if TYPE_CHECKING:
    from numpy.typing import NDArray

__all__ = [
    "ImageCodec",
    "CV2ImageCodec",
    "from_array",
    "to_array",
    "load_image",
    "encode_png",
]

logger = get_logger(__name__)

_SUPPORTED = (np.dtype(np.uint8), np.dtype(np.uint16), np.dtype(np.float32))


@runtime_checkable
class ImageCodec(Protocol):
    """Image file reading and PNG encoding.

    Arrays use OpenCV conventions: (H, W) for gray, (H, W, 3) in BGR order
    for color.
    """

    def read(self, path: str) -> NDArray[Any]:
        """Read an image file without changing its depth or channel count.

        Raises:
            FileNotFoundError: The file cannot be read or decoded.
        """
        ...  # pragma: no cover

    def encode_png(self, img: NDArray[Any]) -> bytes:
        """Encode a uint8 or uint16 array as PNG bytes.

        Raises:
            ValueError: Encoding failed.
        """
        ...  # pragma: no cover


class CV2ImageCodec(ImageCodec):
    """ImageCodec backed by OpenCV.

    Raises:
        ImportError: On construction, if opencv-python-headless is missing.
    """

    def __init__(self) -> None:
        import cv2

        self._cv2 = cv2

    def read(self, path: str) -> NDArray[Any]:
        img = self._cv2.imread(path, self._cv2.IMREAD_UNCHANGED)
        if img is None:
            raise FileNotFoundError(f"Cannot read image file: {path}")
        return img

    def encode_png(self, img: NDArray[Any]) -> bytes:
        success, data = self._cv2.imencode(".png", img)
        if not success:
            raise ValueError(
                f"PNG encoding failed for image shape={img.shape}, dtype={img.dtype}"
            )
        return data.tobytes()


def _lossy_f32(array: NDArray[Any]) -> NDArray[np.float32]:
    # Integers scale by their type maximum into 0-1; floats keep their values
    if array.dtype == np.bool_:
        return array.astype(np.float32)
    if array.dtype.kind in "iu":
        top = float(np.iinfo(array.dtype).max)
        return np.clip(array.astype(np.float64) / top, 0.0, 1.0).astype(np.float32)
    if array.dtype.kind == "f":
        return array.astype(np.float32)
    raise TypeError(f"Cannot convert dtype {array.dtype} to float32")


def from_array(
    array: NDArray[Any],
    color_space: ColorSpace | None = None,
    lossy: bool = False,
) -> DynamicImageOwned:
    """Copy a numpy array into an owned image.

    Args:
        array: (H, W) or (H, W, C) array.
        color_space: Defaults to GRAY for one channel, RGB for three and
            ColorSpace.custom(channels) otherwise.
        lossy: Allow dtypes other than uint8, uint16 and float32. Signed and
            wide unsigned integers are divided by their type maximum and
            clipped to 0-1; other floats are narrowed to float32; bool maps
            to 0.0/1.0. The result is always F32.

    Raises:
        TypeError: Unsupported dtype and lossy is False.
        ValueError: Shape is not 2-D or 3-D, or more than 255 channels.
    """
    pixels = np.asarray(array)
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    if pixels.ndim != 3:
        raise ValueError(f"Expected a 2-D or 3-D array, got shape {array.shape}")

    if pixels.dtype.newbyteorder("=") not in _SUPPORTED:
        if not lossy:
            raise TypeError(
                f"Unsupported dtype {pixels.dtype}; pass lossy=True to convert to float32"
            )
        logger.info("Lossy conversion to float32", dtype=str(pixels.dtype))
        pixels = _lossy_f32(pixels)

    height, width, channels = pixels.shape
    if color_space is None:
        if channels == 1:
            color_space = ColorSpace.GRAY
        elif channels == 3:
            color_space = ColorSpace.RGB
        else:
            color_space = ColorSpace.custom(channels)
    return DynamicImageOwned(ImageOwned(pixels, width, height, color_space))


def to_array(image: ImageBase | DynamicImage | GenericImage) -> NDArray[Any]:
    """Copy pixels out as (H, W) for one channel or (H, W, C) otherwise."""
    pixels = image.as_array()
    if pixels.shape[2] == 1:
        return pixels[:, :, 0].copy()
    return pixels.copy()


def load_image(path: str | Path, codec: ImageCodec | None = None) -> DynamicImageOwned:
    """Read an image file into an owned GRAY or RGB image.

    Color files are converted from BGR to RGB; an alpha channel is dropped.
    Depths other than 8/16-bit and float32 go through the lossy float32
    conversion of from_array().

    Raises:
        FileNotFoundError: The file cannot be read.
    """
    codec = codec if codec is not None else CV2ImageCodec()
    pixels = codec.read(str(path))
    if pixels.ndim == 3:
        if pixels.shape[2] == 4:
            pixels = pixels[:, :, :3]
        if pixels.shape[2] == 3:
            pixels = pixels[:, :, ::-1]
    image = from_array(np.ascontiguousarray(pixels), lossy=True)
    logger.debug("Image loaded", path=str(path), **image.image.describe())
    return image


def encode_png(
    image: ImageBase | DynamicImage | GenericImage, codec: ImageCodec | None = None
) -> bytes:
    """Encode an image as PNG.

    U8 and U16 are written at their own depth; F32 is cast to U8 first.
    RGB is reordered to BGR for the codec. Bayer images are written as
    their single-channel mosaic.

    Raises:
        ValueError: Custom color spaces have no PNG channel mapping.
    """
    if image.color_space.kind is ColorSpaceKind.CUSTOM:
        raise ValueError(f"Cannot encode {image.color_space} as PNG")
    codec = codec if codec is not None else CV2ImageCodec()
    pixels = image.as_array()
    if image.element_type is ElementType.F32:
        pixels = cast_array_u8(pixels)
    if pixels.shape[2] == 3:
        pixels = pixels[:, :, ::-1]
    elif pixels.shape[2] == 1:
        pixels = pixels[:, :, 0]
    return codec.encode_png(np.ascontiguousarray(pixels))
