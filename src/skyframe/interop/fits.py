"""FITS writer built on astropy.io.fits.

Pixels become the image data (multi-channel images as a (C, H, W) cube),
metadata entries become header cards in insertion order, the capture
timestamp becomes DATE-OBS and the color space COLORSPC. Keys longer than
eight characters are written as HIERARCH cards.

Example:
    >>> path = write_fits(frame, "m31_0001.fits", FitsCompression.RICE)
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
from astropy.io import fits
from astropy.time import Time

from skyframe.images.base import ImageBase
from skyframe.images.dynamic import DynamicImage
from skyframe.images.generic import GenericImage
from skyframe.metadata import MetadataValue, ValueKind
from skyframe.observability import get_logger

__all__ = ["FitsCompression", "write_fits"]

logger = get_logger(__name__)

# Keywords that describe the data layout; astropy owns them
_STRUCTURAL = frozenset(
    {"SIMPLE", "BITPIX", "EXTEND", "BZERO", "BSCALE", "PCOUNT", "GCOUNT", "XTENSION", "END"}
)
_INT64_MAX = 2**63 - 1


class FitsCompression(Enum):
    """Tile compression of the written HDU; values are astropy names."""

    NONE = None
    RICE = "RICE_1"
    GZIP1 = "GZIP_1"
    GZIP2 = "GZIP_2"
    HCOMPRESS = "HCOMPRESS_1"
    PLIO = "PLIO_1"


def _card_value(value: MetadataValue) -> Any:
    kind = value.kind
    if kind is ValueKind.TIMESTAMP:
        return Time(value.value).isot
    if kind is ValueKind.DURATION:
        return value.value.total_seconds()
    if kind is ValueKind.COLORSPACE:
        return str(value.value)
    if kind is ValueKind.U64 and value.value > _INT64_MAX:
        # FITS integers are signed 64-bit at most
        return str(value.value)
    return value.value


def _card_key(key: str) -> str:
    return key if len(key) <= 8 else f"HIERARCH {key}"


def _build_header(image: Any) -> fits.Header:
    header = fits.Header()
    if isinstance(image, GenericImage):
        header["DATE-OBS"] = (Time(image.timestamp).isot, "Capture time (UTC)")
        for entry in image.entries():
            if entry.key in _STRUCTURAL or entry.key.startswith("NAXIS"):
                logger.warning("Metadata key skipped in FITS header", key=entry.key)
                continue
            header[_card_key(entry.key)] = (_card_value(entry.value), entry.comment)
    header["COLORSPC"] = (str(image.color_space), "Color space")
    return header


def _data_cube(image: ImageBase | DynamicImage | GenericImage) -> np.ndarray:
    pixels = image.as_array()
    if pixels.shape[2] == 1:
        return np.ascontiguousarray(pixels[:, :, 0])
    return np.ascontiguousarray(np.moveaxis(pixels, 2, 0))


def write_fits(
    image: ImageBase | DynamicImage | GenericImage,
    path: str | Path,
    compression: FitsCompression | str = FitsCompression.NONE,
    overwrite: bool = False,
) -> Path:
    """Write an image to a FITS file.

    Args:
        image: Any skyframe image, borrowed or owned. Only generic images
            carry metadata and DATE-OBS.
        path: Destination file.
        compression: FitsCompression member, or any other astropy
            compression_type name for custom tile compression.
        overwrite: Replace an existing file.

    Returns:
        The written path.

    Raises:
        FileExistsError: The file exists and overwrite is False.
        BorrowReleasedError: A borrowed image was already released.
    """
    target = Path(path)
    if target.exists() and not overwrite:
        raise FileExistsError(f"FITS file already exists: {target}")

    header = _build_header(image)
    data = _data_cube(image)
    kind = compression.value if isinstance(compression, FitsCompression) else compression

    if kind is None:
        hdus = fits.HDUList([fits.PrimaryHDU(data=data, header=header)])
    else:
        hdus = fits.HDUList(
            [fits.PrimaryHDU(), fits.CompImageHDU(data=data, header=header, compression_type=kind)]
        )
    hdus.writeto(target, overwrite=overwrite)
    logger.info(
        "FITS written",
        path=str(target),
        compression=kind or "none",
        width=image.width,
        height=image.height,
    )
    return target
