"""Debayer entry point.

Validates the input, allocates the RGB output once, then lets the worker
pool fill disjoint row ranges with the selected kernel.
"""

from __future__ import annotations

import time
from functools import partial
from typing import Any

import numpy as np

from skyframe.colorspace import ColorSpace
from skyframe.demosaic.kernels import (
    Kernel,
    fill_cubic,
    fill_linear,
    fill_nearest,
    fill_none,
)
from skyframe.demosaic.methods import DemosaicMethod
from skyframe.errors import DimensionTooSmallError, NotBayerError
from skyframe.images.base import ImageBase
from skyframe.images.owned import ImageOwned
from skyframe.observability import get_logger
from skyframe.parallel import map_rows
from skyframe.pixels import ElementType

__all__ = ["debayer"]

logger = get_logger(__name__)

_KERNELS: dict[DemosaicMethod, Kernel] = {
    DemosaicMethod.NONE: fill_none,
    DemosaicMethod.NEAREST: fill_nearest,
    DemosaicMethod.LINEAR: fill_linear,
    DemosaicMethod.CUBIC: fill_cubic,
}

# Working dtype and saturation limit per element type
_ARITHMETIC: dict[ElementType, tuple[Any, int | None]] = {
    ElementType.U8: (np.int64, 255),
    ElementType.U16: (np.int64, 65535),
    ElementType.F32: (np.float64, None),
}


def debayer(
    image: ImageBase,
    method: DemosaicMethod | str | None = None,
    roi: tuple[int, int] = (0, 0),
    workers: int | None = None,
) -> ImageOwned:
    """Reconstruct an RGB image from a Bayer mosaic.

    Args:
        image: Single-channel Bayer image, borrowed or owned.
        method: Demosaic method; defaults to ProcessingConfig.default_method.
        roi: Origin (x, y) of the image on the sensor when it is a sub-window
            whose corner is off the mosaic period. The pattern is shifted by
            it before demosaicing.
        workers: Override for the configured worker count.

    Returns:
        New owned RGB image, same size and element type.

    Raises:
        NotBayerError: The image is not tagged with a Bayer color space.
        DimensionTooSmallError: Width or height below the method minimum
            (2 for NONE, NEAREST and LINEAR; 4 for CUBIC).

    Example:
        >>> mosaic = ImageOwned(np.arange(16, dtype=np.uint8), 4, 4,
        ...                     ColorSpace.bayer("RGGB"))
        >>> rgb = debayer(mosaic, DemosaicMethod.NEAREST)
        >>> rgb.as_array()[0, 0, 0]
        0
    """
    chosen = DemosaicMethod.parse(method)
    space = image.color_space
    if space.pattern is None:
        logger.warning("Debayer rejected", reason="not bayer", color_space=str(space))
        raise NotBayerError(f"Cannot debayer a {space} image")
    width, height = image.width, image.height
    if width < chosen.min_size or height < chosen.min_size:
        logger.warning(
            "Debayer rejected", reason="too small", width=width, height=height,
            method=chosen.value,
        )
        raise DimensionTooSmallError(
            f"{chosen.name} debayer needs at least {chosen.min_size}x"
            f"{chosen.min_size}, got {width}x{height}"
        )

    pattern = space.pattern.shift(*roi)
    src = image.as_array().reshape(height, width)
    out = np.zeros((height, width, 3), dtype=image.element_type.dtype)

    kernel = _KERNELS[chosen]
    options: dict[str, Any] = {}
    if chosen.border:
        accum, top = _ARITHMETIC[image.element_type]
        options["padded"] = np.pad(src.astype(accum), chosen.border, mode="reflect")
        options["top"] = top

    started = time.perf_counter()
    map_rows(
        partial(kernel, src, pattern, out, **options),
        height,
        width * height,
        workers=workers,
    )
    logger.debug(
        "Debayer complete",
        method=chosen.value,
        pattern=pattern.value,
        width=width,
        height=height,
        element_type=image.element_type.name,
        elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
    )
    return ImageOwned._adopt(out, width, height, ColorSpace.RGB)
