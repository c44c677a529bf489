"""Luminance conversion."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from skyframe.colorspace import ColorSpace
from skyframe.errors import AlreadyGrayError, WeightCountMismatchError
from skyframe.images.base import ImageBase
from skyframe.images.owned import ImageOwned
from skyframe.observability import get_logger
from skyframe.parallel import map_rows

__all__ = ["DEFAULT_LUMA_WEIGHTS", "luma_array", "to_luma"]

logger = get_logger(__name__)

# ITU-R BT.601
DEFAULT_LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def _resolve_weights(channels: int, weights: Sequence[float] | None) -> tuple[float, ...]:
    if weights is None:
        if channels != len(DEFAULT_LUMA_WEIGHTS):
            raise WeightCountMismatchError(
                f"Default weights cover 3 channels, image has {channels}"
            )
        return DEFAULT_LUMA_WEIGHTS
    resolved = tuple(float(w) for w in weights)
    if len(resolved) != channels:
        raise WeightCountMismatchError(
            f"Got {len(resolved)} weights for {channels} channels"
        )
    return resolved


def luma_array(
    image: ImageBase,
    weights: Sequence[float] | None = None,
    workers: int | None = None,
) -> NDArray[Any]:
    """Weighted channel sum as a new (height, width) array.

    Sums run in float64. Integer images are rounded to nearest and saturated
    to their range; float32 results are not clamped.

    Raises:
        AlreadyGrayError: The image has a single channel (Gray or Bayer).
        WeightCountMismatchError: Weight count differs from channel count, or
            weights omitted for an image that is not 3-channel.
    """
    if image.channels == 1:
        raise AlreadyGrayError(f"{image.color_space} image has a single channel")
    resolved = _resolve_weights(image.channels, weights)

    src = image.as_array()
    out = np.empty((image.height, image.width), dtype=src.dtype)
    top = None if src.dtype.kind == "f" else np.iinfo(src.dtype).max

    def work(start: int, stop: int) -> None:
        rows = src[start:stop]
        total = np.zeros(rows.shape[:2], dtype=np.float64)
        for channel, weight in enumerate(resolved):
            total += rows[:, :, channel].astype(np.float64) * weight
        if top is not None:
            total = np.clip(np.floor(total + 0.5), 0, top)
        out[start:stop] = total.astype(out.dtype)

    map_rows(work, image.height, image.width * image.height, workers=workers)
    return out


def to_luma(
    image: ImageOwned,
    weights: Sequence[float] | None = None,
    workers: int | None = None,
) -> None:
    """Collapse an owned multi-channel image to Gray in place.

    On failure the image is left untouched.
    """
    gray = luma_array(image, weights, workers=workers)
    image._replace(gray, ColorSpace.GRAY)
    logger.debug("Luminance conversion complete", **image.describe())
