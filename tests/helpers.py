"""Shared test data and builders for skyframe tests.

Example:
    from tests.helpers import make_generic

    image = make_generic(np.arange(4, dtype=np.uint16), 2, 2)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import numpy as np

from skyframe import ColorSpace, GenericImageOwned, ImageOwned

FIXED_TIME = datetime(2024, 3, 9, 21, 15, 30, 123456, tzinfo=UTC)

# Expected RGB output for the 4x4 RGGB fixture
NEAREST_4X4 = [
    229, 67, 51, 229, 67, 51, 95, 67, 51, 95, 146, 241,
    229, 232, 51, 229, 232, 51, 95, 229, 51, 95, 229, 241,
    169, 161, 51, 169, 161, 51, 15, 161, 51, 15, 52, 241,
    169, 45, 175, 169, 45, 175, 15, 98, 175, 15, 98, 197,
]  # fmt: skip

LINEAR_4X4 = [
    229, 149, 51, 162, 67, 51, 95, 167, 146, 95, 146, 241,
    199, 232, 51, 127, 172, 51, 55, 229, 146, 55, 164, 241,
    169, 149, 113, 92, 161, 113, 15, 135, 166, 15, 52, 219,
    169, 45, 175, 92, 116, 175, 15, 98, 186, 15, 75, 197,
]  # fmt: skip

NONE_4X4 = [
    229, 0, 0, 0, 67, 0, 95, 0, 0, 0, 146, 0,
    0, 232, 0, 0, 0, 51, 0, 229, 0, 0, 0, 241,
    169, 0, 0, 0, 161, 0, 15, 0, 0, 0, 52, 0,
    0, 45, 0, 0, 0, 175, 0, 98, 0, 0, 0, 197,
]  # fmt: skip

# Expected RGB output for the 3x3 RGGB fixture
NEAREST_3X3 = [
    229, 67, 232, 229, 67, 232, 95, 67, 232,
    229, 146, 232, 229, 146, 232, 95, 51, 232,
    229, 241, 232, 229, 241, 232, 169, 241, 232,
]  # fmt: skip

LINEAR_3X3 = [
    229, 106, 232, 162, 67, 232, 95, 59, 232,
    229, 146, 232, 180, 126, 232, 132, 51, 232,
    229, 193, 232, 199, 241, 232, 169, 146, 232,
]  # fmt: skip

# Expected RGB output for the 8x8 RGGB fixture
CUBIC_8X8 = [
    229, 122, 186, 161, 67, 172, 95, 42, 108, 154, 146, 58, 232, 60, 103, 238, 51, 169, 229, 117, 196, 228, 241, 206,
    182, 169, 174, 177, 110, 161, 177, 15, 98, 201, 69, 52, 218, 45, 104, 188, 104, 175, 153, 98, 195, 145, 158, 197,
    127, 158, 116, 185, 183, 105, 253, 95, 48, 243, 97, 14, 199, 120, 106, 122, 239, 203, 54, 153, 194, 35, 166, 167,
    135, 32, 76, 141, 102, 68, 151, 98, 21, 175, 120, 3, 179, 97, 114, 104, 158, 222, 26, 87, 179, 7, 115, 123,
    153, 80, 146, 98, 126, 141, 47, 157, 115, 111, 211, 99, 171, 168, 143, 106, 203, 174, 27, 179, 110, 9, 185, 52,
    138, 105, 211, 114, 153, 210, 99, 165, 209, 152, 166, 200, 193, 141, 174, 124, 178, 135, 42, 202, 57, 23, 159, 5,
    122, 118, 139, 142, 187, 145, 177, 157, 170, 211, 122, 194, 220, 109, 200, 143, 112, 184, 62, 93, 113, 42, 18, 60,
    118, 25, 68, 148, 128, 80, 193, 132, 120, 223, 111, 169, 226, 104, 213, 148, 95, 233, 66, 75, 171, 46, 16, 117,
]  # fmt: skip


def make_owned(
    data: Any, width: int, height: int, color_space: ColorSpace = ColorSpace.GRAY
) -> ImageOwned:
    """Owned image from anything np.asarray accepts."""
    return ImageOwned(np.asarray(data), width, height, color_space)


def make_generic(
    data: Any,
    width: int,
    height: int,
    color_space: ColorSpace = ColorSpace.GRAY,
    timestamp: datetime = FIXED_TIME,
) -> GenericImageOwned:
    """Generic owned image with a fixed timestamp and no metadata."""
    return GenericImageOwned(make_owned(data, width, height, color_space), timestamp)
