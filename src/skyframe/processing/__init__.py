"""Image processing helpers: luminance and exposure control."""

from skyframe.processing.exposure import ExposureRecommendation, OptimumExposure
from skyframe.processing.luma import DEFAULT_LUMA_WEIGHTS, luma_array, to_luma

__all__ = [
    "DEFAULT_LUMA_WEIGHTS",
    "ExposureRecommendation",
    "OptimumExposure",
    "luma_array",
    "to_luma",
]
