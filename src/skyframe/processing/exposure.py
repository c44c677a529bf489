"""Optimum exposure calculator.

One call performs one step of an acquire, measure, adjust loop: it looks
at a bright percentile of the last frame and proposes the exposure (and
optionally binning) that would bring that percentile to a target level.
Iterating externally converges; the calculator itself never loops on
acquisition.

Example:
    >>> calc = OptimumExposure(pixel_exclusion=1)
    >>> rec = calc.calculate(np.arange(10, dtype=np.uint8), timedelta(seconds=10))
    >>> rec.exposure, rec.binning
    (datetime.timedelta(seconds=10), 1)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, NamedTuple

import numpy as np
from numpy.typing import NDArray

from skyframe.errors import EmptyImageError
from skyframe.images.base import ImageBase
from skyframe.observability import get_logger
from skyframe.pixels import ElementType, array_to_f32

__all__ = ["ExposureRecommendation", "OptimumExposure"]

logger = get_logger(__name__)

# Normalized levels must resolve at least one 16-bit count
_MIN_LEVEL = 1.6e-5
_MAX_BINNING = 32
_MAX_EXCLUSION = 65536
_VALUE_FLOOR = 1e-5


class ExposureRecommendation(NamedTuple):
    """Proposed exposure and binning for the next frame."""

    exposure: timedelta
    binning: int


@dataclass(frozen=True)
class OptimumExposure:
    """Parameters of the exposure calculator.

    Attributes:
        percentile: Fraction (0-1) of the sorted samples whose value is
            driven toward ``target``.
        target: Target level of that sample, as a fraction of full scale.
        tolerance: No change is proposed while the sample is closer than
            this to the target (fraction of full scale).
        pixel_exclusion: The brightest this-many samples are never used,
            so a few hot pixels cannot pin the exposure.
        min_exposure: Lower exposure bound.
        max_exposure: Upper exposure bound.
        max_binning: Largest binning factor the camera supports; 1 disables
            binning changes.
        damping: Fraction (0-1] of the proportional correction applied per
            step; 1.0 jumps straight to the proportional estimate.

    Raises:
        ValueError: On construction, for any out-of-range parameter.
    """

    percentile: float = 0.995
    target: float = 40000 / 65536
    tolerance: float = 5000 / 65536
    pixel_exclusion: int = 100
    min_exposure: timedelta = field(default=timedelta(milliseconds=1))
    max_exposure: timedelta = field(default=timedelta(seconds=10))
    max_binning: int = 1
    damping: float = 1.0

    def __post_init__(self) -> None:
        if not _MIN_LEVEL <= self.target <= 1.0:
            raise ValueError(f"target must be in [{_MIN_LEVEL}, 1], got {self.target}")
        if not _MIN_LEVEL <= self.tolerance <= 1.0:
            raise ValueError(
                f"tolerance must be in [{_MIN_LEVEL}, 1], got {self.tolerance}"
            )
        if not 0.0 <= self.percentile <= 1.0:
            raise ValueError(f"percentile must be in [0, 1], got {self.percentile}")
        if self.min_exposure >= self.max_exposure:
            raise ValueError("min_exposure must be less than max_exposure")
        if not 0 <= self.pixel_exclusion <= _MAX_EXCLUSION:
            raise ValueError(
                f"pixel_exclusion must be in [0, {_MAX_EXCLUSION}], "
                f"got {self.pixel_exclusion}"
            )
        if not 1 <= self.max_binning <= _MAX_BINNING:
            raise ValueError(
                f"max_binning must be in [1, {_MAX_BINNING}], got {self.max_binning}"
            )
        if not 0.0 < self.damping <= 1.0:
            raise ValueError(f"damping must be in (0, 1], got {self.damping}")

    def calculate(
        self,
        samples: ImageBase | NDArray[Any],
        exposure: timedelta,
        binning: int = 1,
    ) -> ExposureRecommendation:
        """Propose the exposure for the next frame.

        Args:
            samples: Image or array of uint8, uint16 or float32 samples.
                Integer samples are normalized to 0-1 first.
            exposure: Exposure the samples were taken with.
            binning: Binning the samples were taken with.

        Returns:
            Recommendation; exactly the inputs when already within tolerance.

        Raises:
            EmptyImageError: No samples.
            TypeError: Unsupported sample dtype.
        """
        if isinstance(samples, ImageBase):
            values = samples.data
        else:
            values = np.asarray(samples).reshape(-1)
        if values.size == 0:
            raise EmptyImageError("Cannot compute exposure statistics of an empty image")
        ElementType.from_dtype(values.dtype)

        ordered = np.sort(array_to_f32(values).reshape(-1))
        count = ordered.size
        if self.percentile > 0.99999:
            coord = count - 1
        else:
            coord = math.floor(self.percentile * (count - 1))
        coord = max(min(coord, count - 1 - self.pixel_exclusion), 0)
        level = float(ordered[coord])

        if abs(self.target - level) < self.tolerance:
            return ExposureRecommendation(exposure, binning)

        level = max(level, _VALUE_FLOOR)
        seconds = exposure.total_seconds()
        proportional = abs(self.target * seconds / level)
        proposed = seconds + self.damping * (proportional - seconds)

        low = self.min_exposure.total_seconds()
        high = self.max_exposure.total_seconds()
        bin_ = binning
        if self.max_binning > 1:
            if proposed < high:
                while proposed < high and bin_ > 2:
                    bin_ //= 2
                    proposed *= 4
            else:
                while proposed > high and bin_ * 2 <= self.max_binning:
                    bin_ *= 2
                    proposed /= 4

        proposed = min(max(proposed, low), high)
        bin_ = min(max(bin_, 1), self.max_binning)
        recommendation = ExposureRecommendation(timedelta(seconds=proposed), bin_)
        logger.debug(
            "Exposure step",
            sample_level=round(level, 6),
            exposure_s=seconds,
            proposed_s=proposed,
            binning=bin_,
        )
        return recommendation
