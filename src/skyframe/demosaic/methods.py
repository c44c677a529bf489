"""Demosaic method selector."""

from __future__ import annotations

from enum import Enum

from skyframe.config import get_config

__all__ = ["DemosaicMethod"]


class DemosaicMethod(Enum):
    """Selectable demosaic algorithms.

    NONE      Native sample in its own channel, other channels zero.
    NEAREST   Missing colors copied from the 2x2 neighbourhood.
    LINEAR    Bilinear interpolation.
    CUBIC     7x7 cubic interpolation.
    """

    NONE = "none"
    NEAREST = "nearest"
    LINEAR = "linear"
    CUBIC = "cubic"

    @property
    def min_size(self) -> int:
        """Smallest width and height the method accepts."""
        return 4 if self is DemosaicMethod.CUBIC else 2

    @property
    def border(self) -> int:
        """Reflect-padding width the method reads beyond the image edge."""
        return {DemosaicMethod.LINEAR: 1, DemosaicMethod.CUBIC: 3}.get(self, 0)

    @classmethod
    def default(cls) -> DemosaicMethod:
        """Method named by ProcessingConfig.default_method."""
        return cls(get_config().default_method)

    @classmethod
    def parse(cls, value: DemosaicMethod | str | None) -> DemosaicMethod:
        if value is None:
            return cls.default()
        if isinstance(value, DemosaicMethod):
            return value
        return cls(value.lower())
