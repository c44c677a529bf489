"""Color spaces and Bayer mosaic patterns.

A Bayer pattern names the colors of the 2x2 tile at the top-left corner of a
mosaic sensor, read left to right then top to bottom: RGGB means red at
(0, 0), green at (1, 0) and (0, 1), blue at (1, 1).

Reading a sub-window (ROI) whose origin is not on an even pixel changes the
pattern the cropped buffer starts with; BayerPattern.shift() computes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import ClassVar

__all__ = ["Channel", "BayerPattern", "ColorSpaceKind", "ColorSpace"]


class Channel(IntEnum):
    """Channel index of a color in an interleaved RGB pixel."""

    RED = 0
    GREEN = 1
    BLUE = 2


class BayerPattern(Enum):
    """The four alignments of the 2x2 Bayer tile."""

    BGGR = "BGGR"
    GBRG = "GBRG"
    GRBG = "GRBG"
    RGGB = "RGGB"

    @property
    def index(self) -> int:
        """Stable numeric code used by the byte codec."""
        return _PATTERN_ORDER.index(self)

    @classmethod
    def from_index(cls, index: int) -> BayerPattern:
        """Inverse of ``index``.

        Raises:
            ValueError: If index is not 0-3.
        """
        if not 0 <= index < len(_PATTERN_ORDER):
            raise ValueError(f"Invalid Bayer pattern index: {index}")
        return _PATTERN_ORDER[index]

    @property
    def tile(self) -> tuple[tuple[Channel, Channel], tuple[Channel, Channel]]:
        """The 2x2 tile as ((c00, c10), (c01, c11)), indexed [y][x]."""
        letters = [_LETTERS[c] for c in self.value]
        return ((letters[0], letters[1]), (letters[2], letters[3]))

    def color_at(self, x: int, y: int) -> Channel:
        """Color of the sample at pixel (x, y) of a mosaic with this pattern.

        Example:
            >>> BayerPattern.RGGB.color_at(1, 1)
            <Channel.BLUE: 2>
        """
        return self.tile[y % 2][x % 2]

    def shift(self, x: int, y: int) -> BayerPattern:
        """Pattern seen by a window whose origin is at (x, y).

        Only the parities of x and y matter, so shift(2, 2) is the identity.

        Example:
            >>> BayerPattern.RGGB.shift(1, 0)
            <BayerPattern.GRBG: 'GRBG'>
            >>> BayerPattern.RGGB.shift(1, 1)
            <BayerPattern.BGGR: 'BGGR'>
        """
        tile = self.tile
        name = "".join(
            _NAMES[tile[(y + j) % 2][(x + i) % 2]] for j in range(2) for i in range(2)
        )
        return BayerPattern(name)

    def next_x(self) -> BayerPattern:
        """Pattern starting one column to the right."""
        return self.shift(1, 0)

    def next_y(self) -> BayerPattern:
        """Pattern starting one row down."""
        return self.shift(0, 1)

    def flip_horizontal(self) -> BayerPattern:
        """Pattern of the tile mirrored left-right (RGGB -> GRBG)."""
        (a, b), (c, d) = self.tile
        return BayerPattern(_NAMES[b] + _NAMES[a] + _NAMES[d] + _NAMES[c])

    def flip_vertical(self) -> BayerPattern:
        """Pattern of the tile mirrored top-bottom (RGGB -> GBRG)."""
        (a, b), (c, d) = self.tile
        return BayerPattern(_NAMES[c] + _NAMES[d] + _NAMES[a] + _NAMES[b])


_PATTERN_ORDER = (
    BayerPattern.BGGR,
    BayerPattern.GBRG,
    BayerPattern.GRBG,
    BayerPattern.RGGB,
)
_LETTERS = {"R": Channel.RED, "G": Channel.GREEN, "B": Channel.BLUE}
_NAMES = {v: k for k, v in _LETTERS.items()}

MAX_CUSTOM_CHANNELS = 255
# Custom names are stored with a u8 byte length
MAX_CUSTOM_NAME = 255


class ColorSpaceKind(IntEnum):
    """Color space family; values are the codec tags."""

    GRAY = 0
    BAYER = 1
    RGB = 4
    CUSTOM = 7


@dataclass(frozen=True)
class ColorSpace:
    """Color space tag of an image.

    Use the ``GRAY`` and ``RGB`` constants, ``ColorSpace.bayer(pattern)``,
    or ``ColorSpace.custom(channels, name)`` for any other channel layout
    (for example RGB plus near-infrared).

    Example:
        >>> cs = ColorSpace.bayer(BayerPattern.RGGB)
        >>> cs.is_bayer(), cs.channels, str(cs)
        (True, 1, 'BAYER_RGGB')
        >>> ColorSpace.parse("rgb") == ColorSpace.RGB
        True
        >>> str(ColorSpace.custom(4, "RGBI"))
        'CUSTOM_4_RGBI'
    """

    kind: ColorSpaceKind
    pattern: BayerPattern | None = None
    count: int | None = None
    name: str = ""

    GRAY: ClassVar[ColorSpace]
    RGB: ClassVar[ColorSpace]

    def __post_init__(self) -> None:
        if (self.kind is ColorSpaceKind.BAYER) != (self.pattern is not None):
            raise ValueError("A Bayer pattern is required for, and only for, BAYER")
        if self.kind is ColorSpaceKind.CUSTOM:
            if isinstance(self.count, bool) or not isinstance(self.count, int):
                raise ValueError(f"Custom channel count must be an integer, got {self.count!r}")
            if not 1 <= self.count <= MAX_CUSTOM_CHANNELS:
                raise ValueError(
                    f"Custom channel count must be in [1, {MAX_CUSTOM_CHANNELS}], "
                    f"got {self.count}"
                )
            if len(self.name.encode("utf-8")) > MAX_CUSTOM_NAME:
                raise ValueError(f"Custom color space name longer than {MAX_CUSTOM_NAME} bytes")
        elif self.count is not None or self.name:
            raise ValueError("Channel count and name apply only to CUSTOM")

    @classmethod
    def bayer(cls, pattern: BayerPattern | str) -> ColorSpace:
        if isinstance(pattern, str):
            pattern = BayerPattern(pattern.upper())
        return cls(ColorSpaceKind.BAYER, pattern)

    @classmethod
    def custom(cls, channels: int, name: str = "") -> ColorSpace:
        """Color space with ``channels`` interleaved channels of unnamed colors.

        Raises:
            ValueError: channels outside 1-255 or name too long.
        """
        return cls(ColorSpaceKind.CUSTOM, count=channels, name=name)

    def is_bayer(self) -> bool:
        return self.kind is ColorSpaceKind.BAYER

    @property
    def channels(self) -> int:
        """Channel count implied by the color space."""
        if self.count is not None:
            return self.count
        return 3 if self.kind is ColorSpaceKind.RGB else 1

    def shift(self, x: int, y: int) -> ColorSpace:
        """Color space of an ROI at (x, y); non-Bayer spaces are unchanged."""
        if self.pattern is None:
            return self
        return ColorSpace.bayer(self.pattern.shift(x, y))

    @classmethod
    def parse(cls, text: str) -> ColorSpace:
        """Parse "GRAY", "RGB", "BAYER_<pattern>" or "CUSTOM_<n>[_<name>]".

        Names are case-insensitive except the custom name, which is kept.

        Raises:
            ValueError: If the text names no color space.
        """
        stripped = text.strip()
        name = stripped.upper()
        if name == "GRAY":
            return cls.GRAY
        if name == "RGB":
            return cls.RGB
        if name.startswith("BAYER_"):
            return cls.bayer(name[len("BAYER_") :])
        if name.startswith("CUSTOM_"):
            parts = stripped.split("_", 2)
            if not parts[1].isdigit():
                raise ValueError(f"Unknown color space: {text!r}")
            return cls.custom(int(parts[1]), parts[2] if len(parts) > 2 else "")
        raise ValueError(f"Unknown color space: {text!r}")

    def __str__(self) -> str:
        if self.pattern is not None:
            return f"BAYER_{self.pattern.value}"
        if self.kind is ColorSpaceKind.CUSTOM:
            suffix = f"_{self.name}" if self.name else ""
            return f"CUSTOM_{self.count}{suffix}"
        return self.kind.name


ColorSpace.GRAY = ColorSpace(ColorSpaceKind.GRAY)
ColorSpace.RGB = ColorSpace(ColorSpaceKind.RGB)
