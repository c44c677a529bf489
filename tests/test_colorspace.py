"""Unit tests for skyframe.colorspace."""

import pytest

from skyframe.colorspace import BayerPattern, Channel, ColorSpace, ColorSpaceKind

ALL_PATTERNS = list(BayerPattern)


class TestBayerPattern:
    """Tests for BayerPattern color lookup and shifting."""

    def test_color_at_rggb(self):
        """RGGB has red at the origin and blue on the diagonal."""
        p = BayerPattern.RGGB
        assert p.color_at(0, 0) is Channel.RED
        assert p.color_at(1, 0) is Channel.GREEN
        assert p.color_at(0, 1) is Channel.GREEN
        assert p.color_at(1, 1) is Channel.BLUE
        assert p.color_at(4, 6) is Channel.RED

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_shift_identity_and_period(self, pattern):
        """shift(0,0) and shift(2,2) return the same pattern."""
        assert pattern.shift(0, 0) is pattern
        assert pattern.shift(2, 2) is pattern
        assert pattern.shift(3, 5) is pattern.shift(1, 1)

    def test_shift_rggb(self):
        """Odd origins move the tile to the expected alignment."""
        assert BayerPattern.RGGB.shift(1, 0) is BayerPattern.GRBG
        assert BayerPattern.RGGB.shift(0, 1) is BayerPattern.GBRG
        assert BayerPattern.RGGB.shift(1, 1) is BayerPattern.BGGR

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_shift_matches_color_at(self, pattern):
        """The shifted pattern sees the colors of the original at the offset."""
        for x in range(3):
            for y in range(3):
                shifted = pattern.shift(x, y)
                for i in range(2):
                    for j in range(2):
                        assert shifted.color_at(i, j) is pattern.color_at(x + i, y + j)

    def test_next_x_and_next_y_pairs(self):
        """next_x swaps BGGR/GBRG and GRBG/RGGB; next_y swaps BGGR/GRBG."""
        assert BayerPattern.BGGR.next_x() is BayerPattern.GBRG
        assert BayerPattern.GRBG.next_x() is BayerPattern.RGGB
        assert BayerPattern.BGGR.next_y() is BayerPattern.GRBG
        assert BayerPattern.GBRG.next_y() is BayerPattern.RGGB

    def test_flips(self):
        """Mirroring the tile swaps columns or rows."""
        assert BayerPattern.RGGB.flip_horizontal() is BayerPattern.GRBG
        assert BayerPattern.GBRG.flip_horizontal() is BayerPattern.BGGR
        assert BayerPattern.RGGB.flip_vertical() is BayerPattern.GBRG
        assert BayerPattern.GRBG.flip_vertical() is BayerPattern.BGGR

    @pytest.mark.parametrize("pattern", ALL_PATTERNS)
    def test_index_round_trip(self, pattern):
        """Codec index maps back to the same pattern."""
        assert BayerPattern.from_index(pattern.index) is pattern

    def test_from_index_rejects_unknown(self):
        with pytest.raises(ValueError):
            BayerPattern.from_index(4)


class TestColorSpace:
    """Tests for the ColorSpace value type."""

    def test_channels(self):
        assert ColorSpace.GRAY.channels == 1
        assert ColorSpace.RGB.channels == 3
        assert ColorSpace.bayer("rggb").channels == 1

    def test_is_bayer(self):
        assert ColorSpace.bayer(BayerPattern.GBRG).is_bayer()
        assert not ColorSpace.RGB.is_bayer()

    def test_equality_and_hash(self):
        """Color spaces are values."""
        assert ColorSpace.bayer("RGGB") == ColorSpace.bayer(BayerPattern.RGGB)
        assert ColorSpace(ColorSpaceKind.GRAY) == ColorSpace.GRAY
        assert len({ColorSpace.bayer("RGGB"), ColorSpace.bayer("RGGB")}) == 1

    @pytest.mark.parametrize(
        "text", ["GRAY", "RGB", "BAYER_RGGB", "BAYER_GBRG", "CUSTOM_4_RGBI", "CUSTOM_2"]
    )
    def test_parse_format_round_trip(self, text):
        assert str(ColorSpace.parse(text)) == text

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            ColorSpace.parse("CMYK")

    def test_pattern_required_for_bayer_only(self):
        with pytest.raises(ValueError):
            ColorSpace(ColorSpaceKind.BAYER)
        with pytest.raises(ValueError):
            ColorSpace(ColorSpaceKind.RGB, BayerPattern.RGGB)

    def test_custom_channels_and_name(self):
        space = ColorSpace.custom(4, "RGBI")
        assert space.kind is ColorSpaceKind.CUSTOM
        assert space.channels == 4
        assert not space.is_bayer()
        assert str(space) == "CUSTOM_4_RGBI"
        assert space == ColorSpace.custom(4, "RGBI")
        assert space != ColorSpace.custom(4, "RGBA")
        assert ColorSpace.custom(255).channels == 255

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("CUSTOM_4_RGBI", ColorSpace.custom(4, "RGBI")),
            ("custom_2", ColorSpace.custom(2)),
            ("CUSTOM_5_Narrow_Band", ColorSpace.custom(5, "Narrow_Band")),
        ],
    )
    def test_parse_custom(self, text, expected):
        assert ColorSpace.parse(text) == expected

    @pytest.mark.parametrize("count", [0, 256, 2.0, True])
    def test_custom_rejects_bad_counts(self, count):
        with pytest.raises(ValueError):
            ColorSpace.custom(count)

    def test_custom_fields_only_for_custom(self):
        with pytest.raises(ValueError):
            ColorSpace(ColorSpaceKind.RGB, count=3)
        with pytest.raises(ValueError):
            ColorSpace(ColorSpaceKind.GRAY, name="mono")
        with pytest.raises(ValueError):
            ColorSpace.custom(2, "x" * 256)
        with pytest.raises(ValueError):
            ColorSpace.parse("CUSTOM_X")

    def test_shift(self):
        """Shifting a Bayer space shifts its pattern; others are unchanged."""
        assert ColorSpace.bayer("RGGB").shift(1, 0) == ColorSpace.bayer("GRBG")
        assert ColorSpace.RGB.shift(1, 1) is ColorSpace.RGB
