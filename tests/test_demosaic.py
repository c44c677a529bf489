"""Unit tests for skyframe.demosaic."""

import numpy as np
import pytest

from skyframe import (
    ColorSpace,
    DemosaicMethod,
    DimensionTooSmallError,
    ImageOwned,
    ImageRef,
    NotBayerError,
    configure,
    debayer,
)
from tests.helpers import (
    CUBIC_8X8,
    LINEAR_3X3,
    LINEAR_4X4,
    NEAREST_3X3,
    NEAREST_4X4,
    NONE_4X4,
)

RGGB = ColorSpace.bayer("RGGB")


def mosaic(data, width, height, space=RGGB):
    return ImageOwned(np.asarray(data), width, height, space)


class TestReferenceVectors:
    """Known outputs for small RGGB mosaics."""

    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            (DemosaicMethod.NEAREST, NEAREST_4X4),
            (DemosaicMethod.LINEAR, LINEAR_4X4),
            (DemosaicMethod.NONE, NONE_4X4),
        ],
    )
    def test_4x4(self, rggb_4x4, method, expected):
        result = debayer(mosaic(rggb_4x4, 4, 4), method)
        assert result.color_space == ColorSpace.RGB
        assert result.data.tolist() == expected

    @pytest.mark.parametrize(
        ("method", "expected"),
        [(DemosaicMethod.NEAREST, NEAREST_3X3), (DemosaicMethod.LINEAR, LINEAR_3X3)],
    )
    def test_3x3(self, rggb_3x3, method, expected):
        result = debayer(mosaic(rggb_3x3, 3, 3), method)
        assert result.data.tolist() == expected

    def test_cubic_8x8(self, rggb_8x8):
        result = debayer(mosaic(rggb_8x8, 8, 8), DemosaicMethod.CUBIC)
        assert result.data.tolist() == CUBIC_8X8

    def test_native_red_preserved(self):
        """RGGB pixel (0, 0) keeps its red sample."""
        result = debayer(mosaic(np.arange(16, dtype=np.uint8), 4, 4), DemosaicMethod.NEAREST)
        rgb = result.as_array()
        assert rgb.shape == (4, 4, 3)
        assert rgb[0, 0, 0] == 0


class TestPreconditions:
    """Input validation."""

    def test_not_bayer(self):
        with pytest.raises(NotBayerError):
            debayer(mosaic(np.zeros(16, dtype=np.uint8), 4, 4, ColorSpace.GRAY))

    @pytest.mark.parametrize(
        ("method", "size"),
        [
            (DemosaicMethod.NEAREST, 1),
            (DemosaicMethod.LINEAR, 1),
            (DemosaicMethod.NONE, 1),
            (DemosaicMethod.CUBIC, 3),
        ],
    )
    def test_too_small(self, method, size):
        image = mosaic(np.zeros(size * 8, dtype=np.uint8), 8, size)
        with pytest.raises(DimensionTooSmallError):
            debayer(image, method)

    def test_method_by_name_and_default(self, rggb_4x4):
        """Strings select methods; the configured default applies otherwise."""
        image = mosaic(rggb_4x4, 4, 4)
        assert debayer(image, "linear").data.tolist() == LINEAR_4X4
        configure(default_method="linear")
        assert debayer(image).data.tolist() == LINEAR_4X4


class TestBehaviour:
    """Properties every method must satisfy."""

    @pytest.mark.parametrize("method", list(DemosaicMethod))
    @pytest.mark.parametrize("dtype", [np.uint8, np.uint16, np.float32])
    def test_sequential_equals_parallel(self, method, dtype):
        """Row partitioning never changes a single byte."""
        rng = np.random.default_rng(1234)
        if dtype is np.float32:
            data = rng.random(37 * 29, dtype=np.float32)
        else:
            data = rng.integers(0, np.iinfo(dtype).max, size=37 * 29, dtype=dtype)
        image = mosaic(data, 37, 29)

        configure(workers=1)
        sequential = debayer(image, method)
        configure(workers=4, parallel_threshold=0)
        parallel = debayer(image, method)
        again = debayer(image, method)

        assert sequential.as_bytes() == parallel.as_bytes() == again.as_bytes()
        assert sequential.element_type is image.element_type

    @pytest.mark.parametrize("method", list(DemosaicMethod))
    def test_native_samples_kept(self, method):
        """Every method leaves each pixel's own color untouched."""
        rng = np.random.default_rng(5)
        data = rng.integers(0, 65535, size=64, dtype=np.uint16)
        image = mosaic(data, 8, 8)
        rgb = debayer(image, method).as_array()
        src = data.reshape(8, 8)
        for y in range(8):
            for x in range(8):
                channel = RGGB.pattern.color_at(x, y)
                assert rgb[y, x, channel] == src[y, x]

    def test_flat_field_stays_flat(self):
        """A uniform mosaic demosaics to the same uniform value everywhere."""
        image = mosaic(np.full(36, 1000, dtype=np.uint16), 6, 6)
        for method in (DemosaicMethod.NEAREST, DemosaicMethod.LINEAR, DemosaicMethod.CUBIC):
            assert set(debayer(image, method).data.tolist()) == {1000}

    def test_cubic_clips_overshoot_at_hard_edge(self):
        """A full-scale vertical step overshoots on both sides; integers clip.

        Columns 0-3 are 0 and columns 4-7 full scale. At green (5, 0) the red
        estimate is (18 * 65535 - 2 * 32767) // 16 = 69631, and at green
        (2, 1) the blue estimate is -2 * 32767 // 16 < 0. The same edge in
        float32 keeps the unclipped 17/16 and -1/16.
        """
        data = np.zeros((8, 8), dtype=np.uint16)
        data[:, 4:] = 65535
        rgb = debayer(mosaic(data.ravel(), 8, 8), DemosaicMethod.CUBIC).as_array()
        assert rgb[0, 5, 0] == 65535
        assert rgb[1, 2, 2] == 0
        # Green at red sites: one side undershoots, the other stays in range
        assert rgb[0, 2, 1] == 0
        assert rgb[0, 4, 1] == 53759
        assert rgb[0, 6, 1] == 65279
        assert rgb[0, 4, 2] == 32767

        edge = (data / 65535).astype(np.float32)
        rgb = debayer(mosaic(edge.ravel(), 8, 8), DemosaicMethod.CUBIC).as_array()
        assert rgb[0, 5, 0] == pytest.approx(17 / 16)
        assert rgb[1, 2, 2] == pytest.approx(-1 / 16)

    def test_roi_shift(self, rggb_4x4):
        """A window starting at an odd column reads as the shifted pattern."""
        shifted = debayer(mosaic(rggb_4x4, 4, 4, ColorSpace.bayer("GRBG")), DemosaicMethod.NEAREST)
        via_roi = debayer(mosaic(rggb_4x4, 4, 4), DemosaicMethod.NEAREST, roi=(1, 0))
        assert shifted == via_roi

    def test_borrowed_input(self, rggb_4x4):
        with ImageRef(rggb_4x4, 4, 4, RGGB) as ref:
            result = debayer(ref, DemosaicMethod.NEAREST)
        assert result.data.tolist() == NEAREST_4X4
