"""Unit tests for skyframe.pixels element types and casts."""

import math

import numpy as np
import pytest

from skyframe.config import configure
from skyframe.pixels import (
    ElementType,
    array_to_f32,
    cast_array_u8,
    cast_u8,
    from_f32,
    to_f32,
)


class TestElementType:
    """Tests for ElementType properties and lookups."""

    @pytest.mark.parametrize(
        ("element", "size", "bitpix", "top"),
        [
            (ElementType.U8, 1, 8, 255),
            (ElementType.U16, 2, 16, 65535),
            (ElementType.F32, 4, -32, 1.0),
        ],
    )
    def test_properties(self, element, size, bitpix, top):
        """Each element type reports its size, BITPIX and nominal maximum."""
        assert element.size == size
        assert element.bitpix == bitpix
        assert element.nominal_max == top

    def test_from_dtype_ignores_byte_order(self):
        """Big-endian uint16 still maps to U16."""
        assert ElementType.from_dtype(">u2") is ElementType.U16
        assert ElementType.from_dtype(np.float32) is ElementType.F32

    def test_from_dtype_rejects_unsupported(self):
        """int32 and float64 are not pixel element types."""
        with pytest.raises(TypeError):
            ElementType.from_dtype(np.int32)
        with pytest.raises(TypeError):
            ElementType.from_dtype(np.float64)

    def test_from_bitpix(self):
        """BITPIX codes map back to element types."""
        assert ElementType.from_bitpix(-32) is ElementType.F32
        with pytest.raises(ValueError):
            ElementType.from_bitpix(32)


class TestScalarCasts:
    """Tests for cast_u8, to_f32 and from_f32."""

    def test_cast_u8_endpoints(self):
        """Nominal range endpoints map to 0 and 255."""
        assert cast_u8(0, ElementType.U16) == 0
        assert cast_u8(65535, ElementType.U16) == 255
        assert cast_u8(1.0, ElementType.F32) == 255
        assert cast_u8(200, ElementType.U8) == 200

    def test_cast_u8_rounds_to_nearest(self):
        """Half a step rounds up."""
        assert cast_u8(0.5, ElementType.F32) == 128
        assert cast_u8(128, ElementType.U16) == 0
        assert cast_u8(129, ElementType.U16) == 1

    def test_cast_u8_saturates_floats(self):
        """Out-of-range floats and NaN never fail."""
        assert cast_u8(-4.0, ElementType.F32) == 0
        assert cast_u8(7.5, ElementType.F32) == 255
        assert cast_u8(math.nan, ElementType.F32) == 0

    def test_cast_u8_is_monotonic_over_u16(self):
        """cast_u8(a) <= cast_u8(b) whenever a <= b."""
        values = [cast_u8(v, ElementType.U16) for v in range(0, 65536, 7)]
        assert values == sorted(values)

    def test_to_f32(self):
        """Integers normalize by their maximum; F32 is exact."""
        assert to_f32(255, ElementType.U8) == 1.0
        assert to_f32(0, ElementType.U16) == 0.0
        assert to_f32(0.25, ElementType.F32) == 0.25

    def test_from_f32_saturates(self):
        """Values outside 0-1 clamp for integer targets."""
        assert from_f32(1.5, ElementType.U8) == 255
        assert from_f32(-0.2, ElementType.U16) == 0
        assert from_f32(0.5, ElementType.U16) == 32768
        assert from_f32(3.0, ElementType.F32) == 3.0

    @pytest.mark.parametrize("source", list(ElementType))
    @pytest.mark.parametrize(
        ("value", "expected"), [(math.inf, 255), (-math.inf, 0), (math.nan, 0)]
    )
    def test_cast_u8_is_total(self, source, value, expected):
        """Infinities saturate and NaN maps to 0 for every source type."""
        assert cast_u8(value, source) == expected

    @pytest.mark.parametrize(
        ("target", "top"), [(ElementType.U8, 255), (ElementType.U16, 65535)]
    )
    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_from_f32_is_total_for_integers(self, target, top, value):
        expected = {math.inf: top, -math.inf: 0}.get(value, 0)
        result = from_f32(value, target)
        assert isinstance(result, int)
        assert result == expected

    def test_from_f32_float_target_keeps_specials(self):
        assert from_f32(math.inf, ElementType.F32) == math.inf
        assert math.isnan(from_f32(math.nan, ElementType.F32))

    def test_to_f32_accepts_specials(self):
        assert to_f32(math.inf, ElementType.U16) == math.inf
        assert math.isnan(to_f32(math.nan, ElementType.U8))


class TestArrayCasts:
    """Tests for the vectorised casts."""

    def test_cast_array_matches_scalar(self):
        """The array cast agrees with the scalar cast element by element."""
        values = np.array([0, 1, 128, 129, 32767, 65535], dtype=np.uint16)
        expected = [cast_u8(int(v), ElementType.U16) for v in values]
        assert cast_array_u8(values).tolist() == expected

    def test_cast_array_float_handles_nan(self):
        """NaN and infinities saturate instead of failing."""
        values = np.array([np.nan, -np.inf, np.inf, 0.5], dtype=np.float32)
        assert cast_array_u8(values).tolist() == [0, 0, 255, 128]

    def test_cast_array_parallel_matches_sequential(self):
        """Row partitioning does not change the result."""
        rng = np.random.default_rng(7)
        values = rng.integers(0, 65536, size=(64, 48, 3), dtype=np.uint16)
        configure(workers=1)
        sequential = cast_array_u8(values)
        configure(workers=4, parallel_threshold=0)
        parallel = cast_array_u8(values)
        assert np.array_equal(sequential, parallel)

    def test_array_to_f32_copies(self):
        """Float32 input is copied, not aliased."""
        values = np.array([0.1, 0.2], dtype=np.float32)
        result = array_to_f32(values)
        result[0] = 9.0
        assert values[0] == np.float32(0.1)
