"""Unit tests for skyframe.metadata."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from skyframe.colorspace import ColorSpace
from skyframe.config import DuplicatePolicy, configure
from skyframe.errors import (
    DuplicateKeyError,
    InvalidKeyError,
    KeyNotFoundError,
    TypeMismatchError,
    ValueTooLargeError,
)
from skyframe.metadata import Metadata, MetadataValue, ValueKind


class TestMetadataValue:
    """Tests for value tagging and validation."""

    @pytest.mark.parametrize(
        ("value", "kind"),
        [
            (5, ValueKind.I64),
            (2**63, ValueKind.U64),
            (0.5, ValueKind.F64),
            ("text", ValueKind.STRING),
            (timedelta(seconds=1), ValueKind.DURATION),
            (ColorSpace.RGB, ValueKind.COLORSPACE),
        ],
    )
    def test_infer(self, value, kind):
        assert MetadataValue.infer(value).kind is kind

    def test_infer_rejects_bool(self):
        with pytest.raises(TypeError):
            MetadataValue.infer(True)

    def test_integer_range_checked(self):
        """Integers outside the tag range are too large."""
        MetadataValue(ValueKind.U8, 255)
        with pytest.raises(ValueTooLargeError):
            MetadataValue(ValueKind.U8, 256)
        with pytest.raises(ValueTooLargeError):
            MetadataValue(ValueKind.I8, -129)
        with pytest.raises(ValueTooLargeError):
            MetadataValue.infer(2**64)

    def test_f32_rounds_to_single_precision(self):
        """F32 values hold exactly what the codec will write."""
        value = MetadataValue(ValueKind.F32, 0.1)
        assert value.value != 0.1
        assert abs(value.value - 0.1) < 1e-7

    def test_timestamp_normalized_to_utc(self):
        """Naive timestamps are UTC; aware ones are converted."""
        naive = MetadataValue.infer(datetime(2024, 1, 1, 12, 0))
        assert naive.value.tzinfo is UTC
        plus_two = timezone(timedelta(hours=2))
        aware = MetadataValue.infer(datetime(2024, 1, 1, 14, 0, tzinfo=plus_two))
        assert aware.value == naive.value

    def test_long_string_rejected(self):
        with pytest.raises(ValueTooLargeError):
            MetadataValue.infer("x" * 4097)


class TestInsert:
    """Tests for Metadata.insert validation and ordering."""

    def test_case_insensitive_replace_keeps_position(self):
        """Second insert under a different case wins, position is kept."""
        meta = Metadata()
        meta.insert("gain", 100)
        meta.insert("OFFSET", 10)
        meta.insert("GAIN", 200)
        assert [e.key for e in meta.entries()] == ["GAIN", "OFFSET"]
        assert meta.get("Gain").value == 200
        assert len(meta) == 2

    @pytest.mark.parametrize("key", ["", "x" * 81, "BAD-KEY", "SP ACE", "ÄRGER"])
    def test_invalid_keys(self, key):
        with pytest.raises(InvalidKeyError):
            Metadata().insert(key, 1)

    def test_key_of_80_characters_accepted(self):
        meta = Metadata()
        meta.insert("K" * 80, 1)
        assert "k" * 80 in meta

    def test_comment_limits(self):
        """Empty comments become None; long ones are rejected."""
        meta = Metadata()
        meta.insert("A", 1, "")
        assert meta.get_entry("A").comment is None
        with pytest.raises(ValueTooLargeError):
            meta.insert("B", 1, "c" * 4097)
        assert "B" not in meta

    def test_reserved_exposure_rejects_string(self):
        """EXPOSURE accepts numbers and durations but not strings."""
        meta = Metadata()
        meta.insert("EXPOSURE", 0.5)
        with pytest.raises(TypeMismatchError):
            meta.insert("EXPOSURE", "long")
        assert meta.get("EXPOSURE").value == 0.5
        meta.insert("exposure", timedelta(milliseconds=10))

    @pytest.mark.parametrize(
        ("key", "value"),
        [("TIMESTAMP", "now"), ("CAMERA", 5), ("PROGNAME", 1.0)],
    )
    def test_reserved_keys_type_checked(self, key, value):
        with pytest.raises(TypeMismatchError):
            Metadata().insert(key, value)

    def test_reject_policy_per_call(self):
        """REJECT refuses an existing key and leaves the value alone."""
        meta = Metadata()
        meta.insert("GAIN", 1)
        with pytest.raises(DuplicateKeyError):
            meta.insert("gain", 2, policy=DuplicatePolicy.REJECT)
        assert meta.get("GAIN").value == 1

    def test_reject_policy_from_config(self):
        """New stores pick up the configured default policy."""
        configure(duplicate_policy=DuplicatePolicy.REJECT)
        meta = Metadata()
        meta.insert("GAIN", 1)
        with pytest.raises(DuplicateKeyError):
            meta.insert("GAIN", 2)
        meta.insert("GAIN", 3, policy=DuplicatePolicy.REPLACE)
        assert meta.get("GAIN").value == 3


class TestLookupAndRemoval:
    """Tests for get, replace, remove and iteration."""

    def test_get_missing_raises_key_error(self):
        """KeyNotFoundError is also a KeyError."""
        meta = Metadata()
        with pytest.raises(KeyNotFoundError):
            meta.get("MISSING")
        with pytest.raises(KeyError):
            meta.get("MISSING")
        assert meta.find("MISSING") is None

    def test_replace_requires_existing_key(self):
        meta = Metadata()
        with pytest.raises(KeyNotFoundError):
            meta.replace("GAIN", 1)
        meta.insert("GAIN", 1, "first")
        meta.replace("gain", 2, "second")
        assert meta.get_entry("GAIN") == ("GAIN", MetadataValue.infer(2), "second")

    def test_remove_is_noop_when_absent(self):
        meta = Metadata()
        meta.insert("A", 1)
        meta.remove("b")
        meta.remove("a")
        assert len(meta) == 0

    @pytest.mark.parametrize("key", ["tımestamp", "ſtack", "ﬁlter"])
    def test_non_ascii_keys_never_match(self, key):
        """Keys that only upper-case onto a stored ASCII key are misses."""
        meta = Metadata()
        meta.insert("TIMESTAMP", datetime(2024, 1, 1, tzinfo=UTC))
        meta.insert("STACK", 3)
        meta.insert("FILTER", "Ha")
        assert key.upper() in ("TIMESTAMP", "STACK", "FILTER")
        assert meta.find(key) is None
        assert key not in meta
        with pytest.raises(KeyNotFoundError):
            meta.get(key)
        meta.remove(key)
        assert len(meta) == 3

    def test_entries_restartable(self):
        """Iterating twice yields the same ordered entries."""
        meta = Metadata()
        for i, key in enumerate(["Z", "A", "M"]):
            meta.insert(key, i)
        assert list(meta) == list(meta)
        assert [e.key for e in meta] == ["Z", "A", "M"]

    def test_copy_is_independent(self):
        meta = Metadata()
        meta.insert("A", 1)
        clone = meta.copy()
        clone.insert("B", 2)
        assert "B" not in meta
        assert clone != meta
