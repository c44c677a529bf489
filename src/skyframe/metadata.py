"""Typed, ordered, case-insensitive metadata store.

Each entry is a key (1-80 characters of ASCII letters, digits and
underscore, stored upper-case), a tagged value and an optional comment.
Keys follow FITS keyword conventions, so a store can be written out as a
FITS header without renaming anything.

Reserved keys have a fixed value kind:

    TIMESTAMP   TIMESTAMP
    EXPOSURE    DURATION (or a number of seconds)
    CAMERA      STRING
    PROGNAME    STRING

Example:
    >>> meta = Metadata()
    >>> meta.insert("exposure", timedelta(milliseconds=250), "Exposure time")
    >>> meta.insert("GAIN", 120)
    >>> meta.get("Gain").value
    120
    >>> [e.key for e in meta.entries()]
    ['EXPOSURE', 'GAIN']
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, NamedTuple

import numpy as np

from skyframe.colorspace import ColorSpace
from skyframe.config import DuplicatePolicy, get_config
from skyframe.errors import (
    DuplicateKeyError,
    InvalidKeyError,
    KeyNotFoundError,
    TypeMismatchError,
    ValueTooLargeError,
)
from skyframe.observability import get_logger

__all__ = [
    "ValueKind",
    "MetadataValue",
    "MetadataEntry",
    "Metadata",
    "RESERVED_KEYS",
    "MAX_KEY_LENGTH",
    "MAX_STRING_LENGTH",
    "MAX_COMMENT_LENGTH",
]

logger = get_logger(__name__)

MAX_KEY_LENGTH = 80
MAX_STRING_LENGTH = 4096
MAX_COMMENT_LENGTH = 4096

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_]+")


class ValueKind(Enum):
    """Value tags; the integer values are the codec tags."""

    I8 = 0
    I16 = 1
    I32 = 2
    I64 = 3
    U8 = 4
    U16 = 5
    U32 = 6
    U64 = 7
    F32 = 8
    F64 = 9
    STRING = 10
    TIMESTAMP = 11
    DURATION = 12
    COLORSPACE = 13

    @property
    def is_integer(self) -> bool:
        return self in _INT_RANGES

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self in (ValueKind.F32, ValueKind.F64)


_INT_RANGES = {
    ValueKind.I8: (-(2**7), 2**7 - 1),
    ValueKind.I16: (-(2**15), 2**15 - 1),
    ValueKind.I32: (-(2**31), 2**31 - 1),
    ValueKind.I64: (-(2**63), 2**63 - 1),
    ValueKind.U8: (0, 2**8 - 1),
    ValueKind.U16: (0, 2**16 - 1),
    ValueKind.U32: (0, 2**32 - 1),
    ValueKind.U64: (0, 2**64 - 1),
}

RESERVED_KEYS: dict[str, tuple[ValueKind, ...]] = {
    "TIMESTAMP": (ValueKind.TIMESTAMP,),
    "EXPOSURE": (ValueKind.DURATION,) + tuple(_INT_RANGES) + (ValueKind.F32, ValueKind.F64),
    "CAMERA": (ValueKind.STRING,),
    "PROGNAME": (ValueKind.STRING,),
}


@dataclass(frozen=True)
class MetadataValue:
    """A tagged metadata value.

    Construct with an explicit kind to pin the wire type, or use
    MetadataValue.infer() for plain Python values.

    Raises:
        TypeError: If the Python value does not fit the kind at all.
        ValueTooLargeError: If an integer is outside the kind's range or a
            string is longer than 4096 characters.
    """

    kind: ValueKind
    value: Any

    def __post_init__(self) -> None:
        kind, value = self.kind, self.value
        if kind.is_integer:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{kind.name} value must be int, got {type(value).__name__}")
            low, high = _INT_RANGES[kind]
            if not low <= value <= high:
                raise ValueTooLargeError(f"{value} out of range for {kind.name}")
        elif kind in (ValueKind.F32, ValueKind.F64):
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise TypeError(f"{kind.name} value must be a number")
            number = float(value)
            if kind is ValueKind.F32:
                number = float(np.float32(number))
            object.__setattr__(self, "value", number)
        elif kind is ValueKind.STRING:
            if not isinstance(value, str):
                raise TypeError("STRING value must be str")
            if len(value) > MAX_STRING_LENGTH:
                raise ValueTooLargeError(
                    f"String value has {len(value)} characters, limit is {MAX_STRING_LENGTH}"
                )
        elif kind is ValueKind.TIMESTAMP:
            if not isinstance(value, datetime):
                raise TypeError("TIMESTAMP value must be datetime")
            object.__setattr__(self, "value", as_utc(value))
        elif kind is ValueKind.DURATION:
            if not isinstance(value, timedelta):
                raise TypeError("DURATION value must be timedelta")
        elif kind is ValueKind.COLORSPACE:
            if not isinstance(value, ColorSpace):
                raise TypeError("COLORSPACE value must be ColorSpace")

    @classmethod
    def infer(cls, value: Any) -> MetadataValue:
        """Wrap a plain Python value, choosing the widest matching kind.

        int becomes I64 (U64 above the I64 range), float becomes F64.
        MetadataValue instances pass through.

        Raises:
            TypeError: For bool or unsupported types.
            ValueTooLargeError: For ints beyond U64 or long strings.

        Example:
            >>> MetadataValue.infer(2**63).kind
            <ValueKind.U64: 7>
        """
        if isinstance(value, MetadataValue):
            return value
        if isinstance(value, bool):
            raise TypeError("bool metadata values are not supported")
        if isinstance(value, int):
            if value > _INT_RANGES[ValueKind.I64][1]:
                return cls(ValueKind.U64, value)
            return cls(ValueKind.I64, value)
        if isinstance(value, float):
            return cls(ValueKind.F64, value)
        if isinstance(value, str):
            return cls(ValueKind.STRING, value)
        if isinstance(value, datetime):
            return cls(ValueKind.TIMESTAMP, value)
        if isinstance(value, timedelta):
            return cls(ValueKind.DURATION, value)
        if isinstance(value, ColorSpace):
            return cls(ValueKind.COLORSPACE, value)
        raise TypeError(f"Unsupported metadata value type: {type(value).__name__}")


class MetadataEntry(NamedTuple):
    """One (key, value, comment) row of a metadata store."""

    key: str
    value: MetadataValue
    comment: str | None


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def normalize_key(key: str) -> str:
    """Validate a key and return its stored (upper-case) form.

    Raises:
        InvalidKeyError: If the key is empty, over 80 characters, or uses
            characters other than ASCII letters, digits and underscore.
    """
    if not isinstance(key, str):
        raise InvalidKeyError(f"Metadata key must be str, got {type(key).__name__}")
    if not 1 <= len(key) <= MAX_KEY_LENGTH:
        raise InvalidKeyError(
            f"Metadata key must be 1-{MAX_KEY_LENGTH} characters, got {len(key)}"
        )
    if not key.isascii() or _KEY_PATTERN.fullmatch(key) is None:
        raise InvalidKeyError(f"Metadata key has invalid characters: {key!r}")
    return key.upper()


def _lookup_key(key: object) -> str | None:
    """Stored form of a lookup key, or None when no stored key can match.

    Non-ASCII text never matches: str.upper() would fold characters such as
    the dotless i onto ASCII letters.
    """
    if not isinstance(key, str) or not key.isascii():
        return None
    return key.upper()


def _check_comment(comment: str | None) -> str | None:
    if comment is None or comment == "":
        return None
    if len(comment) > MAX_COMMENT_LENGTH:
        raise ValueTooLargeError(
            f"Comment has {len(comment)} characters, limit is {MAX_COMMENT_LENGTH}"
        )
    return comment


def _check_reserved(key: str, value: MetadataValue) -> None:
    allowed = RESERVED_KEYS.get(key)
    if allowed is not None and value.kind not in allowed:
        raise TypeMismatchError(
            f"{key} is reserved for {allowed[0].name} values, got {value.kind.name}"
        )


class Metadata:
    """Ordered metadata store with case-insensitive unique keys.

    Attributes:
        policy: Duplicate-key policy used when insert() gets none. Defaults
            to the configured ProcessingConfig.duplicate_policy at creation.
    """

    def __init__(self, policy: DuplicatePolicy | None = None) -> None:
        self._entries: dict[str, MetadataEntry] = {}
        self.policy = policy if policy is not None else get_config().duplicate_policy

    def insert(
        self,
        key: str,
        value: Any,
        comment: str | None = None,
        policy: DuplicatePolicy | None = None,
    ) -> None:
        """Insert or replace an entry.

        All validation happens before the store is touched, so a failed
        insert leaves it unchanged. Replacing keeps the position of the first
        insertion.

        Args:
            key: Entry key, any case.
            value: MetadataValue or a plain value for MetadataValue.infer().
            comment: Optional comment, empty string means none.
            policy: Overrides the store policy for this call.

        Raises:
            InvalidKeyError: Bad key.
            ValueTooLargeError: Oversized string/comment or integer out of range.
            TypeMismatchError: Wrong kind for a reserved key.
            DuplicateKeyError: Key exists and the policy is REJECT.
            TypeError: Unsupported value type.
        """
        name = normalize_key(key)
        tagged = MetadataValue.infer(value)
        note = _check_comment(comment)
        _check_reserved(name, tagged)

        effective = policy if policy is not None else self.policy
        if name in self._entries and effective is DuplicatePolicy.REJECT:
            logger.warning("Duplicate metadata key rejected", key=name)
            raise DuplicateKeyError(f"Metadata key already present: {name}")
        self._entries[name] = MetadataEntry(name, tagged, note)

    def replace(self, key: str, value: Any, comment: str | None = None) -> None:
        """Overwrite an existing entry in place.

        Raises:
            KeyNotFoundError: If the key is absent.
        """
        name = normalize_key(key)
        if name not in self._entries:
            raise KeyNotFoundError(f"Metadata key not found: {name}")
        self.insert(name, value, comment, policy=DuplicatePolicy.REPLACE)

    def get(self, key: str) -> MetadataValue:
        """Case-insensitive lookup.

        Raises:
            KeyNotFoundError: If the key is absent.
        """
        return self.get_entry(key).value

    def get_entry(self, key: str) -> MetadataEntry:
        """Full entry for a key, including its comment."""
        entry = self.find(key)
        if entry is None:
            raise KeyNotFoundError(f"Metadata key not found: {key!r}")
        return entry

    def find(self, key: str) -> MetadataEntry | None:
        """Like get_entry() but returns None on a miss or an invalid key."""
        name = _lookup_key(key)
        return None if name is None else self._entries.get(name)

    def remove(self, key: str) -> None:
        """Delete an entry; no-op if absent."""
        name = _lookup_key(key)
        if name is not None:
            self._entries.pop(name, None)

    def entries(self) -> list[MetadataEntry]:
        """Snapshot of all entries in insertion order."""
        return list(self._entries.values())

    def copy(self) -> Metadata:
        clone = Metadata(self.policy)
        clone._entries = dict(self._entries)
        return clone

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        name = _lookup_key(key)
        return name is not None and name in self._entries

    def __iter__(self) -> Iterator[MetadataEntry]:
        return iter(self.entries())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Metadata):
            return NotImplemented
        return self.entries() == other.entries()

    def __repr__(self) -> str:
        keys = ", ".join(self._entries)
        return f"Metadata([{keys}])"
