"""Exception taxonomy for skyframe.

Every fallible operation raises one of the classes below. Failures are local
to one call: the container or metadata store that was being operated on is
left exactly as it was before the call.

Hierarchy:
    SkyframeError
    ├── InvalidDimensionsError
    ├── BufferSizeMismatchError
    ├── BorrowReleasedError
    ├── TransformError
    │   ├── NotBayerError
    │   ├── AlreadyGrayError
    │   ├── DimensionTooSmallError
    │   └── WeightCountMismatchError
    ├── EmptyImageError
    ├── MetadataError
    │   ├── InvalidKeyError
    │   ├── ValueTooLargeError
    │   ├── TypeMismatchError
    │   ├── DuplicateKeyError
    │   └── KeyNotFoundError (also a KeyError)
    └── SerializationError
        ├── CorruptDataError
        └── UnsupportedVersionError
"""

from __future__ import annotations

__all__ = [
    "SkyframeError",
    "InvalidDimensionsError",
    "BufferSizeMismatchError",
    "BorrowReleasedError",
    "TransformError",
    "NotBayerError",
    "AlreadyGrayError",
    "DimensionTooSmallError",
    "WeightCountMismatchError",
    "EmptyImageError",
    "MetadataError",
    "InvalidKeyError",
    "ValueTooLargeError",
    "TypeMismatchError",
    "DuplicateKeyError",
    "KeyNotFoundError",
    "SerializationError",
    "CorruptDataError",
    "UnsupportedVersionError",
]


class SkyframeError(Exception):
    """Base exception for all skyframe operations."""

    pass


# --- Container construction ---


class InvalidDimensionsError(SkyframeError):
    """Raised when width/height is outside [1, 65536] or channels outside [1, 255]."""

    pass


class BufferSizeMismatchError(SkyframeError):
    """Raised when a buffer length does not equal width * height * channels."""

    pass


class BorrowReleasedError(SkyframeError):
    """Raised when a borrowed container is used after its borrow scope ended."""

    pass


# --- Transform preconditions ---


class TransformError(SkyframeError):
    """Base exception for rejected transform inputs."""

    pass


class NotBayerError(TransformError):
    """Raised when debayering an image whose color space is not a Bayer mosaic."""

    pass


class AlreadyGrayError(TransformError):
    """Raised when converting a single-channel image to luminance."""

    pass


class DimensionTooSmallError(TransformError):
    """Raised when an image is smaller than a demosaic method's minimum size."""

    pass


class WeightCountMismatchError(TransformError):
    """Raised when luminance weights do not match the channel count."""

    pass


class EmptyImageError(SkyframeError):
    """Raised when computing exposure statistics over zero samples."""

    pass


# --- Metadata ---


class MetadataError(SkyframeError):
    """Base exception for metadata store operations."""

    pass


class InvalidKeyError(MetadataError):
    """Raised when a key is empty, longer than 80 characters, or has bad characters."""

    pass


class ValueTooLargeError(MetadataError):
    """Raised when a value or comment exceeds its size or numeric range limit."""

    pass


class TypeMismatchError(MetadataError):
    """Raised when a reserved key is written with a value of the wrong kind."""

    pass


class DuplicateKeyError(MetadataError):
    """Raised when inserting an existing key under the reject policy."""

    pass


class KeyNotFoundError(MetadataError, KeyError):
    """Raised when a metadata lookup misses.

    Also a KeyError so mapping-style callers can catch it the usual way.
    """

    def __str__(self) -> str:
        # KeyError.__str__ wraps the message in quotes
        return str(self.args[0]) if self.args else ""


# --- Serialization ---


class SerializationError(SkyframeError):
    """Base exception for the byte codec."""

    pass


class CorruptDataError(SerializationError):
    """Raised when serialized bytes fail structural or checksum validation."""

    pass


class UnsupportedVersionError(SerializationError):
    """Raised when serialized bytes declare a format version this build cannot read."""

    pass
