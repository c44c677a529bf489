"""Self-describing byte format for images.

Layout (all integers little-endian):

    u8   version/flags    bits 0-3 version (1), bit 6 timestamp, bit 7 compressed
    i8   element type     FITS BITPIX: 8, 16, -32
    u8   color space      0 gray, 1 bayer, 4 rgb, 7 custom; bayer adds a u8
                          pattern index, custom adds u8 channels, u8 name
                          length and the UTF-8 name
    u32  width
    u32  height
    u8   channels
    i64  timestamp        microseconds since the Unix epoch, if flagged
    u32  entry count
         per entry: u8 key length, ASCII key, u8 value kind, value,
                    u8 comment flag, [u32 length, UTF-8 comment]
    u32  CRC-32 of everything above, continued over the raw pixel bytes
    u64  pixel block length
         pixel block, zlib-compressed if flagged

Values: integers and floats use their natural width; strings are a u32
byte length plus UTF-8; timestamps and durations are i64 microseconds;
color spaces use the header encoding.

The checksum covers the uncompressed pixels, so corruption is caught
whether or not the payload was compressed.
"""

from __future__ import annotations

import struct
import zlib
from datetime import UTC, datetime, timedelta
from typing import Any

from skyframe.colorspace import BayerPattern, ColorSpace, ColorSpaceKind
from skyframe.config import DuplicatePolicy, get_config
from skyframe.errors import (
    CorruptDataError,
    InvalidDimensionsError,
    MetadataError,
    UnsupportedVersionError,
)
from skyframe.images.base import ImageBase, check_dimensions
from skyframe.images.dynamic import DynamicImage, DynamicImageOwned
from skyframe.images.generic import GenericImage, GenericImageOwned
from skyframe.images.owned import ImageOwned
from skyframe.metadata import Metadata, MetadataValue, ValueKind
from skyframe.observability import get_logger
from skyframe.pixels import ElementType

__all__ = ["FORMAT_VERSION", "serialize", "deserialize"]

logger = get_logger(__name__)

FORMAT_VERSION = 1

_VERSION_MASK = 0x0F
_FLAG_TIMESTAMP = 0x40
_FLAG_COMPRESSED = 0x80
_RESERVED_FLAGS = 0x30

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MICROSECOND = timedelta(microseconds=1)

# struct formats of fixed-width metadata values
_FIXED_FORMATS = {
    ValueKind.I8: "<b",
    ValueKind.I16: "<h",
    ValueKind.I32: "<i",
    ValueKind.I64: "<q",
    ValueKind.U8: "<B",
    ValueKind.U16: "<H",
    ValueKind.U32: "<I",
    ValueKind.U64: "<Q",
    ValueKind.F32: "<f",
    ValueKind.F64: "<d",
}


# =============================================================================
# Encoding
# =============================================================================


def _encode_color_space(space: ColorSpace) -> bytes:
    if space.pattern is not None:
        return struct.pack("<BB", space.kind, space.pattern.index)
    if space.kind is ColorSpaceKind.CUSTOM:
        name = space.name.encode("utf-8")
        return struct.pack("<BBB", space.kind, space.channels, len(name)) + name
    return struct.pack("<B", space.kind)


def _encode_text(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def _encode_value(value: MetadataValue) -> bytes:
    kind = value.kind
    out = struct.pack("<B", kind.value)
    if kind in _FIXED_FORMATS:
        return out + struct.pack(_FIXED_FORMATS[kind], value.value)
    if kind is ValueKind.STRING:
        return out + _encode_text(value.value)
    if kind is ValueKind.TIMESTAMP:
        return out + struct.pack("<q", (value.value - _EPOCH) // _MICROSECOND)
    if kind is ValueKind.DURATION:
        return out + struct.pack("<q", value.value // _MICROSECOND)
    return out + _encode_color_space(value.value)


def _encode_metadata(metadata: Metadata | None) -> bytes:
    entries = metadata.entries() if metadata is not None else []
    parts = [struct.pack("<I", len(entries))]
    for entry in entries:
        key = entry.key.encode("ascii")
        parts.append(struct.pack("<B", len(key)) + key)
        parts.append(_encode_value(entry.value))
        if entry.comment is None:
            parts.append(b"\x00")
        else:
            parts.append(b"\x01" + _encode_text(entry.comment))
    return b"".join(parts)


def serialize(
    image: GenericImage | DynamicImage | ImageBase, compress: bool | None = None
) -> bytes:
    """Encode an image, borrowed or owned, into the byte format.

    Generic images carry their timestamp and metadata; dynamic and typed
    images are written without either.

    Args:
        image: Image to encode.
        compress: zlib-compress the pixel block. Defaults to
            ProcessingConfig.compress.

    Returns:
        Encoded bytes.

    Raises:
        BorrowReleasedError: A borrowed image was already released.
    """
    config = get_config()
    if compress is None:
        compress = config.compress

    timestamp: datetime | None = None
    metadata: Metadata | None = None
    if isinstance(image, GenericImage):
        timestamp = image.timestamp
        metadata = image.metadata
        typed = image.image.image
    elif isinstance(image, DynamicImage):
        typed = image.image
    else:
        typed = image

    raw = typed.as_bytes()
    flags = FORMAT_VERSION
    if timestamp is not None:
        flags |= _FLAG_TIMESTAMP
    if compress:
        flags |= _FLAG_COMPRESSED

    header = [
        struct.pack("<Bb", flags, typed.element_type.bitpix),
        _encode_color_space(typed.color_space),
        struct.pack("<IIB", typed.width, typed.height, typed.channels),
    ]
    if timestamp is not None:
        header.append(struct.pack("<q", (timestamp - _EPOCH) // _MICROSECOND))
    header.append(_encode_metadata(metadata))
    head = b"".join(header)

    checksum = zlib.crc32(raw, zlib.crc32(head))
    payload = zlib.compress(raw, config.compression_level) if compress else raw
    encoded = b"".join(
        [head, struct.pack("<IQ", checksum, len(payload)), payload]
    )
    logger.debug(
        "Image serialized",
        nbytes=len(encoded),
        pixel_bytes=len(raw),
        compressed=compress,
        entries=len(metadata) if metadata is not None else 0,
    )
    return encoded


# =============================================================================
# Decoding
# =============================================================================


class _Reader:
    """Cursor over the input that raises CorruptDataError on truncation."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self.pos = 0

    def take(self, count: int) -> bytes:
        end = self.pos + count
        if count < 0 or end > len(self._data):
            raise CorruptDataError(
                f"Truncated data: need {count} bytes at offset {self.pos}"
            )
        chunk = self._data[self.pos : end].tobytes()
        self.pos = end
        return chunk

    def unpack(self, fmt: str) -> tuple[Any, ...]:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))

    def one(self, fmt: str) -> Any:
        return self.unpack(fmt)[0]

    def text(self) -> str:
        return self.take(self.one("<I")).decode("utf-8")

    @property
    def remaining(self) -> int:
        return len(self._data) - self.pos

    def consumed(self) -> bytes:
        return self._data[: self.pos].tobytes()


def _decode_color_space(reader: _Reader) -> ColorSpace:
    kind = ColorSpaceKind(reader.one("<B"))
    if kind is ColorSpaceKind.BAYER:
        return ColorSpace.bayer(BayerPattern.from_index(reader.one("<B")))
    if kind is ColorSpaceKind.CUSTOM:
        count, size = reader.unpack("<BB")
        return ColorSpace.custom(count, reader.take(size).decode("utf-8"))
    return ColorSpace(kind)


def _decode_value(reader: _Reader) -> MetadataValue:
    kind = ValueKind(reader.one("<B"))
    if kind in _FIXED_FORMATS:
        return MetadataValue(kind, reader.one(_FIXED_FORMATS[kind]))
    if kind is ValueKind.STRING:
        return MetadataValue(kind, reader.text())
    if kind is ValueKind.TIMESTAMP:
        return MetadataValue(kind, _EPOCH + reader.one("<q") * _MICROSECOND)
    if kind is ValueKind.DURATION:
        return MetadataValue(kind, reader.one("<q") * _MICROSECOND)
    return MetadataValue(kind, _decode_color_space(reader))


def _decode_metadata(reader: _Reader) -> Metadata:
    metadata = Metadata(DuplicatePolicy.REJECT)
    for _ in range(reader.one("<I")):
        key = reader.take(reader.one("<B")).decode("ascii")
        value = _decode_value(reader)
        flag = reader.one("<B")
        if flag not in (0, 1):
            raise CorruptDataError(f"Invalid comment flag {flag} for key {key}")
        comment = reader.text() if flag else None
        if flag and not comment:
            raise CorruptDataError(f"Empty comment flagged for key {key}")
        metadata.insert(key, value, comment)
    metadata.policy = get_config().duplicate_policy
    return metadata


def _inflate(payload: bytes, expected: int) -> bytes:
    """Decompress at most ``expected + 1`` bytes.

    Output never grows past the size the header declares, however large
    the stream would expand.
    """
    inflater = zlib.decompressobj()
    raw = inflater.decompress(payload, expected + 1)
    if len(raw) != expected or inflater.unconsumed_tail or not inflater.eof:
        raise CorruptDataError(
            f"Compressed pixel block does not inflate to the declared {expected} bytes"
        )
    if inflater.unused_data:
        raise CorruptDataError("Trailing bytes after compressed pixel block")
    return raw


def _decode(data: bytes) -> DynamicImageOwned | GenericImageOwned:
    reader = _Reader(data)
    flags = reader.one("<B")
    version = flags & _VERSION_MASK
    if version != FORMAT_VERSION:
        raise UnsupportedVersionError(f"Unsupported format version {version}")
    if flags & _RESERVED_FLAGS:
        raise CorruptDataError(f"Reserved flag bits set: {flags:#04x}")

    element_type = ElementType.from_bitpix(reader.one("<b"))
    color_space = _decode_color_space(reader)
    width, height, channels = reader.unpack("<IIB")
    check_dimensions(width, height, channels)
    if channels != color_space.channels:
        raise CorruptDataError(
            f"{color_space} declares {channels} channels, expected {color_space.channels}"
        )

    timestamp = None
    if flags & _FLAG_TIMESTAMP:
        timestamp = _EPOCH + reader.one("<q") * _MICROSECOND
    metadata = _decode_metadata(reader)
    head = reader.consumed()

    checksum, length = reader.unpack("<IQ")
    payload = reader.take(length)
    if reader.remaining:
        raise CorruptDataError(f"{reader.remaining} trailing bytes after pixel block")

    expected = width * height * channels * element_type.size
    raw = _inflate(payload, expected) if flags & _FLAG_COMPRESSED else payload
    if len(raw) != expected:
        raise CorruptDataError(f"Pixel block is {len(raw)} bytes, expected {expected}")
    if zlib.crc32(raw, zlib.crc32(head)) != checksum:
        raise CorruptDataError("Checksum mismatch")

    image = DynamicImageOwned(
        ImageOwned.from_bytes(raw, width, height, color_space, element_type)
    )
    if timestamp is None:
        return image
    return GenericImageOwned(image, timestamp, metadata)


def deserialize(data: bytes) -> DynamicImageOwned | GenericImageOwned:
    """Decode bytes produced by serialize().

    Returns a GenericImageOwned when the data carries a timestamp, else a
    DynamicImageOwned. A partially decoded image is never returned.

    Raises:
        UnsupportedVersionError: The version nibble is not 1.
        CorruptDataError: Truncation, trailing bytes, unknown tags, reserved
            flags, bad dimensions or metadata, decompression failure, length
            mismatch or checksum mismatch.
    """
    try:
        result = _decode(bytes(data))
    except (UnsupportedVersionError, CorruptDataError):
        logger.warning("Deserialization failed", nbytes=len(data))
        raise
    except (
        struct.error,
        zlib.error,
        UnicodeDecodeError,
        ValueError,
        OverflowError,
        InvalidDimensionsError,
        MetadataError,
    ) as exc:
        logger.warning("Deserialization failed", nbytes=len(data), error=str(exc))
        raise CorruptDataError(f"Corrupt image data: {exc}") from exc
    logger.debug("Image deserialized", nbytes=len(data))
    return result
