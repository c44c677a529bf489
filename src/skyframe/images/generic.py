"""Timestamped, annotated images.

GenericImageRef and GenericImageOwned pair a type-erased image with a
capture timestamp (timezone-aware, UTC) and a Metadata store. They are the
unit acquisition code hands to storage: serialize them with to_bytes() or
write them out with skyframe.interop.fits.write_fits().

Example:
    >>> with GenericImageRef.wrap(frame, 640, 480, ColorSpace.bayer("RGGB")) as raw:
    ...     raw.insert_key("CAMERA", "ZWO ASI120MM")
    ...     raw.exposure = timedelta(milliseconds=200)
    ...     rgb = raw.debayer(DemosaicMethod.NEAREST)
    >>> rgb.get_key("camera").value
    'ZWO ASI120MM'
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any, NoReturn

from numpy.typing import NDArray

from skyframe.colorspace import ColorSpace
from skyframe.config import DuplicatePolicy
from skyframe.demosaic import DemosaicMethod
from skyframe.errors import CorruptDataError
from skyframe.images.dynamic import DynamicImage, DynamicImageOwned, DynamicImageRef
from skyframe.images.owned import ImageOwned
from skyframe.images.ref import ImageRef
from skyframe.metadata import Metadata, MetadataEntry, MetadataValue, ValueKind, as_utc
from skyframe.pixels import ElementType
from skyframe.processing import ExposureRecommendation, OptimumExposure

__all__ = ["GenericImage", "GenericImageRef", "GenericImageOwned"]

EXPOSURE_KEY = "EXPOSURE"


class GenericImage:
    """Metadata and timestamp handling shared by both generic images."""

    _dynamic: DynamicImage
    _timestamp: datetime
    _metadata: Metadata

    def _init_common(self, timestamp: datetime | None, metadata: Metadata | None) -> None:
        self._timestamp = as_utc(timestamp) if timestamp is not None else datetime.now(UTC)
        self._metadata = metadata.copy() if metadata is not None else Metadata()

    # --- Image properties ---

    @property
    def image(self) -> DynamicImage:
        """The wrapped type-erased image."""
        return self._dynamic

    @property
    def timestamp(self) -> datetime:
        """Capture time, UTC."""
        return self._timestamp

    @timestamp.setter
    def timestamp(self, value: datetime) -> None:
        self._timestamp = as_utc(value)

    @property
    def element_type(self) -> ElementType:
        return self._dynamic.element_type

    @property
    def width(self) -> int:
        return self._dynamic.width

    @property
    def height(self) -> int:
        return self._dynamic.height

    @property
    def channels(self) -> int:
        return self._dynamic.channels

    @property
    def color_space(self) -> ColorSpace:
        return self._dynamic.color_space

    def as_array(self) -> NDArray[Any]:
        return self._dynamic.as_array()

    def as_bytes(self) -> bytes:
        return self._dynamic.as_bytes()

    # --- Metadata ---

    @property
    def metadata(self) -> Metadata:
        return self._metadata

    def insert_key(
        self,
        key: str,
        value: Any,
        comment: str | None = None,
        policy: DuplicatePolicy | None = None,
    ) -> None:
        """Insert a metadata entry; see Metadata.insert()."""
        self._metadata.insert(key, value, comment, policy)

    def replace_key(self, key: str, value: Any, comment: str | None = None) -> None:
        self._metadata.replace(key, value, comment)

    def get_key(self, key: str) -> MetadataValue:
        return self._metadata.get(key)

    def get_entry(self, key: str) -> MetadataEntry:
        return self._metadata.get_entry(key)

    def remove_key(self, key: str) -> None:
        self._metadata.remove(key)

    def entries(self) -> list[MetadataEntry]:
        return self._metadata.entries()

    @property
    def exposure(self) -> timedelta | None:
        """EXPOSURE entry as a timedelta (numbers are seconds), or None."""
        entry = self._metadata.find(EXPOSURE_KEY)
        if entry is None:
            return None
        if entry.value.kind is ValueKind.DURATION:
            return entry.value.value
        return timedelta(seconds=entry.value.value)

    @exposure.setter
    def exposure(self, value: timedelta) -> None:
        self._metadata.insert(
            EXPOSURE_KEY,
            MetadataValue(ValueKind.DURATION, value),
            policy=DuplicatePolicy.REPLACE,
        )

    # --- Operations ---

    def _derive(self, image: DynamicImageOwned) -> GenericImageOwned:
        return GenericImageOwned(image, self._timestamp, self._metadata)

    def debayer(
        self, method: DemosaicMethod | str | None = None, roi: tuple[int, int] = (0, 0)
    ) -> GenericImageOwned:
        """Demosaic into a new owned image with copied timestamp and metadata."""
        return self._derive(self._dynamic.debayer(method, roi))

    def cast_u8(self) -> GenericImageOwned:
        return self._derive(self._dynamic.cast_u8())

    def operate(
        self, func: Callable[[DynamicImage], DynamicImageOwned]
    ) -> GenericImageOwned:
        """Apply ``func`` to the image and keep timestamp and metadata.

        Example:
            >>> preview = raw.operate(lambda img: img.debayer().cast_u8())
        """
        result = func(self._dynamic)
        if not isinstance(result, DynamicImageOwned):
            raise TypeError(
                f"operate() function must return DynamicImageOwned, got "
                f"{type(result).__name__}"
            )
        return self._derive(result)

    def calc_opt_exp(
        self,
        calculator: OptimumExposure,
        exposure: timedelta | None = None,
        binning: int = 1,
    ) -> ExposureRecommendation:
        """One exposure step; ``exposure`` defaults to the EXPOSURE entry.

        Raises:
            ValueError: No exposure given and no EXPOSURE entry.
        """
        current = exposure if exposure is not None else self.exposure
        if current is None:
            raise ValueError("No exposure given and no EXPOSURE metadata entry")
        return self._dynamic.calc_opt_exp(calculator, current, binning)

    def to_owned(self) -> GenericImageOwned:
        """Owned deep copy."""
        return self._derive(self._dynamic.to_owned())

    def to_bytes(self, compress: bool | None = None) -> bytes:
        from skyframe.serialization import serialize

        return serialize(self, compress=compress)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self._dynamic.image!r}, "
            f"{self._timestamp.isoformat()}, {len(self._metadata)} keys)"
        )


class GenericImageRef(GenericImage):
    """Borrowed image with timestamp and metadata.

    The pixels are borrowed; the metadata store is owned by this object.

    Args:
        image: Borrowed image, typed or type-erased.
        timestamp: Capture time; naive values are taken as UTC. Defaults
            to now.
        metadata: Initial entries (copied).
    """

    def __init__(
        self,
        image: DynamicImageRef | ImageRef,
        timestamp: datetime | None = None,
        metadata: Metadata | None = None,
    ) -> None:
        self._dynamic = image if isinstance(image, DynamicImageRef) else DynamicImageRef(image)
        self._init_common(timestamp, metadata)

    @classmethod
    def wrap(
        cls,
        buffer: Any,
        width: int,
        height: int,
        color_space: ColorSpace,
        element_type: ElementType | None = None,
        timestamp: datetime | None = None,
    ) -> GenericImageRef:
        return cls(
            DynamicImageRef.wrap(buffer, width, height, color_space, element_type),
            timestamp,
        )

    @property
    def image(self) -> DynamicImageRef:
        return self._dynamic  # type: ignore[return-value]

    def release(self) -> None:
        self.image.release()

    def __enter__(self) -> GenericImageRef:
        self.image.__enter__()
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()

    def __copy__(self) -> NoReturn:
        raise TypeError("GenericImageRef cannot be copied; use to_owned()")

    def __deepcopy__(self, memo: dict[int, Any]) -> NoReturn:
        raise TypeError("GenericImageRef cannot be copied; use to_owned()")

    def __reduce_ex__(self, protocol: Any) -> NoReturn:
        raise TypeError("GenericImageRef cannot be pickled; use to_owned()")


class GenericImageOwned(GenericImage):
    """Owned image with timestamp and metadata.

    Equality compares pixels, color space, element type, timestamp and the
    ordered metadata entries.
    """

    def __init__(
        self,
        image: DynamicImageOwned | ImageOwned,
        timestamp: datetime | None = None,
        metadata: Metadata | None = None,
    ) -> None:
        self._dynamic = (
            image if isinstance(image, DynamicImageOwned) else DynamicImageOwned(image)
        )
        self._init_common(timestamp, metadata)

    @property
    def image(self) -> DynamicImageOwned:
        return self._dynamic  # type: ignore[return-value]

    def to_luma(self, weights: Sequence[float] | None = None) -> None:
        """Convert to Gray in place; metadata and timestamp are kept."""
        self.image.to_luma(weights)

    @classmethod
    def from_bytes(cls, data: bytes) -> GenericImageOwned:
        """Deserialize bytes written by to_bytes().

        Raises:
            CorruptDataError: The bytes carry no timestamp, or fail validation.
            UnsupportedVersionError: Unknown format version.
        """
        from skyframe.serialization import deserialize

        result = deserialize(data)
        if not isinstance(result, GenericImageOwned):
            raise CorruptDataError("Serialized image has no timestamp")
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenericImageOwned):
            return NotImplemented
        return (
            self.image == other.image
            and self.timestamp == other.timestamp
            and self.metadata == other.metadata
        )

    __hash__ = None  # type: ignore[assignment]
