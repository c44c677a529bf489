"""skyframe - containers for scientific raster images.

Wrap a camera buffer without copying, debayer it, annotate it with typed
metadata and serialize it without losing pixel or metadata types.

Example:
    from skyframe import ColorSpace, DemosaicMethod, ElementType, GenericImageRef

    with GenericImageRef.wrap(buffer, 1920, 1080, ColorSpace.bayer("RGGB"),
                              ElementType.U16) as raw:
        raw.insert_key("CAMERA", "ZWO ASI294MC")
        frame = raw.debayer(DemosaicMethod.LINEAR)
    payload = frame.to_bytes()
"""

__version__ = "0.1.0"

from skyframe.colorspace import BayerPattern, Channel, ColorSpace, ColorSpaceKind
from skyframe.config import (
    DuplicatePolicy,
    ProcessingConfig,
    configure,
    get_config,
    reset_config,
    use_sequential,
)
from skyframe.demosaic import DemosaicMethod, debayer
from skyframe.errors import (
    AlreadyGrayError,
    BorrowReleasedError,
    BufferSizeMismatchError,
    CorruptDataError,
    DimensionTooSmallError,
    DuplicateKeyError,
    EmptyImageError,
    InvalidDimensionsError,
    InvalidKeyError,
    KeyNotFoundError,
    MetadataError,
    NotBayerError,
    SerializationError,
    SkyframeError,
    TransformError,
    TypeMismatchError,
    UnsupportedVersionError,
    ValueTooLargeError,
    WeightCountMismatchError,
)
from skyframe.images import ImageOwned, ImageRef
from skyframe.images.dynamic import DynamicImageOwned, DynamicImageRef
from skyframe.images.generic import GenericImageOwned, GenericImageRef
from skyframe.metadata import Metadata, MetadataEntry, MetadataValue, ValueKind
from skyframe.pixels import ElementType, cast_array_u8, cast_u8, from_f32, to_f32
from skyframe.processing import (
    ExposureRecommendation,
    OptimumExposure,
    luma_array,
    to_luma,
)
from skyframe.serialization import deserialize, serialize

__all__ = [
    "__version__",
    # Pixels and color
    "BayerPattern",
    "Channel",
    "ColorSpace",
    "ColorSpaceKind",
    "ElementType",
    "cast_array_u8",
    "cast_u8",
    "from_f32",
    "to_f32",
    # Configuration
    "DuplicatePolicy",
    "ProcessingConfig",
    "configure",
    "get_config",
    "reset_config",
    "use_sequential",
    # Images
    "ImageRef",
    "ImageOwned",
    "DynamicImageRef",
    "DynamicImageOwned",
    "GenericImageRef",
    "GenericImageOwned",
    # Metadata
    "Metadata",
    "MetadataEntry",
    "MetadataValue",
    "ValueKind",
    # Transforms
    "DemosaicMethod",
    "debayer",
    "ExposureRecommendation",
    "OptimumExposure",
    "luma_array",
    "to_luma",
    # Codec
    "deserialize",
    "serialize",
    # Errors
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
