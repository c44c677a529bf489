"""Typed image containers.

ImageRef borrows a caller buffer, ImageOwned owns its pixels. The
type-erased wrappers live in ``skyframe.images.dynamic`` and the
timestamped, annotated ones in ``skyframe.images.generic``; both are
re-exported from the top-level ``skyframe`` package.
"""

from skyframe.images.base import ImageBase
from skyframe.images.owned import ImageOwned
from skyframe.images.ref import ImageRef

__all__ = ["ImageBase", "ImageOwned", "ImageRef"]
