"""Processing configuration.

A single process-wide ProcessingConfig controls how the data-parallel
transforms (debayer, bulk u8 cast, luminance) fan out over a worker pool,
whether serialized pixel payloads are compressed, and how the metadata store
handles key collisions by default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum

# =============================================================================
# Constants
# =============================================================================

# Images with fewer pixels than this run on the calling thread
DEFAULT_PARALLEL_THRESHOLD = 1024 * 1024

# zlib level used when compressing serialized pixel payloads (1 = fastest)
DEFAULT_COMPRESSION_LEVEL = 1


class DuplicatePolicy(Enum):
    """What the metadata store does when a key is inserted twice."""

    REPLACE = "replace"  # Last write wins, first-insertion position kept
    REJECT = "reject"  # Raise DuplicateKeyError


def _default_workers() -> int:
    """Get the default worker pool size.

    Returns the number of CPUs reported by the OS, falling back to 1 when
    the count is unavailable (some containers report None).

    Returns:
        Positive worker count.

    Example:
        >>> _default_workers() >= 1
        True
    """
    return os.cpu_count() or 1


@dataclass
class ProcessingConfig:
    """Configuration for transforms, codec defaults and metadata policy.

    Attributes:
        workers: Size of the fixed worker pool for row-partitioned transforms.
            1 forces the sequential path.
        parallel_threshold: Minimum pixel count (width * height) before the
            worker pool is used.
        compress: Default for serialize() when compress is not given.
        compression_level: zlib level 0-9 for compressed payloads.
        duplicate_policy: Default metadata key collision policy.
        default_method: Name of the demosaic method used when none is given
            ("none", "nearest", "linear" or "cubic").
    """

    workers: int = field(default_factory=_default_workers)
    parallel_threshold: int = DEFAULT_PARALLEL_THRESHOLD

    # Codec settings
    compress: bool = True
    compression_level: int = DEFAULT_COMPRESSION_LEVEL

    # Metadata settings
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.REPLACE

    # Demosaic settings
    default_method: str = "nearest"

    def __post_init__(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If workers < 1, parallel_threshold < 0,
                compression_level outside 0-9, or default_method unknown.
        """
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.parallel_threshold < 0:
            raise ValueError(
                f"parallel_threshold must be >= 0, got {self.parallel_threshold}"
            )
        if not 0 <= self.compression_level <= 9:
            raise ValueError(
                f"compression_level must be 0-9, got {self.compression_level}"
            )
        if self.default_method not in ("none", "nearest", "linear", "cubic"):
            raise ValueError(f"Unknown demosaic method: {self.default_method!r}")


# =============================================================================
# Global Configuration
# =============================================================================

_config: ProcessingConfig | None = None


def get_config() -> ProcessingConfig:
    """Get the global processing configuration.

    Creates a ProcessingConfig with defaults on first access. All transforms
    and the codec read their defaults from here, so a single configure()
    call at startup is enough to change behaviour everywhere.

    Returns:
        The active ProcessingConfig.

    Example:
        >>> get_config().compress
        True
    """
    global _config
    if _config is None:
        _config = ProcessingConfig()
    return _config


def configure(config: ProcessingConfig | None = None, **overrides: object) -> None:
    """Replace the global processing configuration.

    Either pass a complete ProcessingConfig, or keyword overrides that are
    applied on top of the current configuration.

    Args:
        config: New configuration. None keeps the current one as the base.
        **overrides: Field values to change, e.g. workers=4.

    Raises:
        ValueError: If a resulting value is invalid.
        TypeError: If an override names an unknown field.

    Example:
        >>> configure(workers=4, compress=False)
        >>> get_config().workers
        4
    """
    global _config
    base = config if config is not None else get_config()
    _config = replace(base, **overrides) if overrides else base


def use_sequential() -> None:
    """Force every transform onto the calling thread (workers=1)."""
    configure(workers=1)


def reset_config() -> None:
    """Reset the global configuration to defaults (for testing)."""
    global _config
    _config = None
