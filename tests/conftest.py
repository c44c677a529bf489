"""Pytest configuration and fixtures for skyframe tests.

Every test starts from the default ProcessingConfig and unconfigured
logging, so tests that change global settings cannot leak into others.
"""

import sys
from unittest.mock import MagicMock

import numpy as np
import pytest

from skyframe.config import reset_config
from skyframe.observability import reset_logging
from skyframe.parallel import shutdown_pool


@pytest.fixture(autouse=True)
def clean_globals():
    """Reset processing configuration, logging and the worker pool.

    Yields:
        None. Cleanup runs after the test.
    """
    reset_config()
    yield
    reset_config()
    reset_logging()
    shutdown_pool()


@pytest.fixture
def rggb_4x4():
    """4x4 RGGB mosaic used by the demosaic reference vectors."""
    return np.array(
        [229, 67, 95, 146, 232, 51, 229, 241, 169, 161, 15, 52, 45, 175, 98, 197],
        dtype=np.uint8,
    )


@pytest.fixture
def rggb_3x3():
    """3x3 RGGB mosaic used by the demosaic reference vectors."""
    return np.array([229, 67, 95, 146, 232, 51, 229, 241, 169], dtype=np.uint8)


@pytest.fixture
def rggb_8x8():
    """8x8 RGGB mosaic used by the cubic reference vector."""
    return np.array(
        [
            229, 67, 95, 146, 232, 51, 229, 241,
            169, 161, 15, 52, 45, 175, 98, 197,
            127, 183, 253, 97, 199, 239, 54, 166,
            32, 68, 98, 3, 97, 222, 87, 123,
            153, 126, 47, 211, 171, 203, 27, 185,
            105, 210, 165, 200, 141, 135, 202, 5,
            122, 187, 177, 122, 220, 112, 62, 18,
            25, 80, 132, 169, 104, 233, 75, 117,
        ],
        dtype=np.uint8,
    )  # fmt: skip


@pytest.fixture
def mock_cv2_module():
    """Provide a mocked cv2 module for image interop tests.

    Temporarily replaces cv2 in sys.modules so CV2ImageCodec can be
    exercised without OpenCV doing real file or PNG work.

    Yields:
        MagicMock: Mocked cv2 with IMREAD_UNCHANGED, imread and imencode.
    """
    original_cv2 = sys.modules.get("cv2")

    mock_cv2 = MagicMock()
    mock_cv2.__version__ = "4.12.0"
    mock_cv2.IMREAD_UNCHANGED = -1
    mock_cv2.imread = MagicMock(return_value=np.zeros((2, 3), dtype=np.uint8))
    mock_cv2.imencode = MagicMock(
        return_value=(True, MagicMock(tobytes=lambda: b"\x89PNGtest"))
    )

    sys.modules["cv2"] = mock_cv2
    yield mock_cv2

    if original_cv2 is not None:
        sys.modules["cv2"] = original_cv2
    else:
        del sys.modules["cv2"]
