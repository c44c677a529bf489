"""Bayer demosaicing.

Example:
    from skyframe.demosaic import DemosaicMethod, debayer

    rgb = debayer(mosaic, DemosaicMethod.LINEAR)
"""

from skyframe.demosaic.engine import debayer
from skyframe.demosaic.methods import DemosaicMethod

__all__ = ["DemosaicMethod", "debayer"]
