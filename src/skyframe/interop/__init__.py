"""Adapters to external formats: FITS files, numpy arrays, image files.

Both submodules import heavy optional machinery (astropy, OpenCV), so they
are not imported here; use ``skyframe.interop.fits`` and
``skyframe.interop.image`` directly.
"""
