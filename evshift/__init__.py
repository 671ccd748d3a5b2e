"""
evshift: batch exposure adjustment for darktable

Shifts or equalizes the exposure module settings of a selection of images by
reading their XMP sidecar history and applying generated darktable styles.
"""

__version__ = "0.1.0"

from .config import load_config
from .errors import ExposureError
from .exposure import ExposureParams, compute_ev, decode, encode
from .utils.xmp_sidecar import read_latest_exposure
from .styles.dtstyle import render
from .processing.adjuster import ExposureAdjuster

__all__ = [
    "load_config",
    "ExposureError",
    "ExposureParams",
    "compute_ev",
    "decode",
    "encode",
    "read_latest_exposure",
    "render",
    "ExposureAdjuster",
]
