"""
Exposure parameter codec and EV arithmetic.
"""

from .params import (
    ExposureMode,
    ExposureParams,
    decode,
    encode,
    decode_blob,
    decode_xmp_params,
)
from .ev import compute_ev, parse_exposure_time

__all__ = [
    'ExposureMode',
    'ExposureParams',
    'decode',
    'encode',
    'decode_blob',
    'decode_xmp_params',
    'compute_ev',
    'parse_exposure_time',
]
