"""
Exposure value arithmetic.
"""

import logging
import math
import numbers
from typing import Optional

from ..errors import InvalidExposureMetadata

logger = logging.getLogger(__name__)


def _require_positive(name: str, value) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidExposureMetadata(f"{name} is missing or not a number: {value!r}")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidExposureMetadata(f"{name} must be finite and positive, got {value}")
    return value


def compute_ev(aperture: float, exposure_time: float, iso: float) -> float:
    """
    Compute the exposure value of a capture, normalised to ISO 100.

    EV = log2(N^2 / t) - log2(ISO / 100)

    Args:
        aperture: f-number
        exposure_time: shutter time in seconds
        iso: ISO sensitivity

    Returns:
        Exposure value

    Raises:
        InvalidExposureMetadata: any input missing, <= 0, NaN or infinite
    """
    aperture = _require_positive("aperture", aperture)
    exposure_time = _require_positive("exposure_time", exposure_time)
    iso = _require_positive("iso", iso)

    return math.log2(aperture ** 2 / exposure_time) - math.log2(iso / 100)


def parse_exposure_time(value) -> Optional[float]:
    """
    Parse a shutter time to seconds.

    Accepts numbers and strings such as "1/200", "2.5" or "1/200 s".
    Returns None when the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return float(value)

    text = str(value).strip().rstrip('s').strip()
    try:
        if '/' in text:
            numerator, denominator = text.split('/', 1)
            return float(numerator) / float(denominator)
        return float(text)
    except (ValueError, ZeroDivisionError):
        logger.warning(f"Could not parse exposure time: {value}")
        return None
