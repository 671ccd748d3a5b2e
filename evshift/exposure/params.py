"""
Binary codec for darktable exposure module parameters.

The exposure iop stores its parameters as a packed C struct (module version 6):

    int32   mode
    float32 black
    float32 exposure
    float32 deflicker_percentile
    float32 deflicker_target_level
    int32   compensate_exposure_bias

little-endian, 24 bytes, written to XMP sidecars and style files as hex text.
The layout is dictated by darktable; a wrong byte order or field width still
produces a document darktable accepts, it just applies garbage values.
"""

import base64
import binascii
import logging
import re
import struct
import zlib
from dataclasses import asdict, dataclass, replace
from enum import IntEnum
from typing import Any, Dict

from ..errors import MalformedRecord

logger = logging.getLogger(__name__)

PARAMS_STRUCT = struct.Struct('<iffffi')
PARAMS_SIZE = PARAMS_STRUCT.size  # 24 bytes
PARAMS_HEX_LENGTH = PARAMS_SIZE * 2

_HEX_RE = re.compile(r'[0-9a-fA-F]*')
_GZ_RE = re.compile(r'^gz(\d\d)(.+)$', re.DOTALL)


class ExposureMode(IntEnum):
    """Exposure module algorithm variants."""
    MANUAL = 0
    DEFLICKER = 1


@dataclass(frozen=True)
class ExposureParams:
    """Decoded exposure module parameter record."""
    mode: int
    black: float
    exposure: float
    deflicker_percentile: float
    deflicker_target_level: float
    compensate_exposure_bias: int

    @property
    def is_deflicker(self) -> bool:
        return self.mode == ExposureMode.DEFLICKER

    def with_exposure(self, exposure: float) -> 'ExposureParams':
        """Return a copy with the exposure compensation replaced."""
        return replace(self, exposure=exposure)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def decode(hex_text: str) -> ExposureParams:
    """
    Decode a hex encoded exposure parameter record.

    Args:
        hex_text: 48 hex characters (case-insensitive)

    Returns:
        ExposureParams

    Raises:
        MalformedRecord: odd length, non-hex characters or wrong record size
    """
    if hex_text is None:
        raise MalformedRecord("Exposure params missing")
    if len(hex_text) % 2 != 0:
        raise MalformedRecord(f"Odd-length hex payload ({len(hex_text)} chars)")
    if not _HEX_RE.fullmatch(hex_text):
        raise MalformedRecord(f"Non-hex characters in payload: {hex_text!r}")

    return unpack(bytes.fromhex(hex_text))


def unpack(blob: bytes) -> ExposureParams:
    """Unpack the raw 24 byte struct."""
    if len(blob) != PARAMS_SIZE:
        raise MalformedRecord(
            f"Exposure params must be {PARAMS_SIZE} bytes, got {len(blob)}"
        )

    mode, black, exposure, percentile, target, compensate = PARAMS_STRUCT.unpack(blob)
    return ExposureParams(
        mode=mode,
        black=black,
        exposure=exposure,
        deflicker_percentile=percentile,
        deflicker_target_level=target,
        compensate_exposure_bias=compensate,
    )


def encode(params: ExposureParams) -> str:
    """
    Encode parameters to the lowercase hex form darktable writes.

    Always returns exactly 48 characters.
    """
    try:
        blob = PARAMS_STRUCT.pack(
            int(params.mode),
            params.black,
            params.exposure,
            params.deflicker_percentile,
            params.deflicker_target_level,
            int(params.compensate_exposure_bias),
        )
    except struct.error as e:
        raise MalformedRecord(f"Cannot pack exposure params {params}: {e}") from e

    return blob.hex()


def decode_blob(text: str) -> bytes:
    """
    Decode a darktable XMP parameter string to raw bytes.

    darktable writes either plain hex or, with "compress XMP tags" enabled,
    ``gz`` + a two digit compression factor + base64 of a zlib stream.
    """
    if text is None:
        raise MalformedRecord("Parameter payload missing")

    text = text.strip()
    match = _GZ_RE.match(text)
    if not match:
        if len(text) % 2 != 0 or not _HEX_RE.fullmatch(text):
            raise MalformedRecord(f"Invalid hex payload: {text!r}")
        return bytes.fromhex(text)

    try:
        compressed = base64.b64decode(match.group(2), validate=True)
        return zlib.decompress(compressed)
    except (binascii.Error, zlib.error) as e:
        raise MalformedRecord(f"Invalid compressed payload: {e}") from e


def decode_xmp_params(text: str) -> ExposureParams:
    """Decode an exposure payload as found in a sidecar, plain or compressed."""
    return unpack(decode_blob(text))
