"""
Image handles for evshift.

An Image carries what the exposure pipeline needs: where the darktable
sidecar lives and the capture settings used for EV equalization. Capture
settings are read with ExifTool.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import exiftool

from ..exposure.ev import parse_exposure_time
from ..utils.xmp_sidecar import sidecar_path_for

logger = logging.getLogger(__name__)

EXIF_TAGS = ['FNumber', 'Aperture', 'ExposureTime', 'ShutterSpeed', 'ISO']


@dataclass(frozen=True)
class Image:
    """Read-only handle for one selected image."""
    path: str
    sidecar_path: str
    aperture: Optional[float] = None
    exposure_time: Optional[float] = None
    iso: Optional[float] = None

    @property
    def name(self) -> str:
        return Path(self.path).name

    @classmethod
    def from_path(cls, path, naming: str = 'append') -> 'Image':
        """Handle without capture metadata, enough for flat adjustments."""
        path = os.fspath(path)
        return cls(path=path, sidecar_path=sidecar_path_for(path, naming))


def _first_number(tags: Dict, *keys) -> Optional[float]:
    for key in keys:
        value = tags.get(key)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric {key}={value!r}")
    return None


def image_from_tags(path: str, tags: Dict, naming: str = 'append') -> Image:
    """Build an Image from an ExifTool tag dictionary."""
    exposure_time = parse_exposure_time(
        tags.get('EXIF:ExposureTime', tags.get('Composite:ShutterSpeed'))
    )
    return Image(
        path=path,
        sidecar_path=sidecar_path_for(path, naming),
        aperture=_first_number(tags, 'EXIF:FNumber', 'Composite:Aperture'),
        exposure_time=exposure_time,
        iso=_first_number(tags, 'EXIF:ISO', 'Composite:ISO'),
    )


class ImageLoader:
    """Loads Image handles, keeping one ExifTool process for the batch."""

    def __init__(self, naming: str = 'append', executable: Optional[str] = None):
        """
        Initialize image loader

        Args:
            naming: Sidecar naming convention ('append' or 'replace')
            executable: ExifTool binary, None to search PATH
        """
        self.naming = naming
        self.executable = executable
        self.exiftool = None

    def __enter__(self):
        """Context manager entry - start ExifTool process"""
        kwargs = {'executable': self.executable} if self.executable else {}
        self.exiftool = exiftool.ExifToolHelper(**kwargs)
        self.exiftool.run()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - terminate ExifTool process"""
        if self.exiftool:
            self.exiftool.terminate()
            self.exiftool = None

    def load(self, path) -> Image:
        """Read capture metadata for one image."""
        path = os.fspath(path)
        if self.exiftool is None:
            raise RuntimeError("ImageLoader must be used as a context manager")

        results = self.exiftool.get_tags([path], tags=EXIF_TAGS)
        tags = results[0] if results else {}
        image = image_from_tags(path, tags, self.naming)
        logger.debug(
            f"Loaded {image.name}: f/{image.aperture} {image.exposure_time}s ISO {image.iso}"
        )
        return image

    def load_all(self, paths: Sequence) -> List[Image]:
        return [self.load(path) for path in paths]
