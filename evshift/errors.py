"""
Exception hierarchy for evshift.

Every error raised by the exposure pipeline derives from ExposureError so the
batch orchestrator can record a per-image failure and move on.
"""

from typing import Optional


class ExposureError(Exception):
    """Base exception for exposure adjustment operations."""

    def __init__(self, message: str, image_path: Optional[str] = None):
        super().__init__(message)
        self.image_path = image_path

    def __str__(self) -> str:
        message = super().__str__()
        if self.image_path:
            return f"{self.image_path}: {message}"
        return message


class SidecarUnavailable(ExposureError):
    """Raised when an XMP sidecar is missing or cannot be read."""
    pass


class NoExposureRecord(ExposureError):
    """Raised when a sidecar holds no exposure history entry."""
    pass


class MalformedRecord(ExposureError):
    """Raised when an exposure parameter payload cannot be decoded."""
    pass


class InvalidExposureMetadata(ExposureError):
    """Raised when aperture, shutter time or ISO is missing, non-positive or non-finite."""
    pass


class InsufficientSelection(ExposureError):
    """Raised when equalization is requested for fewer than two images."""
    pass


class HostError(ExposureError):
    """Base exception for failures reported by the preset host."""
    pass


class PresetImportFailed(HostError):
    """Raised when the host rejects a generated style document."""
    pass


class PresetApplyFailed(HostError):
    """Raised when the host cannot apply an imported style to an image."""
    pass
