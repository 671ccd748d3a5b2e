"""
evshift utilities module.

Provides XMP sidecar access and logging helpers.
"""

from .xmp_sidecar import (
    DarktableSidecar,
    SidecarRecord,
    read_latest_exposure,
    sidecar_path_for,
)

__all__ = [
    'DarktableSidecar',
    'SidecarRecord',
    'read_latest_exposure',
    'sidecar_path_for',
]
