"""
Preset hosts: the collaborators that turn style documents into edits.
"""

from .base import PresetHost, FileStagedHost, PresetHandle
from .xmp_history import XmpHistoryHost
from .dry_run import DryRunHost, AppliedPreset

HOST_BACKENDS = {
    'xmp': XmpHistoryHost,
    'dry-run': DryRunHost,
}


def create_host(backend: str = 'xmp', temp_dir=None) -> PresetHost:
    """Instantiate a host by its config name."""
    if backend == 'xmp':
        return XmpHistoryHost(temp_dir=temp_dir)
    if backend == 'dry-run':
        return DryRunHost()
    raise ValueError(f"Unknown host backend: {backend} (expected one of {sorted(HOST_BACKENDS)})")


__all__ = [
    'PresetHost',
    'FileStagedHost',
    'PresetHandle',
    'XmpHistoryHost',
    'DryRunHost',
    'AppliedPreset',
    'create_host',
]
