"""
In-memory host that records what would be applied.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from .base import PresetHost, PresetHandle
from ..errors import PresetApplyFailed
from ..styles.dtstyle import parse_style

logger = logging.getLogger(__name__)


@dataclass
class AppliedPreset:
    """One recorded application."""
    image_path: str
    style_name: str
    document: str


class DryRunHost(PresetHost):
    """Parses and records style documents without touching any file."""

    def __init__(self):
        self.documents: Dict[str, str] = {}
        self.applied: List[AppliedPreset] = []
        self.deleted: List[str] = []

    def import_preset(self, document_text: str) -> PresetHandle:
        style = parse_style(document_text)
        self.documents[style.name] = document_text
        return PresetHandle(name=style.name, style=style)

    def apply_preset(self, handle: PresetHandle, image) -> None:
        if handle.name not in self.documents:
            raise PresetApplyFailed(f"Style {handle.name} is not registered",
                                    image_path=image.path)
        self.applied.append(AppliedPreset(
            image_path=image.path,
            style_name=handle.name,
            document=self.documents[handle.name],
        ))
        logger.info(f"[dry-run] Would apply {handle.name} to {image.path}")

    def delete_preset(self, handle: PresetHandle) -> None:
        self.documents.pop(handle.name, None)
        self.deleted.append(handle.name)
