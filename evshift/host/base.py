"""
Preset host abstraction.

The host is whatever turns a style document into an edit on an image:
darktable itself, a sidecar writer, or an in-memory recorder. evshift only
needs three operations from it: import, apply and delete.
"""

import os
import logging
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..errors import PresetImportFailed
from ..styles.dtstyle import DarktableStyle

logger = logging.getLogger(__name__)

STYLE_SUFFIX = '.dtstyle'


@dataclass
class PresetHandle:
    """Reference to a style registered with a host."""
    name: str
    style: Optional[DarktableStyle] = None


class PresetHost(ABC):
    """Interface to the application that imports and applies styles."""

    @abstractmethod
    def import_preset(self, document_text: str) -> PresetHandle:
        """
        Register a style document.

        Raises:
            PresetImportFailed: the host rejected the document
        """

    @abstractmethod
    def apply_preset(self, handle: PresetHandle, image) -> None:
        """
        Apply a registered style to an image, creating a new history step.

        Raises:
            PresetApplyFailed: the style could not be applied
        """

    @abstractmethod
    def delete_preset(self, handle: PresetHandle) -> None:
        """Unregister a style. Best effort; callers log failures."""


class FileStagedHost(PresetHost):
    """
    Host that imports styles from files.

    import_preset() writes the document to a temporary .dtstyle file, hands the
    path to import_preset_file() and removes the file afterwards, whether or
    not the import succeeded.
    """

    def __init__(self, temp_dir: Optional[str] = None):
        self.temp_dir = temp_dir

    @abstractmethod
    def import_preset_file(self, path: str) -> PresetHandle:
        """Import a style from a file on disk."""

    def import_preset(self, document_text: str) -> PresetHandle:
        try:
            fd, tmp_path = tempfile.mkstemp(suffix=STYLE_SUFFIX, dir=self.temp_dir)
        except OSError as e:
            raise PresetImportFailed(f"Cannot create temporary style file: {e}") from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(document_text)
            logger.debug(f"Staged style document at {tmp_path}")
            return self.import_preset_file(tmp_path)
        except OSError as e:
            raise PresetImportFailed(f"Cannot stage style document: {e}") from e
        finally:
            try:
                os.remove(tmp_path)
            except OSError as e:
                logger.warning(f"Could not remove temporary style {tmp_path}: {e}")
