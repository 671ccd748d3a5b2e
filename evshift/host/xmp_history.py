"""
Host that applies styles by writing darktable XMP history directly.

Useful when darktable is not running: the style's plugins are appended to
the image's sidecar as new history steps, which darktable picks up the next
time it reads the sidecar ("look for updated XMP files on startup").
"""

import logging
from typing import Dict, Optional

from .base import FileStagedHost, PresetHandle
from ..errors import ExposureError, PresetApplyFailed, PresetImportFailed
from ..styles.dtstyle import DarktableStyle, parse_style
from ..utils.xmp_sidecar import DarktableSidecar

logger = logging.getLogger(__name__)


class XmpHistoryHost(FileStagedHost):
    """Imports .dtstyle files and applies them to sidecars."""

    def __init__(self, temp_dir: Optional[str] = None):
        super().__init__(temp_dir)
        self._styles: Dict[str, DarktableStyle] = {}

    @property
    def registered(self):
        return sorted(self._styles)

    def import_preset_file(self, path: str) -> PresetHandle:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                style = parse_style(f.read())
        except OSError as e:
            raise PresetImportFailed(f"Cannot read style file {path}: {e}") from e

        if style.name in self._styles:
            raise PresetImportFailed(f"Style {style.name} is already registered")

        self._styles[style.name] = style
        logger.debug(f"Imported style {style.name} ({len(style.plugins)} plugin(s))")
        return PresetHandle(name=style.name, style=style)

    def apply_preset(self, handle: PresetHandle, image) -> None:
        style = self._styles.get(handle.name)
        if style is None:
            raise PresetApplyFailed(f"Style {handle.name} is not registered",
                                    image_path=image.path)

        sidecar = DarktableSidecar(image.sidecar_path)
        for plugin in style.plugins:
            try:
                num = sidecar.append_history_entry(plugin.to_history_fields())
            except (OSError, ExposureError) as e:
                raise PresetApplyFailed(
                    f"Cannot write history to {sidecar.sidecar_path}: {e}",
                    image_path=image.path,
                ) from e
            logger.info(f"Applied {plugin.operation} from {style.name} to {image.path} as history step {num}")

    def delete_preset(self, handle: PresetHandle) -> None:
        if self._styles.pop(handle.name, None) is None:
            logger.debug(f"Style {handle.name} was not registered")
