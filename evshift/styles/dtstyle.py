"""
darktable style (.dtstyle) documents.

A style is the only way to push module parameters into darktable from the
outside: the exposure parameters are packed into a one-plugin style, the
style is imported and applied, and darktable records it as a new history
step on the image.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional
import xml.etree.ElementTree as ET

from ..errors import PresetImportFailed

logger = logging.getLogger(__name__)

OPERATION = 'exposure'

# Fixed plugin fields expected by darktable for the exposure module
PLUGIN_NUM = 15
MODULE_VERSION = 6
BLENDOP_VERSION = 13
MULTI_PRIORITY = 0

# Blend parameters for "no blending", as darktable serialises them. Opaque.
NOOP_BLENDOP_PARAMS = (
    'gz08eJxjYGBgYAFiCQYYOOHEgAZY0QWAgBGLGANDgz0Ej1Q+dlAx68oBEMbFxwX+AwGIBgCbGCeh'
)

DEFAULT_NAME_PREFIX = 'temp_style_'

_UNSAFE_NAME_CHARS = re.compile(r'[^A-Za-z0-9_.-]')

STYLE_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<darktable_style version="1.0">
  <info>
    <name>{name}</name>
    <description></description>
  </info>
  <style>
    <plugin>
      <num>{num}</num>
      <module>{module}</module>
      <operation>{operation}</operation>
      <op_params>{op_params}</op_params>
      <enabled>1</enabled>
      <blendop_params>{blendop_params}</blendop_params>
      <blendop_version>{blendop_version}</blendop_version>
      <multi_priority>{multi_priority}</multi_priority>
      <multi_name></multi_name>
      <multi_name_hand_edited>0</multi_name_hand_edited>
    </plugin>
  </style>
</darktable_style>
"""


@dataclass
class StylePlugin:
    """One module entry of a style."""
    num: int
    module_version: int
    operation: str
    op_params: str
    enabled: bool = True
    blendop_params: str = ''
    blendop_version: int = 0
    multi_priority: int = 0
    multi_name: str = ''

    def to_history_fields(self) -> Dict[str, str]:
        """Attribute values for a darktable XMP history entry."""
        return {
            'operation': self.operation,
            'enabled': '1' if self.enabled else '0',
            'modversion': str(self.module_version),
            'params': self.op_params,
            'multi_name': self.multi_name,
            'multi_priority': str(self.multi_priority),
            'blendop_version': str(self.blendop_version),
            'blendop_params': self.blendop_params,
        }


@dataclass
class DarktableStyle:
    """A parsed style document."""
    name: str
    description: str = ''
    plugins: List[StylePlugin] = field(default_factory=list)


def render(style_name: str, params_hex: str) -> str:
    """
    Render a single-plugin exposure style.

    Both values are inserted verbatim. style_name is not escaped; callers pass
    names from make_style_name(), which only produces XML-safe characters.
    """
    return STYLE_TEMPLATE.format(
        name=style_name,
        num=PLUGIN_NUM,
        module=MODULE_VERSION,
        operation=OPERATION,
        op_params=params_hex,
        blendop_params=NOOP_BLENDOP_PARAMS,
        blendop_version=BLENDOP_VERSION,
        multi_priority=MULTI_PRIORITY,
    )


def sanitize_prefix(prefix: str) -> str:
    return _UNSAFE_NAME_CHARS.sub('_', prefix or '')


def make_style_name(prefix: str = DEFAULT_NAME_PREFIX, now: Optional[datetime] = None) -> str:
    """
    Generate a unique style name: prefix + UTC timestamp + random suffix.

    The suffix keeps names distinct when several images are adjusted within
    the same second.
    """
    now = now or datetime.now(timezone.utc)
    return f"{sanitize_prefix(prefix)}{now.strftime('%Y%m%dT%H%M%S')}_{uuid.uuid4().hex[:8]}"


def _text(elem: ET.Element, path: str, default: Optional[str] = None) -> Optional[str]:
    child = elem.find(path)
    if child is None:
        return default
    return (child.text or '').strip()


def _int(elem: ET.Element, path: str, default: int = 0) -> int:
    value = _text(elem, path)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError as e:
        raise PresetImportFailed(f"Invalid <{path}> value {value!r}") from e


def parse_style(text: str) -> DarktableStyle:
    """
    Parse a .dtstyle document.

    Raises:
        PresetImportFailed: not a darktable style, or a plugin lacks its
                            operation or parameters
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise PresetImportFailed(f"Style document is not valid XML: {e}") from e

    if root.tag != 'darktable_style':
        raise PresetImportFailed(f"Unexpected root element <{root.tag}>")

    name = _text(root, 'info/name')
    if not name:
        raise PresetImportFailed("Style has no name")

    plugins = []
    for plugin in root.findall('style/plugin'):
        operation = _text(plugin, 'operation')
        op_params = _text(plugin, 'op_params')
        if not operation or not op_params:
            raise PresetImportFailed(f"Style {name}: plugin without operation or op_params")

        plugins.append(StylePlugin(
            num=_int(plugin, 'num'),
            module_version=_int(plugin, 'module'),
            operation=operation,
            op_params=op_params,
            enabled=_int(plugin, 'enabled', 1) != 0,
            blendop_params=_text(plugin, 'blendop_params', ''),
            blendop_version=_int(plugin, 'blendop_version'),
            multi_priority=_int(plugin, 'multi_priority'),
            multi_name=_text(plugin, 'multi_name', ''),
        ))

    if not plugins:
        raise PresetImportFailed(f"Style {name} has no plugins")

    return DarktableStyle(
        name=name,
        description=_text(root, 'info/description', ''),
        plugins=plugins,
    )
