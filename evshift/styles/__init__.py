"""
darktable style document generation and parsing.
"""

from .dtstyle import (
    DarktableStyle,
    StylePlugin,
    render,
    make_style_name,
    parse_style,
    NOOP_BLENDOP_PARAMS,
)

__all__ = [
    'DarktableStyle',
    'StylePlugin',
    'render',
    'make_style_name',
    'parse_style',
    'NOOP_BLENDOP_PARAMS',
]
