"""Typesetting: font loading, scale selection, wrapping and rendering."""

from mangatra.pipeline.typeset.font import FontAsset, load_font
from mangatra.pipeline.typeset.layout import choose_scale, layout_text, wrap_text
from mangatra.pipeline.typeset.render import render_text_block, typeset_region

__all__ = [
    "FontAsset",
    "choose_scale",
    "layout_text",
    "load_font",
    "render_text_block",
    "typeset_region",
    "wrap_text",
]
