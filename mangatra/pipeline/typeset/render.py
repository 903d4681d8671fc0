from __future__ import annotations

from typing import List, Tuple

from PIL import Image  # type: ignore

from mangatra import DEFAULT_PADDING
from mangatra.pipeline.model import TextBlock
from mangatra.pipeline.raster import RasterBuffer
from mangatra.pipeline.typeset.font import FontAsset
from mangatra.pipeline.typeset.layout import layout_text


def line_positions(block: TextBlock, width: int, height: int, font: FontAsset) -> List[Tuple[int, int]]:
    """Top-left position of each line: centered horizontally, block centered vertically.

    The block height is estimated as ``len(lines) * first_line_height``; each
    line then advances by its own height.
    """
    if not block.lines:
        return []
    scaled = font.scaled(block.scale)
    block_height = len(block.lines) * scaled.text_height(block.lines[0])
    y = (height - block_height) // 2
    positions: List[Tuple[int, int]] = []
    for line in block.lines:
        line_width, line_height = scaled.text_size(line)
        positions.append(((width - line_width) // 2, y))
        y += line_height
    return positions


def render_text_block(block: TextBlock, width: int, height: int, font: FontAsset) -> RasterBuffer:
    """Draw ``block`` in black on a white canvas of exactly ``width x height``."""
    canvas = Image.new("RGB", (width, height), (255, 255, 255))
    scaled = font.scaled(block.scale)
    black = Image.new("RGB", (width, height), (0, 0, 0))
    for line, (x, y) in zip(block.lines, line_positions(block, width, height, font)):
        if not line:
            continue
        mask = scaled.render_mask(line)
        full_mask = Image.new("L", (width, height), 0)
        full_mask.paste(mask, (x, y))
        canvas.paste(black, (0, 0), full_mask)
    return RasterBuffer.from_pil(canvas)


def typeset_region(
    text: str,
    width: int,
    height: int,
    font: FontAsset,
    padding: int = DEFAULT_PADDING,
) -> RasterBuffer:
    block = layout_text(text, width, height, font, padding=padding)
    return render_text_block(block, width, height, font)
