from __future__ import annotations

import io
import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont  # type: ignore

from mangatra.core.errors import FontLoadError
from mangatra.pipeline.model import Scale


@dataclass
class FontAsset:
    """Read-only font data shared by every layout in the process.

    ``data`` holds the TrueType bytes; when it is None Pillow's bundled
    scalable font is used instead.
    """

    data: Optional[bytes] = None
    name: str = "default"
    _sizes: Dict[int, ImageFont.FreeTypeFont] = field(default_factory=dict, repr=False)

    def at_size(self, size: int) -> ImageFont.FreeTypeFont:
        size = max(1, int(size))
        font = self._sizes.get(size)
        if font is None:
            if self.data is not None:
                font = ImageFont.truetype(io.BytesIO(self.data), size)
            else:
                font = ImageFont.load_default(size=size)
            self._sizes[size] = font
        return font

    def scaled(self, scale: Scale) -> "ScaledFont":
        return ScaledFont(self, scale)


@lru_cache(maxsize=4)
def load_font(path: Optional[Path] = None) -> FontAsset:
    """Load the typesetting font once per process.

    Raises FontLoadError when the file cannot be read or parsed.
    """
    if path is None:
        asset = FontAsset()
    else:
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise FontLoadError(f"Font not found: {path}") from exc
        asset = FontAsset(data=data, name=Path(path).stem)
    try:
        asset.at_size(12)
    except (OSError, ValueError) as exc:
        raise FontLoadError(f"Could not parse font '{asset.name}': {exc}") from exc
    return asset


class ScaledFont:
    """A font rendered at ``scale.y`` pixels and stretched horizontally by ``scale.x / scale.y``."""

    def __init__(self, asset: FontAsset, scale: Scale) -> None:
        self.scale = scale
        self.font = asset.at_size(round(scale.y))
        self.stretch = scale.x / scale.y if scale.y > 0 else 1.0

    def _bbox(self, text: str) -> Tuple[int, int, int, int]:
        return self.font.getbbox(text)

    def text_width(self, text: str) -> int:
        if not text:
            return 0
        return int(math.ceil(self.font.getlength(text) * self.stretch))

    def text_height(self, text: str) -> int:
        if not text:
            return 0
        _, top, _, bottom = self._bbox(text)
        return max(0, bottom - top)

    def text_size(self, text: str) -> Tuple[int, int]:
        return self.text_width(text), self.text_height(text)

    def render_mask(self, text: str) -> Image.Image:
        """Coverage mask ("L" mode) of ``text`` cropped to its ink, already stretched."""
        width, height = self.text_size(text)
        left, top, _, _ = self._bbox(text)
        base_width = max(1, int(math.ceil(self.font.getlength(text))) + max(0, -left))
        mask = Image.new("L", (base_width, max(1, height)), 0)
        ImageDraw.Draw(mask).text((max(0, -left), -top), text, fill=255, font=self.font)
        if width > 0 and width != base_width:
            mask = mask.resize((width, mask.height), Image.Resampling.BILINEAR)
        return mask
