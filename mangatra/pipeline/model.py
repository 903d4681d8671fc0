from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from mangatra.pipeline.raster import RasterBuffer

Origin = Tuple[int, int]


class DiagonalOrientation(str, Enum):
    TOP_LEFT_BOTTOM_RIGHT = "top_left_bottom_right"
    TOP_RIGHT_BOTTOM_LEFT = "top_right_bottom_left"


@dataclass(frozen=True)
class RawDetection:
    """One candidate row of the detector output, normalized to the 640px frame."""

    cx: float
    cy: float
    w: float
    h: float
    object_conf: float
    class_scores: Tuple[float, ...]

    @property
    def best_class(self) -> Tuple[int, float]:
        idx = max(range(len(self.class_scores)), key=self.class_scores.__getitem__)
        return idx, float(self.class_scores[idx])


@dataclass(frozen=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int

    @property
    def origin(self) -> Origin:
        return self.x, self.y

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def fits_within(self, width: int, height: int) -> bool:
        return self.x >= 0 and self.y >= 0 and self.right <= width and self.bottom <= height

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class ExpandedRegion:
    origin: Origin
    width: int
    height: int
    diagonal: DiagonalOrientation

    @property
    def box(self) -> BoundingBox:
        return BoundingBox(self.origin[0], self.origin[1], self.width, self.height)


@dataclass(frozen=True)
class Scale:
    """Font scale in pixels: ``y`` is the glyph height, ``x`` the horizontal extent."""

    x: float
    y: float


@dataclass
class TextBlock:
    lines: List[str]
    scale: Scale


@dataclass(frozen=True)
class ReplacementPatch:
    raster: RasterBuffer
    origin: Origin
    diagonal: DiagonalOrientation = DiagonalOrientation.TOP_LEFT_BOTTOM_RIGHT


@dataclass(frozen=True)
class Detection:
    """A region of text with its position on the page, in detection order."""

    text: str
    box: BoundingBox
