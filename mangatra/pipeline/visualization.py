from __future__ import annotations

from typing import List, Sequence, Tuple

import cv2  # type: ignore
import numpy as np

from mangatra.pipeline.model import BoundingBox, DiagonalOrientation, ExpandedRegion
from mangatra.pipeline.raster import RasterBuffer


def generate_distinct_colors(num_colors: int, seed: int = 42) -> List[Tuple[int, int, int]]:
    rng = np.random.default_rng(seed)
    colors = []
    for _ in range(num_colors):
        color = tuple(int(c) for c in rng.integers(low=64, high=255, size=3))
        colors.append((color[2], color[1], color[0]))
    return colors


def make_overlay(
    image: RasterBuffer,
    boxes: Sequence[BoundingBox],
    regions: Sequence[ExpandedRegion] = (),
    alpha: float = 0.3,
) -> RasterBuffer:
    """Debug view: detected boxes tinted, expanded regions outlined with their diagonal."""
    base = image.array
    overlay = image.to_array()
    colors_bgr = generate_distinct_colors(max(len(boxes), len(regions)))

    for idx, box in enumerate(boxes):
        color = colors_bgr[idx]
        sl = (slice(box.y, box.bottom), slice(box.x, box.right))
        colored = np.zeros_like(base[sl])
        colored[:, :] = color
        overlay[sl] = cv2.addWeighted(base[sl], 1 - alpha, colored, alpha, 0)
        cv2.rectangle(overlay, (box.x, box.y), (box.right - 1, box.bottom - 1), (0, 0, 0), thickness=1)
        label = str(idx)
        cv2.putText(overlay, label, (box.x, max(12, box.y)), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (0, 0, 0), 2)
        cv2.putText(overlay, label, (box.x, max(12, box.y)), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1)

    for idx, region in enumerate(regions):
        color = colors_bgr[idx]
        x0, y0 = region.origin
        x1, y1 = x0 + region.width - 1, y0 + region.height - 1
        cv2.rectangle(overlay, (x0, y0), (x1, y1), color, thickness=2)
        if region.diagonal is DiagonalOrientation.TOP_LEFT_BOTTOM_RIGHT:
            cv2.line(overlay, (x0, y0), (x1, y1), color, thickness=1)
        else:
            cv2.line(overlay, (x1, y0), (x0, y1), color, thickness=1)

    return RasterBuffer(overlay)
