from __future__ import annotations

from typing import Tuple

from mangatra.pipeline.model import BoundingBox, DiagonalOrientation, ExpandedRegion
from mangatra.pipeline.raster import RasterBuffer

# Outward step for each corner
_TOP_LEFT = (-1, -1)
_TOP_RIGHT = (1, -1)
_BOTTOM_LEFT = (-1, 1)
_BOTTOM_RIGHT = (1, 1)


def diagonal_run(image: RasterBuffer, start: Tuple[int, int], step: Tuple[int, int]) -> int:
    """Count steps from ``start`` along ``step`` while pixels match the start pixel.

    Stops at the first differing pixel or at the image edge.
    """
    x, y = start
    if not image.contains(x, y):
        return 0
    length = 0
    while True:
        nx, ny = x + step[0], y + step[1]
        if not image.contains(nx, ny) or not image.pixel_equals((nx, ny), start):
            return length
        x, y = nx, ny
        length += 1


def expand_region(image: RasterBuffer, box: BoundingBox) -> ExpandedRegion:
    """Grow ``box`` towards the edge of the uniform shape surrounding it.

    Each corner walks diagonally outward over pixels equal to itself. The
    corner pair (main or anti-diagonal) with the shorter combined walk defines
    the new rectangle, which keeps the estimate from bleeding into artwork.
    """
    left, top = box.x, box.y
    right, bottom = box.right - 1, box.bottom - 1

    tl_len = diagonal_run(image, (left, top), _TOP_LEFT)
    tr_len = diagonal_run(image, (right, top), _TOP_RIGHT)
    bl_len = diagonal_run(image, (left, bottom), _BOTTOM_LEFT)
    br_len = diagonal_run(image, (right, bottom), _BOTTOM_RIGHT)

    if tl_len + br_len <= tr_len + bl_len:
        tl = (left - tl_len, top - tl_len)
        br = (right + br_len, bottom + br_len)
        return ExpandedRegion(
            origin=tl,
            width=br[0] - tl[0] + 1,
            height=br[1] - tl[1] + 1,
            diagonal=DiagonalOrientation.TOP_LEFT_BOTTOM_RIGHT,
        )

    # Right edge is exclusive here so the top-left falls out as tr.x - width
    tr = (right + tr_len + 1, top - tr_len)
    bl = (left - bl_len, bottom + bl_len)
    new_width = tr[0] - bl[0]
    new_height = bl[1] - tr[1] + 1
    return ExpandedRegion(
        origin=(tr[0] - new_width, tr[1]),
        width=new_width,
        height=new_height,
        diagonal=DiagonalOrientation.TOP_RIGHT_BOTTOM_LEFT,
    )
