from __future__ import annotations

from typing import Iterable, Sequence, Union

from mangatra.core.errors import CompositeError
from mangatra.pipeline.model import BoundingBox, ExpandedRegion, Origin, ReplacementPatch
from mangatra.pipeline.raster import RasterBuffer, hconcat, vconcat

Region = Union[BoundingBox, ExpandedRegion]


def splice(image: RasterBuffer, patch: RasterBuffer, origin: Origin) -> RasterBuffer:
    """Return a copy of ``image`` with ``patch`` placed at ``origin``.

    The page is cut into left, top, bottom and right panels around the
    region, then reassembled with the patch as the middle of the center
    column. No pixel outside the region changes.
    """
    x, y = origin
    w, h = patch.width, patch.height
    full_w, full_h = image.width, image.height
    if x < 0 or y < 0 or x + w > full_w or y + h > full_h:
        raise CompositeError(
            f"Patch {w}x{h} at ({x}, {y}) does not fit inside a {full_w}x{full_h} page"
        )

    left = image.view(0, 0, x, full_h)
    top = image.view(x, 0, w, y)
    bottom = image.view(x, y + h, w, full_h - (y + h))
    right = image.view(x + w, 0, full_w - (x + w), full_h)

    middle = vconcat([top, patch, bottom])
    return hconcat([left, middle, right])


def apply_patches(image: RasterBuffer, patches: Iterable[ReplacementPatch]) -> RasterBuffer:
    """Splice patches one after another, each onto the previous result."""
    result = image
    for patch in patches:
        result = splice(result, patch.raster, patch.origin)
    return result


def _as_box(region: Region) -> BoundingBox:
    return region.box if isinstance(region, ExpandedRegion) else region


def blank_patch(region: Region) -> ReplacementPatch:
    box = _as_box(region)
    if isinstance(region, ExpandedRegion):
        return ReplacementPatch(RasterBuffer.blank(box.width, box.height), box.origin, region.diagonal)
    return ReplacementPatch(RasterBuffer.blank(box.width, box.height), box.origin)


def clean(image: RasterBuffer, regions: Sequence[Region]) -> RasterBuffer:
    """White out every region of the page."""
    return apply_patches(image, [blank_patch(r) for r in regions])
