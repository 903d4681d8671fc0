from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from mangatra import DEFAULT_PADDING
from mangatra.core.errors import BackendError, PageProcessingError
from mangatra.pipeline.composite import Region, apply_patches, clean as clean_regions
from mangatra.pipeline.detection.decode import DetectionDecoder
from mangatra.pipeline.expand import expand_region
from mangatra.pipeline.model import BoundingBox, Detection, ExpandedRegion, ReplacementPatch
from mangatra.pipeline.model_registry import ModelRegistry
from mangatra.pipeline.raster import RasterBuffer
from mangatra.pipeline.textio import build_mapping, lookup_translations
from mangatra.pipeline.typeset.font import FontAsset
from mangatra.pipeline.typeset.render import typeset_region
from mangatra.pipeline.visualization import make_overlay

logger = logging.getLogger(__name__)


class PageProcessor:
    """
    Runs the detection, OCR, translation and replacement stages for one page.

    Each stage is timed and logged as ``stage_timing``. A failing stage is
    logged and re-raised as PageProcessingError carrying the page id and the
    stage name, so batch callers can skip the page and continue.
    """

    def __init__(
        self,
        page_id: str,
        models: ModelRegistry,
        font: FontAsset,
        *,
        padding: int = DEFAULT_PADDING,
        expand: bool = True,
        decoder: Optional[DetectionDecoder] = None,
    ):
        self.page_id = page_id
        self.models = models
        self.font = font
        self.padding = padding
        self.expand = expand
        self.decoder = decoder or DetectionDecoder(padding=padding)
        self.stage_completed: List[str] = []
        # Boxes from the most recent detect call, reused by debug_overlay
        self.last_boxes: List[BoundingBox] = []

    @contextmanager
    def _stage(self, stage: str, **extra: Any) -> Iterator[Dict[str, Any]]:
        t0 = time.perf_counter()
        info: Dict[str, Any] = dict(extra)
        try:
            yield info
        except PageProcessingError:
            raise
        except Exception as e:
            logger.exception(f"{stage}_failed", extra={"page": self.page_id, "stage": stage})
            raise PageProcessingError(self.page_id, stage, e) from e
        self.stage_completed.append(stage)
        t1 = time.perf_counter()
        logger.info(
            "stage_timing",
            extra={"page": self.page_id, "stage": stage, "ms": int((t1 - t0) * 1000), **info},
        )

    def _require(self, attr: str) -> Any:
        backend = getattr(self.models, attr, None)
        if backend is None:
            raise BackendError(f"No {attr} backend configured")
        return backend

    def detect(self, image: RasterBuffer) -> List[BoundingBox]:
        """Stage 1: run the detector and decode its tensor into padded boxes."""
        with self._stage("detect") as info:
            inference = self._require("inference")
            tensor = inference.infer(image)
            boxes, _ = self.decoder.decode(
                tensor, image.width, image.height, frame_size=max(image.width, image.height)
            )
            info["num_boxes"] = len(boxes)
        self.last_boxes = boxes
        return boxes

    def expand_boxes(self, image: RasterBuffer, boxes: Sequence[BoundingBox]) -> List[Region]:
        """Stage 2: grow each box to its speech bubble, when expansion is enabled."""
        if not self.expand:
            return list(boxes)
        with self._stage("expand", num_boxes=len(boxes)):
            regions: List[Region] = [expand_region(image, box) for box in boxes]
        return regions

    def recognize(self, image: RasterBuffer, boxes: Sequence[BoundingBox]) -> List[str]:
        """Stage 3: OCR every box, in detection order."""
        with self._stage("ocr", num_boxes=len(boxes)):
            ocr = self._require("ocr")
            texts = [ocr.recognize(image.view(b.x, b.y, b.width, b.height)) for b in boxes]
        return texts

    def translate(self, texts: Sequence[str]) -> List[str]:
        with self._stage("translate", num_texts=len(texts)):
            translator = self._require("translator")
            translated = translator.translate(list(texts))
            if len(translated) != len(texts):
                raise BackendError(f"Translator returned {len(translated)} results for {len(texts)} inputs")
        return list(translated)

    def extract(self, image: RasterBuffer) -> List[Detection]:
        boxes = self.detect(image)
        texts = self.recognize(image, boxes)
        return [Detection(text=t, box=b) for t, b in zip(texts, boxes)]

    def clean(self, image: RasterBuffer) -> RasterBuffer:
        """White out every detected region of the page."""
        boxes = self.detect(image)
        regions = self.expand_boxes(image, boxes)
        with self._stage("composite", num_regions=len(regions)):
            return clean_regions(image, regions)

    def replace(self, image: RasterBuffer, detections: Sequence[Detection]) -> RasterBuffer:
        """Typeset each detection's text over its region, one region after another."""
        regions = self.expand_boxes(image, [d.box for d in detections])
        with self._stage("typeset", num_regions=len(regions)):
            patches = [self._patch(d.text, region) for d, region in zip(detections, regions)]
        with self._stage("composite", num_regions=len(patches)):
            return apply_patches(image, patches)

    def _patch(self, text: str, region: Region) -> ReplacementPatch:
        raster = typeset_region(text, region.width, region.height, self.font, padding=self.padding)
        if isinstance(region, ExpandedRegion):
            return ReplacementPatch(raster, region.origin, region.diagonal)
        return ReplacementPatch(raster, region.origin)

    def debug_overlay(self, image: RasterBuffer) -> RasterBuffer:
        """Draw the boxes of the last detect call, and their expanded regions, over the page."""
        boxes = self.last_boxes
        with self._stage("debug", num_boxes=len(boxes)):
            regions = [expand_region(image, box) for box in boxes] if self.expand else []
            return make_overlay(image, boxes, regions)

    def translate_page(self, image: RasterBuffer) -> RasterBuffer:
        """Detect, read, translate and replace: the full page pipeline."""
        detections = self.extract(image)
        translated = self.translate([d.text for d in detections])
        return self.replace(
            image, [Detection(text=t, box=d.box) for t, d in zip(translated, detections)]
        )

    def extract_mapping(self, image: RasterBuffer, *, translate: bool = False) -> Dict[str, str]:
        """Mapping of recognized text to its replacement, in detection order.

        Without ``translate`` each value starts as a copy of its key, ready
        for manual editing.
        """
        texts = [d.text for d in self.extract(image)]
        translated = self.translate(texts) if translate else list(texts)
        with self._stage("mapping", num_texts=len(texts)):
            return build_mapping(texts, translated)

    def apply_mapping(self, image: RasterBuffer, mapping: Dict[str, str]) -> RasterBuffer:
        """Replace every detected region using a previously extracted mapping."""
        detections = self.extract(image)
        with self._stage("mapping", num_texts=len(detections)):
            translated = lookup_translations(mapping, [d.text for d in detections])
        return self.replace(
            image, [Detection(text=t, box=d.box) for t, d in zip(translated, detections)]
        )


def run_pipeline(
    page_id: str,
    image: RasterBuffer,
    models: ModelRegistry,
    font: FontAsset,
    **kwargs: Any,
) -> RasterBuffer:
    """
    High-level wrapper: translate a whole page through the orchestrator class.
    """
    processor = PageProcessor(page_id, models, font, **kwargs)
    return processor.translate_page(image)
