from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from mangatra import DEFAULT_PADDING
from mangatra.core.errors import DecodeError
from mangatra.pipeline.model import BoundingBox, Origin, RawDetection

INPUT_SIZE = 640
OBJECT_THRESHOLD = 0.4
SCORE_THRESHOLD = 0.25
NMS_THRESHOLD = 0.45

logger = logging.getLogger(__name__)


def _as_rows(tensor: np.ndarray, expected_rows: Optional[int], expected_classes: Optional[int]) -> np.ndarray:
    data = np.asarray(tensor, dtype=np.float32)
    if data.ndim == 3 and data.shape[0] == 1:
        data = data[0]
    if data.ndim != 2 or data.shape[1] < 6:
        raise DecodeError(f"Expected an inference tensor of shape [N, 5+K], got {tuple(np.shape(tensor))}")
    if expected_rows is not None and data.shape[0] != expected_rows:
        raise DecodeError(f"Expected {expected_rows} candidate rows, got {data.shape[0]}")
    if expected_classes is not None and data.shape[1] != 5 + expected_classes:
        raise DecodeError(f"Expected {5 + expected_classes} columns per row, got {data.shape[1]}")
    return data


def to_box(det: RawDetection, x_factor: float, y_factor: float) -> BoundingBox:
    """Scale a normalized center/size detection to a pixel box, truncating toward zero."""
    cx, cy, w, h = (np.float32(v) for v in (det.cx, det.cy, det.w, det.h))
    xf, yf = np.float32(x_factor), np.float32(y_factor)
    half = np.float32(0.5)
    return BoundingBox(
        x=int((cx - half * w) * xf),
        y=int((cy - half * h) * yf),
        width=int(w * xf),
        height=int(h * yf),
    )


def iou(a: BoundingBox, b: BoundingBox) -> float:
    ix = max(0, min(a.right, b.right) - max(a.x, b.x))
    iy = max(0, min(a.bottom, b.bottom) - max(a.y, b.y))
    inter = ix * iy
    union = a.area + b.area - inter
    return inter / union if union > 0 else 0.0


def non_max_suppression(
    boxes: Sequence[BoundingBox],
    scores: Sequence[float],
    score_threshold: float = SCORE_THRESHOLD,
    iou_threshold: float = NMS_THRESHOLD,
) -> List[int]:
    """Greedy NMS. Returns indices of kept boxes, highest score first."""
    if len(boxes) != len(scores):
        raise ValueError("boxes and scores must have the same length")
    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    kept: List[int] = []
    for idx in order:
        i = int(idx)
        if scores[i] <= score_threshold:
            continue
        if all(iou(boxes[i], boxes[k]) <= iou_threshold for k in kept):
            kept.append(i)
    return kept


def clip_box(box: BoundingBox, width: int, height: int) -> Optional[BoundingBox]:
    x0 = min(max(box.x, 0), width)
    y0 = min(max(box.y, 0), height)
    x1 = min(max(box.right, 0), width)
    y1 = min(max(box.bottom, 0), height)
    if x1 <= x0 or y1 <= y0:
        return None
    return BoundingBox(x0, y0, x1 - x0, y1 - y0)


def pad_box(box: BoundingBox, padding: int, width: int, height: int) -> BoundingBox:
    """Grow the box by ``padding`` on every side, or not at all.

    The padded box is used only when it stays inside the image on all four
    sides; otherwise the box is returned unchanged.
    """
    padded = BoundingBox(box.x - padding, box.y - padding, box.width + 2 * padding, box.height + 2 * padding)
    return padded if padded.fits_within(width, height) else box


class DetectionDecoder:
    """Turns a raw YOLOv5 output tensor into padded, non-overlapping boxes."""

    def __init__(
        self,
        *,
        padding: int = DEFAULT_PADDING,
        input_size: int = INPUT_SIZE,
        object_threshold: float = OBJECT_THRESHOLD,
        score_threshold: float = SCORE_THRESHOLD,
        nms_threshold: float = NMS_THRESHOLD,
        expected_rows: Optional[int] = None,
        expected_classes: Optional[int] = None,
    ) -> None:
        if padding < 0:
            raise ValueError("padding must be non-negative")
        self.padding = int(padding)
        self.input_size = int(input_size)
        self.object_threshold = float(object_threshold)
        self.score_threshold = float(score_threshold)
        self.nms_threshold = float(nms_threshold)
        self.expected_rows = expected_rows
        self.expected_classes = expected_classes

    def raw_detections(self, tensor: np.ndarray) -> List[RawDetection]:
        """Rows that pass the objectness and class-score thresholds."""
        data = _as_rows(tensor, self.expected_rows, self.expected_classes)
        class_scores = data[:, 5:]
        keep = (data[:, 4] >= self.object_threshold) & (class_scores.max(axis=1) > self.score_threshold)
        return [
            RawDetection(
                cx=float(row[0]),
                cy=float(row[1]),
                w=float(row[2]),
                h=float(row[3]),
                object_conf=float(row[4]),
                class_scores=tuple(float(s) for s in row[5:]),
            )
            for row in data[keep]
        ]

    def candidates(
        self, tensor: np.ndarray, x_factor: float, y_factor: float
    ) -> Tuple[List[BoundingBox], List[float]]:
        raws = self.raw_detections(tensor)
        boxes = [to_box(det, x_factor, y_factor) for det in raws]
        return boxes, [det.object_conf for det in raws]

    def decode(
        self,
        tensor: np.ndarray,
        image_width: int,
        image_height: int,
        *,
        frame_size: Optional[int] = None,
    ) -> Tuple[List[BoundingBox], List[Origin]]:
        """Decode, suppress, clip and pad detections.

        ``frame_size`` is the side of the letterboxed square the tensor was
        produced from; when omitted the image dimensions are used for scaling.
        """
        if image_width <= 0 or image_height <= 0:
            raise DecodeError(f"Invalid image size {image_width}x{image_height}")
        if frame_size is not None:
            x_factor = y_factor = frame_size / self.input_size
        else:
            x_factor = image_width / self.input_size
            y_factor = image_height / self.input_size

        boxes, scores = self.candidates(tensor, x_factor, y_factor)
        kept = non_max_suppression(boxes, scores, self.score_threshold, self.nms_threshold)

        result_boxes: List[BoundingBox] = []
        for i in kept:
            clipped = clip_box(boxes[i], image_width, image_height)
            if clipped is None:
                continue
            result_boxes.append(pad_box(clipped, self.padding, image_width, image_height))

        logger.debug(
            "detections_decoded",
            extra={"candidates": len(boxes), "kept": len(result_boxes)},
        )
        return result_boxes, [b.origin for b in result_boxes]
