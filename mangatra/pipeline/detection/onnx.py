from __future__ import annotations

from pathlib import Path

import cv2  # type: ignore
import numpy as np

from mangatra.core.errors import BackendError
from mangatra.core.validation import validate_model
from mangatra.pipeline.detection.decode import INPUT_SIZE
from mangatra.pipeline.raster import RasterBuffer


def letterbox(image_bgr: np.ndarray) -> np.ndarray:
    """Pad the image with black on the right or bottom so it becomes square."""
    rows, cols = image_bgr.shape[:2]
    side = max(rows, cols)
    if rows == cols:
        return image_bgr.copy()
    square = np.zeros((side, side, 3), dtype=image_bgr.dtype)
    square[:rows, :cols] = image_bgr
    return square


class OnnxInferenceBackend:
    """YOLOv5 text detector executed through OpenCV's DNN module."""

    def __init__(self, model_path: Path, input_size: int = INPUT_SIZE) -> None:
        model_path = Path(model_path)
        validate_model(model_path)
        if not model_path.is_file():
            raise FileNotFoundError(f"Detection model not found at '{model_path}'.")
        self.model_path = model_path
        self.input_size = input_size
        self._net = cv2.dnn.readNetFromONNX(str(model_path))

    def infer(self, image: RasterBuffer) -> np.ndarray:
        frame = letterbox(image.array)
        blob = cv2.dnn.blobFromImage(
            frame,
            scalefactor=1.0 / 255.0,
            size=(self.input_size, self.input_size),
            swapRB=True,
            crop=False,
        )
        self._net.setInput(blob)
        try:
            outputs = self._net.forward(self._net.getUnconnectedOutLayersNames())
        except cv2.error as exc:
            raise BackendError(f"Detector forward pass failed: {exc}") from exc
        # Output is [1, N, 5+K]; drop the batch axis
        return np.asarray(outputs[0])[0]
