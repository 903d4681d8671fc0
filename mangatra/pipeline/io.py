from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np

from mangatra.pipeline.raster import RasterBuffer


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_image(image_path: Path) -> RasterBuffer:
    image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if image is None:
        raise FileNotFoundError(f"Failed to read image: {image_path}")
    return RasterBuffer(image)


def save_image(path: Path, image: RasterBuffer) -> None:
    ensure_dir(path.parent)
    try:
        ok = cv2.imwrite(str(path), np.ascontiguousarray(image.array))
    except cv2.error as e:
        raise RuntimeError(f"Failed to write image: {path}") from e
    if not ok:
        raise RuntimeError(f"Failed to write image: {path}")
