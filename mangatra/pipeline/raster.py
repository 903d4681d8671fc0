from __future__ import annotations

from typing import Sequence, Tuple

import cv2  # type: ignore
import numpy as np
from PIL import Image  # type: ignore

WHITE: Tuple[int, int, int] = (255, 255, 255)


def _frozen(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


class RasterBuffer:
    """Immutable HxWx3 uint8 pixel buffer in OpenCV (BGR) channel order.

    Sub-rectangle views share memory with their parent; since neither can be
    written to, views are safe to hand out and concatenate freely.
    """

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray) -> None:
        if data.ndim != 3 or data.shape[2] != 3:
            raise ValueError("RasterBuffer expects a colour array with shape HxWx3.")
        if data.dtype != np.uint8:
            raise ValueError("RasterBuffer expects uint8 pixels.")
        self._data = _frozen(data)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterBuffer":
        """Copy an array into a new buffer. Grayscale input is expanded to BGR."""
        if array.ndim == 2:
            array = cv2.cvtColor(array, cv2.COLOR_GRAY2BGR)
        return cls(np.array(array, dtype=np.uint8, copy=True))

    @classmethod
    def blank(cls, width: int, height: int, color: Tuple[int, int, int] = WHITE) -> "RasterBuffer":
        if width < 0 or height < 0:
            raise ValueError(f"Invalid raster size {width}x{height}")
        return cls(np.full((height, width, 3), color, dtype=np.uint8))

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterBuffer":
        rgb = np.asarray(image.convert("RGB"))
        return cls(cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))

    @classmethod
    def decode(cls, data: bytes) -> "RasterBuffer":
        """Decode encoded image bytes (JPEG, PNG, WebP, ...)."""
        buf = np.frombuffer(data, dtype=np.uint8)
        image = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
        if image is None:
            raise ValueError("Failed to decode image bytes")
        return cls(image)

    @property
    def width(self) -> int:
        return int(self._data.shape[1])

    @property
    def height(self) -> int:
        return int(self._data.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def array(self) -> np.ndarray:
        """Read-only view of the underlying pixels."""
        return self._data

    def to_array(self) -> np.ndarray:
        """Writable copy of the pixels."""
        return self._data.copy()

    def to_pil(self) -> Image.Image:
        return Image.fromarray(cv2.cvtColor(self._data, cv2.COLOR_BGR2RGB))

    def encode(self, ext: str = ".png") -> bytes:
        ok, buf = cv2.imencode(ext, self._data)
        if not ok:
            raise RuntimeError(f"Failed to encode image as {ext}")
        return buf.tobytes()

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        b, g, r = self._data[y, x]
        return int(b), int(g), int(r)

    def pixel_equals(self, a: Tuple[int, int], b: Tuple[int, int]) -> bool:
        """True when the pixels at positions ``a`` and ``b`` are identical."""
        return bool(np.array_equal(self._data[a[1], a[0]], self._data[b[1], b[0]]))

    def view(self, x: int, y: int, width: int, height: int) -> "RasterBuffer":
        """Zero-copy view of a sub-rectangle. Empty views are allowed."""
        if width < 0 or height < 0 or x < 0 or y < 0 or x + width > self.width or y + height > self.height:
            raise ValueError(
                f"View ({x}, {y}, {width}, {height}) is outside a {self.width}x{self.height} raster"
            )
        return RasterBuffer(self._data[y : y + height, x : x + width])

    def is_uniform(self, color: Tuple[int, int, int] = WHITE) -> bool:
        return bool(np.all(self._data == np.array(color, dtype=np.uint8)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self._data.shape == other._data.shape and bool(np.array_equal(self._data, other._data))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"RasterBuffer({self.width}x{self.height})"


def vconcat(buffers: Sequence[RasterBuffer]) -> RasterBuffer:
    """Stack buffers top to bottom. All widths must match."""
    widths = {b.width for b in buffers}
    if len(widths) != 1:
        raise ValueError(f"vconcat needs equal widths, got {sorted(widths)}")
    return RasterBuffer(np.concatenate([b.array for b in buffers], axis=0))


def hconcat(buffers: Sequence[RasterBuffer]) -> RasterBuffer:
    """Stack buffers left to right. All heights must match."""
    heights = {b.height for b in buffers}
    if len(heights) != 1:
        raise ValueError(f"hconcat needs equal heights, got {sorted(heights)}")
    return RasterBuffer(np.concatenate([b.array for b in buffers], axis=1))
