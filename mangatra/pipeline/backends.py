from __future__ import annotations

from typing import List, Protocol, Sequence

import numpy as np

from mangatra.pipeline.raster import RasterBuffer


class InferenceBackend(Protocol):
    def infer(self, image: RasterBuffer) -> np.ndarray:
        """Return the raw [N, 5+K] detector tensor for a page."""


class OcrBackend(Protocol):
    def recognize(self, image: RasterBuffer) -> str:
        """Return the text found in a cropped region."""


class TranslationBackend(Protocol):
    def translate(self, texts: Sequence[str]) -> List[str]:
        """Translate a batch, returning one string per input in the same order."""
