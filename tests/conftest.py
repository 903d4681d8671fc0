"""Shared fixtures and in-memory backends for the pipeline tests."""

from typing import List, Optional, Sequence

import numpy as np
import pytest

from mangatra.core.errors import BackendError
from mangatra.pipeline.model_registry import ModelRegistry
from mangatra.pipeline.raster import RasterBuffer
from mangatra.pipeline.typeset.font import load_font

# One confident detection centered on a 640x640 page: decodes to (270, 295, 100, 50)
SCENARIO_A_ROW = [320.0, 320.0, 100.0, 50.0, 0.9, 0.9, 0.1]


def tensor(*rows: Sequence[float]) -> np.ndarray:
    return np.asarray(rows, dtype=np.float32).reshape(len(rows), -1)


class StubInference:
    def __init__(self, rows: Optional[List[Sequence[float]]] = None, fail: bool = False) -> None:
        self.rows = tensor(*(rows if rows is not None else [SCENARIO_A_ROW]))
        self.fail = fail
        self.calls = 0

    def infer(self, image: RasterBuffer) -> np.ndarray:
        self.calls += 1
        if self.fail:
            raise BackendError("detector offline")
        return self.rows


class StubOcr:
    """Reads every crop as its size, so results are stable across runs."""

    def __init__(self) -> None:
        self.calls = 0

    def recognize(self, image: RasterBuffer) -> str:
        self.calls += 1
        return f"region {image.width}x{image.height}"


class StubTranslator:
    def __init__(self, drop_last: bool = False) -> None:
        self.drop_last = drop_last
        self.seen: List[List[str]] = []

    def translate(self, texts: Sequence[str]) -> List[str]:
        self.seen.append(list(texts))
        out = [t.upper() for t in texts]
        return out[:-1] if self.drop_last and out else out


def page_with_text(width: int = 640, height: int = 640) -> RasterBuffer:
    """White page with a few dark strokes inside the Scenario A box."""
    data = np.full((height, width, 3), 255, dtype=np.uint8)
    data[305:335, 290:295] = 0
    data[305:335, 320:325] = 0
    data[305:310, 340:360] = 0
    return RasterBuffer.from_array(data)


@pytest.fixture
def font():
    return load_font(None)


@pytest.fixture
def page() -> RasterBuffer:
    return page_with_text()


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry(inference=StubInference(), ocr=StubOcr(), translator=StubTranslator())
