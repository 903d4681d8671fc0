from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_repo_root() -> Path:
    """Best-effort project root detection.

    Walk up from this file and return the first directory holding a
    pyproject.toml. Falls back to the parent of the package directory.
    """
    here = Path(__file__).resolve()
    for p in list(here.parents)[:6]:
        if (p / "pyproject.toml").exists():
            return p
    # mangatra/core/paths.py -> project root is parents[2]
    return here.parents[2]


@lru_cache(maxsize=1)
def get_assets_root() -> Path:
    path = os.getenv("MANGATRA_ASSETS_ROOT")
    return Path(path) if path else (get_repo_root() / "assets")


def default_model_path() -> Path:
    return get_assets_root() / "models" / "model.onnx"


def default_font_path() -> Path:
    return get_assets_root() / "fonts" / "mangat.ttf"
