from __future__ import annotations

from pathlib import Path
from typing import Optional

from mangatra.core.errors import BackendError
from mangatra.pipeline.raster import RasterBuffer


class MangaOcrEngine:
    """Thin wrapper around manga-ocr with lazy initialization."""

    def __init__(self) -> None:
        self._engine = None

    def ensure_loaded(self) -> None:
        if self._engine is None:
            try:
                from manga_ocr import MangaOcr  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "manga-ocr is required. Install the extra: pip install 'mangatra[manga-ocr]'"
                ) from exc
            self._engine = MangaOcr()

    def recognize(self, image: RasterBuffer) -> str:
        self.ensure_loaded()
        try:
            text = self._engine(image.to_pil())
        except Exception as exc:  # noqa: BLE001
            raise BackendError(f"manga-ocr failed: {exc}") from exc
        return (text or "").strip()


class TesseractOcrEngine:
    """Tesseract through pytesseract, reading each region as a single block.

    Page segmentation mode 5 treats the crop as one uniform block of
    vertically aligned text, which suits Japanese speech bubbles.
    """

    def __init__(self, lang: str = "jpn_vert", tessdata_path: Optional[Path] = None, psm: int = 5) -> None:
        self.lang = lang
        self.psm = psm
        self.config = f"--psm {psm}"
        if tessdata_path is not None:
            self.config += f' --tessdata-dir "{tessdata_path}"'

    def recognize(self, image: RasterBuffer) -> str:
        import pytesseract  # type: ignore

        try:
            text = pytesseract.image_to_string(image.to_pil(), lang=self.lang, config=self.config)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
            raise BackendError(f"tesseract failed: {exc}") from exc
        return text.strip()
