from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from mangatra.pipeline.backends import InferenceBackend, OcrBackend, TranslationBackend

if TYPE_CHECKING:
    from mangatra.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ModelRegistry:
    """Container for the long-lived backends used by the pipeline.

    One registry is built per worker process (batch mode) or per executor
    thread (service); backends are never shared between workers.

    Attributes:
        inference: InferenceBackend producing the raw detector tensor.
        ocr: OcrBackend used for every detected region.
        translator: TranslationBackend for full-page translation.
    """

    inference: Optional[InferenceBackend] = None
    ocr: Optional[OcrBackend] = None
    translator: Optional[TranslationBackend] = None

    @staticmethod
    def load(
        settings: "Settings",
        *,
        model_path: Optional[Path] = None,
        ocr_lang: Optional[str] = None,
        with_ocr: bool = True,
        with_translator: bool = False,
        preload_ocr: bool = False,
    ) -> "ModelRegistry":
        """Build the backends named by ``settings``.

        Heavy dependencies are imported lazily. Failures propagate: a worker
        without a detector cannot process any page.
        """
        from mangatra.pipeline.detection.onnx import OnnxInferenceBackend

        inference = OnnxInferenceBackend(model_path or settings.effective_model_path)

        ocr = None
        if with_ocr:
            if settings.ocr_engine == "manga-ocr":
                from mangatra.pipeline.ocr.engine import MangaOcrEngine

                ocr = MangaOcrEngine()
                if preload_ocr:
                    ocr.ensure_loaded()
            else:
                from mangatra.pipeline.ocr.engine import TesseractOcrEngine

                ocr = TesseractOcrEngine(
                    lang=ocr_lang or settings.ocr_lang,
                    tessdata_path=settings.tessdata_path,
                )

        translator = None
        if with_translator:
            if settings.translator == "gemini":
                from mangatra.pipeline.translate.gemini import GeminiTranslator

                translator = GeminiTranslator(api_key=settings.google_api_key or "")
            else:
                from mangatra.pipeline.translate.sugoi import SugoiTranslator

                translator = SugoiTranslator(
                    url=settings.sugoi_url,
                    timeout=settings.translation_timeout_seconds,
                )

        logger.info(
            "models_loaded",
            extra={
                "model_path": str(inference.model_path),
                "ocr_engine": settings.ocr_engine if with_ocr else None,
                "translator": settings.translator if with_translator else None,
            },
        )
        return ModelRegistry(inference=inference, ocr=ocr, translator=translator)
