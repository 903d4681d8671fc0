from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional, TypeVar

from mangatra.core.config import Settings
from mangatra.core.errors import PageProcessingError, ValidationError
from mangatra.pipeline.model_registry import ModelRegistry
from mangatra.pipeline.orchestrator import PageProcessor
from mangatra.pipeline.raster import RasterBuffer
from mangatra.pipeline.typeset.font import FontAsset

T = TypeVar("T")

# Builds the backends for one executor thread; the argument is the OCR language
RegistryFactory = Callable[[Optional[str]], ModelRegistry]

logger = logging.getLogger(__name__)


def decode_image(data: str) -> RasterBuffer:
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image must be base64 encoded.") from exc
    try:
        return RasterBuffer.decode(raw)
    except ValueError as exc:
        raise ValidationError("Image file must be in one of the specified formats: JPG, PNG, WebP.") from exc


def encode_image(image: RasterBuffer) -> str:
    return base64.b64encode(image.encode(".png")).decode("ascii")


def default_registry_factory(settings: Settings) -> RegistryFactory:
    def factory(lang: Optional[str]) -> ModelRegistry:
        return ModelRegistry.load(settings, ocr_lang=lang)

    return factory


class ServiceRunner:
    """Runs page work on a dedicated thread pool.

    Each executor thread lazily builds its own ModelRegistry (one per OCR
    language) and keeps it in thread-local storage. Async handlers await the
    future returned by ``submit``, one future per request.
    """

    def __init__(self, settings: Settings, font: FontAsset, factory: Optional[RegistryFactory] = None) -> None:
        self.settings = settings
        self.font = font
        self._factory = factory or default_registry_factory(settings)
        self._local = threading.local()
        self._executor = ThreadPoolExecutor(
            max_workers=settings.service_workers, thread_name_prefix="mangatra-page"
        )

    def _models(self, lang: Optional[str]) -> ModelRegistry:
        registries: Optional[Dict[Optional[str], ModelRegistry]] = getattr(self._local, "registries", None)
        if registries is None:
            registries = self._local.registries = {}
        if lang not in registries:
            logger.info(
                "worker_models_init",
                extra={"worker": threading.current_thread().name, "lang": lang},
            )
            registries[lang] = self._factory(lang)
        return registries[lang]

    async def process(
        self,
        page_id: str,
        work: Callable[[PageProcessor], T],
        *,
        padding: Optional[int] = None,
        lang: Optional[str] = None,
    ) -> T:
        def run() -> T:
            try:
                models = self._models(lang)
            except Exception as e:
                logger.exception("load_models_failed", extra={"page": page_id, "lang": lang})
                raise PageProcessingError(page_id, "load_models", e) from e
            processor = PageProcessor(
                page_id,
                models,
                self.font,
                padding=self.settings.padding if padding is None else padding,
                expand=self.settings.expand_regions,
            )
            return work(processor)

        return await asyncio.wrap_future(self._executor.submit(run))

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
