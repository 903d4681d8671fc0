from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mangatra import __version__
from mangatra.core.config import get_settings
from mangatra.core.errors import (
    CompositeError,
    MangatraError,
    MappingError,
    PageProcessingError,
    ValidationError,
)
from mangatra.core.logging import configure_logging
from mangatra.pipeline.typeset.font import load_font
from mangatra.service.routes import router
from mangatra.service.runner import RegistryFactory, ServiceRunner

_CLIENT_ERRORS = (ValidationError, MappingError, CompositeError)


def _status_for(exc: MangatraError) -> int:
    if isinstance(exc, PageProcessingError):
        # Backends come from server settings, never from the request
        if exc.stage == "load_models":
            return 500
        return 422 if isinstance(exc.cause, _CLIENT_ERRORS) else 500
    return 422 if isinstance(exc, _CLIENT_ERRORS) else 500


def create_app(registry_factory: Optional[RegistryFactory] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: D401 - FastAPI lifespan signature
        settings = get_settings()
        configure_logging(settings.log_level)

        font = load_font(settings.effective_font_path)
        app.state.runner = ServiceRunner(settings, font, registry_factory)

        logging.getLogger(__name__).info(
            "app_start",
            extra={
                "workers": settings.service_workers,
                "ocr_engine": settings.ocr_engine,
                "padding": settings.padding,
            },
        )
        yield
        app.state.runner.shutdown()
        logging.getLogger(__name__).info("app_stop")

    app = FastAPI(title="Mangatra", version=__version__, lifespan=lifespan)

    @app.exception_handler(MangatraError)
    async def _mangatra_error(request: Request, exc: MangatraError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logging.getLogger(__name__).error(
                "request_failed", extra={"path": request.url.path, "error": str(exc)}
            )
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    app.include_router(router)
    return app


app = create_app()
