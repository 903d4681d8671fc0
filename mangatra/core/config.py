from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mangatra import DEFAULT_PADDING


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables.

    Every field can be set through a ``MANGATRA_``-prefixed variable; a local
    .env file is honoured for development.
    """

    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"

    # Detection
    model_path: Optional[Path] = Field(
        default=None,
        description="YOLOv5 text detector exported to ONNX. Defaults to assets/models/model.onnx",
    )
    padding: int = Field(default=DEFAULT_PADDING, ge=0, description="Padding added around detected boxes (px)")
    expand_regions: bool = Field(
        default=True,
        description="Grow detected boxes to the enclosing speech bubble before replacing them",
    )

    # Typesetting
    font_path: Optional[Path] = Field(
        default=None,
        description="TrueType font used for replacement text. Falls back to Pillow's bundled font",
    )

    # OCR
    ocr_engine: Literal["tesseract", "manga-ocr"] = "tesseract"
    ocr_lang: str = "jpn_vert"
    tessdata_path: Optional[Path] = None

    # Translation
    translator: Literal["sugoi", "gemini"] = "sugoi"
    sugoi_url: str = "http://localhost:14366"
    translation_timeout_seconds: float = 60.0
    google_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MANGATRA_GOOGLE_API_KEY", "GOOGLE_API_KEY"),
    )

    # Workers
    max_workers: Optional[int] = Field(
        default=None,
        description="Batch worker processes. Defaults to the number of available cores",
    )
    service_workers: int = Field(default=4, ge=1, description="Blocking-work threads used by the HTTP service")
    host: str = "127.0.0.1"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_prefix="MANGATRA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def effective_model_path(self) -> Path:
        if self.model_path is not None:
            return self.model_path
        from mangatra.core.paths import default_model_path

        return default_model_path()

    @property
    def effective_font_path(self) -> Optional[Path]:
        if self.font_path is not None:
            return self.font_path
        from mangatra.core.paths import default_font_path

        candidate = default_font_path()
        return candidate if candidate.exists() else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings to avoid re-parsing .env on each import."""
    # Load nearest .env discovered from CWD upward without overriding existing vars
    load_dotenv(override=False)
    return Settings()
