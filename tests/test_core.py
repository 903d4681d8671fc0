import json
import logging

import pytest

from mangatra.core.config import Settings
from mangatra.core.errors import BackendError, PageProcessingError
from mangatra.core.logging import JsonLogFormatter


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("MANGATRA_PADDING", "4")
    monkeypatch.setenv("MANGATRA_OCR_ENGINE", "manga-ocr")
    monkeypatch.setenv("GOOGLE_API_KEY", "secret")
    settings = Settings(_env_file=None)
    assert settings.padding == 4
    assert settings.ocr_engine == "manga-ocr"
    assert settings.google_api_key == "secret"


def test_settings_defaults(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("MANGATRA_GOOGLE_API_KEY", raising=False)
    settings = Settings(_env_file=None)
    assert settings.padding == 10
    assert settings.ocr_lang == "jpn_vert"
    assert settings.translator == "sugoi"
    assert settings.effective_model_path.name == "model.onnx"


def test_negative_padding_is_invalid(monkeypatch) -> None:
    monkeypatch.setenv("MANGATRA_PADDING", "-1")
    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_page_error_names_page_and_stage() -> None:
    err = PageProcessingError("007", "ocr", BackendError("tesseract failed"))
    assert (err.page, err.stage) == ("007", "ocr")
    assert str(err) == "page '007' failed during ocr: tesseract failed"


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.LogRecord("mangatra.test", logging.INFO, __file__, 1, "stage_timing", None, None)
    record.stage = "detect"
    record.ms = 12
    payload = json.loads(JsonLogFormatter().format(record))
    assert payload["message"] == "stage_timing"
    assert payload["level"] == "info"
    assert payload["stage"] == "detect"
    assert payload["ms"] == 12
