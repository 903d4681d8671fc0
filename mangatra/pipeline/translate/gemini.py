from __future__ import annotations

from typing import List, Sequence

from pydantic import BaseModel

from mangatra.core.errors import BackendError


class TranslationPair(BaseModel):
    """One source line and its English translation."""
    index: int
    original: str
    translation: str


# The SDK does not accept a bare List[...] as the top-level response schema.
class TranslationList(BaseModel):
    translations: List[TranslationPair]


PROMPT_HEADER = (
    "You are a professional manga translator. Translate each numbered Japanese line below into "
    "natural, concise English suitable for a speech bubble. "
    "Respond with a JSON object whose 'translations' key holds one object per input line, "
    "each with the keys 'index', 'original' and 'translation'. Keep the input indices.\n\n"
)


class GeminiTranslator:
    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash") -> None:
        if not api_key:
            raise BackendError("GOOGLE_API_KEY is required for translation via Gemini")
        try:
            from google import genai  # type: ignore
        except ImportError as exc:
            raise RuntimeError(
                "google-genai is required. Install the extra: pip install 'mangatra[gemini]'"
            ) from exc

        self._client = genai.Client(api_key=api_key)
        self._model_name = model_name
        self._generation_config = {
            "response_mime_type": "application/json",
            "response_schema": TranslationList,
        }

    def translate(self, texts: Sequence[str]) -> List[str]:
        if not texts:
            return []

        prompt = PROMPT_HEADER + "\n".join(f"{i}. {text}" for i, text in enumerate(texts))
        try:
            response = self._client.models.generate_content(
                model=self._model_name,
                contents=prompt,
                config=self._generation_config,
            )
        except Exception as exc:  # noqa: BLE001
            raise BackendError(f"Gemini API call failed: {exc}") from exc

        parsed: TranslationList | None = response.parsed
        if not parsed or not parsed.translations:
            raise BackendError("Gemini returned no translations")

        by_index = {item.index: item.translation for item in parsed.translations}
        missing = [i for i in range(len(texts)) if i not in by_index]
        if missing:
            raise BackendError(f"Gemini response is missing translations for lines {missing}")
        return [by_index[i] for i in range(len(texts))]
