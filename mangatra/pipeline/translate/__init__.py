"""Translation backends. Gemini is imported on demand since google-genai is optional."""

from mangatra.pipeline.translate.sugoi import SugoiTranslator

__all__ = ["SugoiTranslator"]
