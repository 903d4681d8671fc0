from mangatra.pipeline.ocr.engine import MangaOcrEngine, TesseractOcrEngine

__all__ = ["MangaOcrEngine", "TesseractOcrEngine"]
