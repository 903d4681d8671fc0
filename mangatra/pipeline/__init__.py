"""Page processing pipeline.

Subpackages and modules:
- `raster`: immutable pixel buffer with views and concatenation
- `detection`: detector tensor decoding and the ONNX backend
- `expand`: diagonal growth of boxes to the enclosing bubble
- `typeset`: font, scale selection, wrapping and rendering
- `composite`: panel splicing of replacement patches
- `ocr`, `translate`: OCR engines and translators
- `orchestrator`: per-page stage runner
"""
