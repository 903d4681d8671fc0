"""Comic page text detection, bubble expansion and text replacement.

Subpackages:
- `core`: settings, logging, errors, path validation
- `pipeline`: raster buffers, detection decoding, region expansion,
  typesetting, compositing and the page orchestrator
- `service`: FastAPI HTTP service
"""

__version__ = "0.1.0"

DEFAULT_PADDING = 10
