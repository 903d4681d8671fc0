from __future__ import annotations

from typing import Optional


class MangatraError(Exception):
    """Base class for every failure raised by the mangatra pipeline."""


class DecodeError(MangatraError):
    """The inference tensor does not have the expected shape."""


class BackendError(MangatraError):
    """An inference, OCR or translation backend call failed."""


class FontLoadError(MangatraError):
    """The typesetting font could not be parsed."""


class CompositeError(MangatraError):
    """A replacement patch does not fit inside the page."""


class MappingError(MangatraError):
    """A translation mapping file is unreadable or does not match the page."""


class ValidationError(MangatraError):
    """A user supplied path or option is not acceptable."""


class PageProcessingError(MangatraError):
    """A pipeline stage failed for a single page.

    Carries the page identifier and the stage name so batch callers can log
    and skip the page.
    """

    def __init__(self, page: str, stage: str, cause: Optional[BaseException] = None) -> None:
        self.page = page
        self.stage = stage
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"page '{page}' failed during {stage}{detail}")
