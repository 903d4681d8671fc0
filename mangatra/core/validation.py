from __future__ import annotations

from pathlib import Path

from mangatra.core.errors import ValidationError

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


def validate_model(model: Path) -> None:
    """Model weights must be an ONNX export."""
    if model.suffix != ".onnx":
        raise ValidationError("Model must be an ONNX file.")


def validate_text(text: Path) -> None:
    if text.suffix != ".json":
        raise ValidationError("Text file must be a JSON file.")


def validate_image(image: Path) -> None:
    if image.suffix.lower() not in IMAGE_EXTENSIONS:
        raise ValidationError("Image file must be in one of the specified formats: JPG, PNG, WebP.")


def is_supported_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
