from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Sequence

from mangatra.core.errors import MappingError
from mangatra.pipeline.io import ensure_dir


def build_mapping(originals: Sequence[str], translations: Sequence[str]) -> Dict[str, str]:
    """Pair originals with translations in detection order.

    Repeated originals keep their first position and first translation.
    """
    if len(originals) != len(translations):
        raise MappingError(f"{len(originals)} originals but {len(translations)} translations")
    mapping: Dict[str, str] = {}
    for original, translated in zip(originals, translations):
        mapping.setdefault(original, translated)
    return mapping


def write_mapping(json_path: Path, mapping: Dict[str, str]) -> None:
    ensure_dir(json_path.parent)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(mapping, f, ensure_ascii=False, indent=2)


def read_mapping(json_path: Path) -> Dict[str, str]:
    if not json_path.exists():
        raise MappingError(f"Mapping file not found: {json_path}")
    try:
        with open(json_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise MappingError(f"Mapping file {json_path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise MappingError(f"Mapping file {json_path} must be an object of string values")
    return data


def lookup_translations(mapping: Dict[str, str], originals: Sequence[str]) -> List[str]:
    """Translations for ``originals`` in order. Every original must be a key."""
    missing = [text for text in originals if text not in mapping]
    if missing:
        raise MappingError(f"No translation for {len(missing)} region(s), first: {missing[0]!r}")
    return [mapping[text] for text in originals]
