from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from mangatra import DEFAULT_PADDING, __version__
from mangatra.core.config import Settings, get_settings
from mangatra.core.errors import MangatraError, MappingError, PageProcessingError, ValidationError
from mangatra.core.logging import configure_logging
from mangatra.core.validation import (
    IMAGE_EXTENSIONS,
    is_supported_image,
    validate_image,
    validate_model,
    validate_text,
)
from mangatra.pipeline.io import ensure_dir, read_image, save_image
from mangatra.pipeline.model_registry import ModelRegistry
from mangatra.pipeline.orchestrator import PageProcessor
from mangatra.pipeline.raster import RasterBuffer
from mangatra.pipeline.textio import read_mapping, write_mapping
from mangatra.pipeline.typeset.font import load_font

logger = logging.getLogger(__name__)

MODES = ("translate", "extract", "replace", "clean")


@dataclass(frozen=True)
class BatchConfig:
    """Immutable run configuration shared with every worker process."""

    mode: str
    input: Path
    output: Path
    input_is_dir: bool
    model: Path
    padding: int
    settings: Settings
    text: Optional[Path] = None
    lang: Optional[str] = None
    debug: bool = False
    single: bool = False


@dataclass(frozen=True)
class PageJob:
    image: Path
    output: Path
    text: Optional[Path] = None
    debug_output: Optional[Path] = None

    @property
    def page_id(self) -> str:
        return self.image.stem


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mangatra",
        description="Detect, read, translate and typeset text in comic pages",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-e", "--extract", action="store_true", help="Extract text into a JSON mapping file")
    mode.add_argument(
        "-r",
        "--replace",
        action="store_true",
        help="Replace text regions using a JSON mapping of original to translated text",
    )
    mode.add_argument("-c", "--clean", action="store_true", help="Only white out the detected text regions")
    parser.add_argument("-i", "--input", type=Path, required=True, help="A single image or a directory of images")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output path; ./output for a directory input, ./output.jpg (or ./output.json) for an image",
    )
    parser.add_argument("-m", "--model", type=Path, default=None, help="Detection model (ONNX format)")
    parser.add_argument("-p", "--padding", type=int, default=None, help="Padding around detected text regions (px)")
    parser.add_argument("-t", "--text", type=Path, default=None, help="Mapping JSON (or a directory of them) for --replace")
    parser.add_argument("--lang", type=str, default=None, help="OCR language")
    parser.add_argument("--translator", choices=("sugoi", "gemini"), default=None, help="Translation backend")
    parser.add_argument("--single", action="store_true", help="Process pages one at a time in this process")
    parser.add_argument("--debug", action="store_true", help="Also write a region overlay per page")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _mode(args: argparse.Namespace) -> str:
    if args.extract:
        return "extract"
    if args.replace:
        return "replace"
    if args.clean:
        return "clean"
    return "translate"


def build_config(args: argparse.Namespace, settings: Settings) -> BatchConfig:
    """Validate paths and options. Raises ValidationError with a user-facing message."""
    mode = _mode(args)
    input_path: Path = args.input
    if not input_path.exists():
        raise ValidationError(f"Input path not found: {input_path}")
    input_is_dir = input_path.is_dir()
    if not input_is_dir:
        validate_image(input_path)

    model = args.model or settings.effective_model_path
    validate_model(model)
    if not model.is_file():
        raise ValidationError(f"Model file not found: {model}")

    padding = settings.padding if args.padding is None else args.padding
    if padding < 0:
        raise ValidationError("Padding must not be negative.")

    if input_is_dir:
        output = args.output or Path("./output")
        if output.exists() and not output.is_dir():
            raise ValidationError("Output and Input must be of the same type.")
    else:
        default_output = Path("./output.json") if mode == "extract" else Path("./output.jpg")
        output = args.output or default_output
        if output.is_dir():
            raise ValidationError("Output and Input must be of the same type.")
        if mode == "extract":
            validate_text(output)
        else:
            validate_image(output)

    text = args.text
    if mode == "replace":
        if text is None:
            raise ValidationError("Replace mode needs --text with the translated mapping.")
        if input_is_dir:
            if not text.is_dir():
                raise ValidationError("Text path must be a directory of JSON files for a directory input.")
        else:
            validate_text(text)
            if not text.is_file():
                raise ValidationError(f"Text file not found: {text}")

    overrides: Dict[str, Any] = {"padding": padding}
    if args.translator:
        overrides["translator"] = args.translator
    return BatchConfig(
        mode=mode,
        input=input_path,
        output=output,
        input_is_dir=input_is_dir,
        model=model,
        padding=padding,
        settings=settings.model_copy(update=overrides),
        text=text,
        lang=args.lang,
        debug=args.debug,
        single=args.single,
    )


def plan_jobs(config: BatchConfig) -> List[PageJob]:
    """One job per page, with its output (and mapping) path resolved."""
    if not config.input_is_dir:
        debug_output = config.output.with_name(f"{config.output.stem}.debug.png") if config.debug else None
        return [PageJob(config.input, config.output, config.text, debug_output)]

    jobs: List[PageJob] = []
    for image in sorted(p for p in config.input.iterdir() if is_supported_image(p)):
        suffix = ".json" if config.mode == "extract" else image.suffix
        text = config.text / f"{image.stem}.json" if config.mode == "replace" and config.text else None
        debug_output = config.output / f"{image.stem}.debug.png" if config.debug else None
        jobs.append(PageJob(image, config.output / f"{image.stem}{suffix}", text, debug_output))
    return jobs


# Per-process worker state, filled by the pool initializer
_WORKER: Dict[str, Any] = {}


def init_worker(config: BatchConfig) -> None:
    """Build this process's own backends. Nothing stateful crosses processes."""
    settings = config.settings
    configure_logging(settings.log_level)
    _WORKER["config"] = config
    _WORKER["font"] = load_font(settings.effective_font_path)
    _WORKER["models"] = ModelRegistry.load(
        settings,
        model_path=config.model,
        ocr_lang=config.lang,
        with_ocr=config.mode != "clean",
        with_translator=config.mode == "translate",
    )


def _load(job: PageJob) -> RasterBuffer:
    try:
        return read_image(job.image)
    except OSError as e:
        raise PageProcessingError(job.page_id, "load", e) from e


def _write_debug_overlay(processor: PageProcessor, image: RasterBuffer, path: Path) -> None:
    overlay = processor.debug_overlay(image)
    try:
        save_image(path, overlay)
    except (OSError, RuntimeError) as e:
        raise PageProcessingError(processor.page_id, "debug", e) from e


def process_page(job: PageJob) -> bool:
    """Run one page in the current worker. Failures are logged and reported as False."""
    config: BatchConfig = _WORKER["config"]
    processor = PageProcessor(
        job.page_id,
        _WORKER["models"],
        _WORKER["font"],
        padding=config.padding,
        expand=config.settings.expand_regions,
    )
    t0 = time.perf_counter()
    try:
        image = _load(job)
        if config.mode == "extract":
            mapping = processor.extract_mapping(image)
            try:
                write_mapping(job.output, mapping)
            except OSError as e:
                raise PageProcessingError(job.page_id, "encode", e) from e
        else:
            if config.mode == "clean":
                result = processor.clean(image)
            elif config.mode == "replace":
                try:
                    if job.text is None:
                        raise MappingError(f"No mapping file for page {job.page_id}")
                    mapping = read_mapping(job.text)
                except MangatraError as e:
                    raise PageProcessingError(job.page_id, "load", e) from e
                result = processor.apply_mapping(image, mapping)
            else:
                result = processor.translate_page(image)
            try:
                save_image(job.output, result)
            except (OSError, RuntimeError) as e:
                raise PageProcessingError(job.page_id, "encode", e) from e
        if job.debug_output is not None:
            _write_debug_overlay(processor, image, job.debug_output)
    except PageProcessingError as exc:
        logger.error(
            "page_failed",
            extra={"page": exc.page, "stage": exc.stage, "error": str(exc.cause or exc)},
        )
        return False

    logger.info(
        "page_done",
        extra={
            "page": job.page_id,
            "output": str(job.output),
            "ms": int((time.perf_counter() - t0) * 1000),
            "stages": processor.stage_completed,
        },
    )
    return True


def run_batch(config: BatchConfig, jobs: Sequence[PageJob]) -> List[bool]:
    if config.input_is_dir:
        ensure_dir(config.output)
    if config.single or len(jobs) == 1:
        init_worker(config)
        return [process_page(job) for job in jobs]

    workers = config.settings.max_workers or os.cpu_count() or 1
    with ProcessPoolExecutor(max_workers=workers, initializer=init_worker, initargs=(config,)) as pool:
        return list(pool.map(process_page, jobs))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        config = build_config(args, settings)
    except ValidationError as exc:
        logger.error("invalid_arguments", extra={"error": str(exc)})
        print(f"error: {exc}", file=sys.stderr)
        return 2

    jobs = plan_jobs(config)
    if not jobs:
        logger.warning(
            "no_images_found",
            extra={"input": str(config.input), "extensions": list(IMAGE_EXTENSIONS)},
        )
        return 0

    logger.info(
        "batch_start",
        extra={"mode": config.mode, "pages": len(jobs), "single": config.single, "padding": config.padding},
    )
    t0 = time.perf_counter()
    results = run_batch(config, jobs)
    failed = results.count(False)
    logger.info(
        "batch_finished",
        extra={
            "pages": len(jobs),
            "failed": failed,
            "seconds": round(time.perf_counter() - t0, 2),
        },
    )
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
