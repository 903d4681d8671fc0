import functools
import json
import multiprocessing
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path

import pytest

from conftest import StubInference, StubOcr, StubTranslator, page_with_text
from mangatra import cli
from mangatra.core.config import get_settings
from mangatra.core.errors import ValidationError
from mangatra.pipeline.io import read_image, save_image
from mangatra.pipeline.model_registry import ModelRegistry


@pytest.fixture
def model(tmp_path) -> Path:
    path = tmp_path / "detector.onnx"
    path.write_bytes(b"onnx")
    return path


@pytest.fixture
def image(tmp_path) -> Path:
    path = tmp_path / "pages" / "001.png"
    save_image(path, page_with_text())
    return path


@pytest.fixture
def stub_models(monkeypatch) -> ModelRegistry:
    registry = ModelRegistry(inference=StubInference(), ocr=StubOcr(), translator=StubTranslator())
    monkeypatch.setattr(ModelRegistry, "load", staticmethod(lambda settings, **kwargs: registry))
    return registry


def _config(*argv: str):
    return cli.build_config(cli.parse_args(list(argv)), get_settings())


def test_modes_are_mutually_exclusive(image, model) -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["-e", "-r", "-i", str(image), "-m", str(model)])


def test_defaults_for_an_image_input(image, model) -> None:
    config = _config("-i", str(image), "-m", str(model))
    assert config.mode == "translate"
    assert config.output == Path("./output.jpg")
    assert config.padding == 10
    assert not config.input_is_dir

    assert _config("-e", "-i", str(image), "-m", str(model)).output == Path("./output.json")


def test_missing_input(tmp_path, model) -> None:
    with pytest.raises(ValidationError, match="not found"):
        _config("-i", str(tmp_path / "nope.png"), "-m", str(model))


def test_model_must_be_onnx(image, tmp_path) -> None:
    weights = tmp_path / "model.pt"
    weights.write_bytes(b"pt")
    with pytest.raises(ValidationError, match="Model must be an ONNX file."):
        _config("-i", str(image), "-m", str(weights))


def test_output_kind_must_match_input(image, model, tmp_path) -> None:
    with pytest.raises(ValidationError, match="same type"):
        _config("-i", str(image), "-m", str(model), "-o", str(tmp_path))
    with pytest.raises(ValidationError, match="JSON"):
        _config("-e", "-i", str(image), "-m", str(model), "-o", str(tmp_path / "out.png"))


def test_replace_needs_a_mapping(image, model, tmp_path) -> None:
    with pytest.raises(ValidationError, match="--text"):
        _config("-r", "-i", str(image), "-m", str(model))
    with pytest.raises(ValidationError, match="JSON"):
        _config("-r", "-i", str(image), "-m", str(model), "-t", str(tmp_path / "text.txt"))


def test_directory_jobs(image, model, tmp_path) -> None:
    pages = image.parent
    save_image(pages / "002.jpg", page_with_text())
    (pages / "notes.txt").write_text("skip me", encoding="utf-8")
    out = tmp_path / "out"

    config = _config("-e", "-i", str(pages), "-m", str(model), "-o", str(out), "--debug")
    jobs = cli.plan_jobs(config)
    assert [j.image.name for j in jobs] == ["001.png", "002.jpg"]
    assert [j.output for j in jobs] == [out / "001.json", out / "002.json"]
    assert jobs[0].debug_output == out / "001.debug.png"


def test_clean_single_image(image, model, tmp_path, stub_models) -> None:
    out = tmp_path / "cleaned.png"
    assert cli.main(["-c", "-i", str(image), "-m", str(model), "-o", str(out), "--single"]) == 0
    cleaned = read_image(out)
    assert cleaned.size == (640, 640)
    assert cleaned.is_uniform()


def test_translate_single_image(image, model, tmp_path, stub_models) -> None:
    out = tmp_path / "final.png"
    assert cli.main(["-i", str(image), "-m", str(model), "-o", str(out), "--translator", "sugoi"]) == 0
    assert out.exists()
    assert stub_models.translator.seen == [["region 120x70"]]


def test_extract_then_replace(image, model, tmp_path, stub_models) -> None:
    mapping_path = tmp_path / "page.json"
    assert cli.main(["-e", "-i", str(image), "-m", str(model), "-o", str(mapping_path)]) == 0
    mapping = json.loads(mapping_path.read_text(encoding="utf-8"))
    assert mapping == {"region 120x70": "region 120x70"}

    mapping_path.write_text(json.dumps({"region 120x70": "Hello!"}), encoding="utf-8")
    out = tmp_path / "replaced.png"
    argv = ["-r", "-i", str(image), "-m", str(model), "-t", str(mapping_path), "-o", str(out)]
    assert cli.main(argv) == 0
    assert read_image(out).size == (640, 640)


def test_failed_page_is_skipped(image, model, tmp_path, stub_models) -> None:
    pages = image.parent
    (pages / "002.png").write_bytes(b"corrupt")
    out = tmp_path / "out"
    assert cli.main(["-c", "-i", str(pages), "-m", str(model), "-o", str(out), "--single"]) == 1
    assert (out / "001.png").exists()
    assert not (out / "002.png").exists()


def test_invalid_arguments_exit_with_usage_code(tmp_path, model) -> None:
    assert cli.main(["-i", str(tmp_path / "missing.png"), "-m", str(model)]) == 2


def test_debug_overlay_is_written_next_to_the_output(image, model, tmp_path, stub_models) -> None:
    out = tmp_path / "cleaned.png"
    assert cli.main(["-c", "-i", str(image), "-m", str(model), "-o", str(out), "--debug"]) == 0
    overlay = read_image(tmp_path / "cleaned.debug.png")
    assert overlay.size == (640, 640)
    assert not overlay.is_uniform()
    assert stub_models.inference.calls == 1


def test_failed_debug_overlay_skips_only_its_page(image, model, tmp_path, stub_models) -> None:
    pages = image.parent
    save_image(pages / "002.png", page_with_text())
    out = tmp_path / "out"
    (out / "001.debug.png").mkdir(parents=True)

    argv = ["-c", "-i", str(pages), "-m", str(model), "-o", str(out), "--debug", "--single"]
    assert cli.main(argv) == 1
    assert (out / "002.png").exists()
    assert (out / "002.debug.png").is_file()


@pytest.mark.skipif(
    "fork" not in multiprocessing.get_all_start_methods(), reason="worker processes must inherit the stub backends"
)
def test_worker_pool_isolates_a_failed_page(image, model, tmp_path, stub_models, monkeypatch) -> None:
    pages = image.parent
    save_image(pages / "000.png", page_with_text())
    (pages / "002.png").write_bytes(b"corrupt")
    out = tmp_path / "out"
    monkeypatch.setattr(
        cli,
        "ProcessPoolExecutor",
        functools.partial(ProcessPoolExecutor, mp_context=multiprocessing.get_context("fork")),
    )

    assert cli.main(["-c", "-i", str(pages), "-m", str(model), "-o", str(out)]) == 1
    assert sorted(p.name for p in out.iterdir()) == ["000.png", "001.png"]
    assert read_image(out / "000.png").is_uniform()
