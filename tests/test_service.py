import base64

import pytest
from fastapi.testclient import TestClient

from conftest import StubInference, StubOcr, page_with_text
from mangatra.core.errors import ValidationError
from mangatra.pipeline.model_registry import ModelRegistry
from mangatra.pipeline.raster import RasterBuffer
from mangatra.service.main import create_app


def _b64(image: RasterBuffer) -> str:
    return base64.b64encode(image.encode(".png")).decode("ascii")


def _decode(data: str) -> RasterBuffer:
    return RasterBuffer.decode(base64.b64decode(data))


@pytest.fixture
def factory_calls():
    return []


@pytest.fixture
def client(factory_calls):
    def factory(lang):
        factory_calls.append(lang)
        return ModelRegistry(inference=StubInference(), ocr=StubOcr())

    with TestClient(create_app(registry_factory=factory)) as c:
        yield c


@pytest.fixture
def failing_client():
    def factory(lang):
        return ModelRegistry(inference=StubInference(fail=True), ocr=StubOcr())

    with TestClient(create_app(registry_factory=factory)) as c:
        yield c


def test_healthz(client) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}


def test_detect_returns_boxes(client) -> None:
    resp = client.post("/detect", json={"image": _b64(page_with_text())})
    assert resp.status_code == 200
    assert resp.json() == {"boxes": [{"x": 260, "y": 285, "width": 120, "height": 70}]}


def test_detect_honours_padding(client) -> None:
    resp = client.post("/detect", json={"image": _b64(page_with_text()), "padding": 0})
    assert resp.json()["boxes"] == [{"x": 270, "y": 295, "width": 100, "height": 50}]


def test_extract_returns_text_and_boxes(client, factory_calls) -> None:
    resp = client.post("/extract", json={"image": _b64(page_with_text()), "lang": "jpn"})
    assert resp.status_code == 200
    assert resp.json() == {
        "detections": [
            {"text": "region 120x70", "bounding_box": {"x": 260, "y": 285, "width": 120, "height": 70}}
        ]
    }
    assert "jpn" in factory_calls


def test_clean_returns_an_image_of_the_same_size(client) -> None:
    page = page_with_text()
    resp = client.post("/clean", json={"image": _b64(page)})
    assert resp.status_code == 200
    cleaned = _decode(resp.json()["image"])
    assert cleaned.size == page.size
    assert cleaned.is_uniform()


def test_replace_renders_supplied_detections(client) -> None:
    page = RasterBuffer.blank(320, 240)
    body = {
        "image": _b64(page),
        "detections": [{"text": "Hello", "bounding_box": {"x": 20, "y": 20, "width": 150, "height": 80}}],
    }
    resp = client.post("/replace", json=body)
    assert resp.status_code == 200
    replaced = _decode(resp.json()["image"])
    assert replaced.size == page.size
    assert not replaced.is_uniform()


def test_replace_rejects_boxes_outside_the_image(client) -> None:
    body = {
        "image": _b64(RasterBuffer.blank(100, 100)),
        "detections": [{"text": "x", "bounding_box": {"x": 90, "y": 0, "width": 20, "height": 20}}],
    }
    resp = client.post("/replace", json=body)
    assert resp.status_code == 422
    assert "outside" in resp.json()["detail"]


def test_invalid_base64_is_a_client_error(client) -> None:
    resp = client.post("/clean", json={"image": "***"})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Image must be base64 encoded."


def test_undecodable_image_is_a_client_error(client) -> None:
    resp = client.post("/detect", json={"image": base64.b64encode(b"plain text").decode()})
    assert resp.status_code == 422
    assert "JPG, PNG, WebP" in resp.json()["detail"]


def test_negative_padding_is_rejected(client) -> None:
    resp = client.post("/detect", json={"image": _b64(page_with_text()), "padding": -1})
    assert resp.status_code == 422


def test_backend_failure_is_a_server_error(failing_client) -> None:
    resp = failing_client.post("/extract", json={"image": _b64(page_with_text())})
    assert resp.status_code == 500
    assert "detect" in resp.json()["detail"]


@pytest.mark.parametrize(
    "error",
    [FileNotFoundError("model.onnx is missing"), ValidationError("Model must be an ONNX file.")],
)
def test_model_loading_failure_is_a_json_server_error(error: Exception) -> None:
    def factory(lang):
        raise error

    with TestClient(create_app(registry_factory=factory)) as c:
        resp = c.post("/detect", json={"image": _b64(page_with_text())})
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    assert "load_models" in resp.json()["detail"]
    assert str(error) in resp.json()["detail"]


def test_each_worker_builds_its_models_once(client, factory_calls) -> None:
    for _ in range(3):
        assert client.post("/detect", json={"image": _b64(page_with_text())}).status_code == 200
    assert 1 <= len(factory_calls) <= 3
    assert set(factory_calls) == {None}
