from __future__ import annotations

import uuid
from typing import Dict

from fastapi import APIRouter, Request

from mangatra.core.errors import ValidationError
from mangatra.service.runner import ServiceRunner, decode_image, encode_image
from mangatra.service.schemas import (
    BoundingBoxModel,
    DetectionModel,
    DetectResponse,
    ExtractRequest,
    ExtractResponse,
    ImageRequest,
    ImageResponse,
    ReplaceRequest,
)

router = APIRouter()


def _runner(request: Request) -> ServiceRunner:
    return request.app.state.runner


def _page_id() -> str:
    return uuid.uuid4().hex[:12]


@router.get("/healthz")
def healthz() -> Dict[str, str]:
    return {"status": "ok"}


@router.post("/clean", response_model=ImageResponse)
async def clean(body: ImageRequest, request: Request) -> ImageResponse:
    image = decode_image(body.image)
    cleaned = await _runner(request).process(_page_id(), lambda p: p.clean(image), padding=body.padding)
    return ImageResponse(image=encode_image(cleaned))


@router.post("/extract", response_model=ExtractResponse)
async def extract(body: ExtractRequest, request: Request) -> ExtractResponse:
    image = decode_image(body.image)
    detections = await _runner(request).process(
        _page_id(), lambda p: p.extract(image), padding=body.padding, lang=body.lang
    )
    return ExtractResponse(detections=[DetectionModel.from_detection(d) for d in detections])


@router.post("/replace", response_model=ImageResponse)
async def replace(body: ReplaceRequest, request: Request) -> ImageResponse:
    image = decode_image(body.image)
    detections = [d.to_detection() for d in body.detections]
    for d in detections:
        if not d.box.fits_within(image.width, image.height):
            raise ValidationError(
                f"Bounding box {d.box.to_dict()} is outside the {image.width}x{image.height} image."
            )
    replaced = await _runner(request).process(
        _page_id(), lambda p: p.replace(image, detections), padding=body.padding
    )
    return ImageResponse(image=encode_image(replaced))


@router.post("/detect", response_model=DetectResponse)
async def detect(body: ImageRequest, request: Request) -> DetectResponse:
    image = decode_image(body.image)
    boxes = await _runner(request).process(_page_id(), lambda p: p.detect(image), padding=body.padding)
    return DetectResponse(boxes=[BoundingBoxModel.from_box(b) for b in boxes])
