from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from mangatra.pipeline.model import BoundingBox, Detection


class BoundingBoxModel(BaseModel):
    x: int
    y: int
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @classmethod
    def from_box(cls, box: BoundingBox) -> "BoundingBoxModel":
        return cls(x=box.x, y=box.y, width=box.width, height=box.height)

    def to_box(self) -> BoundingBox:
        return BoundingBox(self.x, self.y, self.width, self.height)


class DetectionModel(BaseModel):
    text: str
    bounding_box: BoundingBoxModel

    @classmethod
    def from_detection(cls, detection: Detection) -> "DetectionModel":
        return cls(text=detection.text, bounding_box=BoundingBoxModel.from_box(detection.box))

    def to_detection(self) -> Detection:
        return Detection(text=self.text, box=self.bounding_box.to_box())


class ImageRequest(BaseModel):
    image: str = Field(description="Base64 encoded JPG, PNG or WebP page")
    padding: Optional[int] = Field(default=None, ge=0)


class ExtractRequest(ImageRequest):
    lang: Optional[str] = None


class ReplaceRequest(ImageRequest):
    detections: List[DetectionModel]


class ImageResponse(BaseModel):
    image: str


class ExtractResponse(BaseModel):
    detections: List[DetectionModel]


class DetectResponse(BaseModel):
    boxes: List[BoundingBoxModel]
