from typing import List

from pydantic import BaseModel


class DetectionOut(BaseModel):
    label: str
    class_id: int
    score: float
    # [x1, y1, x2, y2] in original image pixels
    box: List[float]


class DetectResponse(BaseModel):
    id: str
    filename: str
    total: int
    detections: List[DetectionOut]
    download_url: str


class ErrorResponse(BaseModel):
    error: str
    detail: str
