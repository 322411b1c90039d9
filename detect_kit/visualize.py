from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .errors import RenderError
from .types import Detection

# OpenCV expects BGR.
BOX_COLOR: Tuple[int, int, int] = (0, 255, 0)
TEXT_COLOR: Tuple[int, int, int] = (0, 0, 0)


@dataclass(frozen=True)
class EncodedImage:
    content: bytes
    media_type: str
    extension: str


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_score: bool = False,
    box_color: Tuple[int, int, int] = BOX_COLOR,
    text_color: Tuple[int, int, int] = TEXT_COLOR,
    box_thickness: int = 3,
    font_scale: float = 0.7,
    font_thickness: int = 2,
    tag_padding: int = 5,
) -> np.ndarray:
    """
    Draw bounding boxes + label tags on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        detections: iterable of Detection with xyxy in original image coordinates.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        # Boxes carrying NaN/inf from the model cannot be placed on the image.
        if not np.all(np.isfinite([x1, y1, x2, y2])):
            continue
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), box_color, thickness=box_thickness)

        label = det.label
        if show_score:
            label = f"{label} {det.score:.2f}"

        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        tag_h = th + baseline + tag_padding
        # Place the tag above the box if possible, else inside.
        y_tag_top = y1i - tag_h
        if y_tag_top < 0:
            y_tag_top = y1i

        x_tag_right = min(x1i + tw + 2 * tag_padding, w - 1)
        y_tag_bottom = min(y_tag_top + tag_h, h - 1)

        cv2.rectangle(out, (x1i, y_tag_top), (x_tag_right, y_tag_bottom), box_color, thickness=-1)
        cv2.putText(
            out,
            label,
            (x1i + tag_padding, min(y_tag_top + th + tag_padding // 2, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            text_color,
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out


def output_format(filename: Optional[str]) -> Tuple[str, str]:
    """
    Pick (extension, media type) for a target filename: PNG for `.png`,
    JPEG for anything else.
    """

    suffix = PurePath(filename or "").suffix.lower()
    if suffix == ".png":
        return ".png", "image/png"
    return ".jpg", "image/jpeg"


def encode_image(image_bgr: np.ndarray, filename: Optional[str] = None) -> EncodedImage:
    extension, media_type = output_format(filename)
    try:
        ok, buf = cv2.imencode(extension, image_bgr)
    except cv2.error as exc:
        raise RenderError(f"Failed to encode {extension} image: {exc}") from exc
    if not ok:
        raise RenderError(f"Failed to encode {extension} image.")
    return EncodedImage(content=buf.tobytes(), media_type=media_type, extension=extension)


def render(image_bgr: np.ndarray, detections: Iterable[Detection], filename: Optional[str] = None) -> EncodedImage:
    return encode_image(draw_detections(image_bgr, detections), filename)
