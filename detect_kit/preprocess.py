from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np

from .errors import DecodeError, DimensionError

DEFAULT_INPUT_SIZE: Tuple[int, int] = (640, 640)


@dataclass(frozen=True)
class PreprocessResult:
    # (1, 3, H_in, W_in) float32, planar RGB in [0, 1]
    blob: np.ndarray
    # (width, height) of the decoded image
    orig_size: Tuple[int, int]


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes into an OpenCV BGR array (H, W, 3).

    Colour mode drops any alpha channel and expands grayscale to three channels.
    """

    if not data:
        raise DecodeError("Empty image payload.")
    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc
    if image is None:
        raise DecodeError("Unsupported or corrupt image data.")
    if image.ndim != 3 or image.shape[0] == 0 or image.shape[1] == 0:
        raise DimensionError(f"Degenerate image shape {image.shape}")
    return image


def preprocess(image_bgr: np.ndarray, input_size: Tuple[int, int] = DEFAULT_INPUT_SIZE) -> PreprocessResult:
    """
    Stretch-resize to `input_size` (no aspect preservation, no padding) and
    build the planar RGB blob the model expects.

    Axes are scaled independently; the decoder inverts each axis on its own.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    orig_h, orig_w = image_bgr.shape[:2]
    if orig_w == 0 or orig_h == 0:
        raise DimensionError(f"Image has zero width or height: {image_bgr.shape}")

    in_w, in_h = input_size
    if (orig_w, orig_h) != (in_w, in_h):
        img = cv2.resize(image_bgr, (in_w, in_h), interpolation=cv2.INTER_LINEAR)
    else:
        img = image_bgr

    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

    return PreprocessResult(blob=blob, orig_size=(int(orig_w), int(orig_h)))


def prepare_input(
    data: bytes, input_size: Tuple[int, int] = DEFAULT_INPUT_SIZE
) -> Tuple[PreprocessResult, np.ndarray]:
    image = decode_image(data)
    return preprocess(image, input_size), image
