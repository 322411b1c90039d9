"""
Intersection / union / IoU over axis-aligned xyxy boxes.

Areas are not clamped: a box with x2 < x1 or y2 < y1 has a negative (or zero)
area. Overlap extents are clamped at zero, so such boxes never contribute
intersection.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

BoxLike = Union[Sequence[float], np.ndarray]


def _as_boxes(boxes: BoxLike) -> np.ndarray:
    arr = np.asarray(boxes, dtype=np.float64)
    if arr.shape[-1] != 4:
        raise ValueError(f"Expected boxes with 4 coordinates, got shape {arr.shape}")
    return arr


def box_area(boxes: BoxLike) -> np.ndarray:
    b = _as_boxes(boxes)
    return (b[..., 2] - b[..., 0]) * (b[..., 3] - b[..., 1])


def intersection(box: BoxLike, boxes: BoxLike) -> np.ndarray:
    a = _as_boxes(box)
    b = _as_boxes(boxes)
    xx1 = np.maximum(a[..., 0], b[..., 0])
    yy1 = np.maximum(a[..., 1], b[..., 1])
    xx2 = np.minimum(a[..., 2], b[..., 2])
    yy2 = np.minimum(a[..., 3], b[..., 3])
    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    return w * h


def union(box: BoxLike, boxes: BoxLike) -> np.ndarray:
    return box_area(box) + box_area(boxes) - intersection(box, boxes)


def iou(box: BoxLike, boxes: BoxLike) -> Union[float, np.ndarray]:
    """
    IoU of `box` against `boxes`.

    Returns a float when both arguments are single boxes, otherwise an array
    broadcast over `boxes`. A non-positive union yields 0.
    """

    inter = intersection(box, boxes)
    uni = union(box, boxes)
    safe = np.where(uni > 0.0, uni, 1.0)
    out = np.where(uni > 0.0, inter / safe, 0.0)
    if np.ndim(out) == 0:
        return float(out)
    return out
