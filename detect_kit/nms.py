from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .geometry import iou
from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.7
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of boxes to keep, in selection order (descending score).

    Sorting is stable, so equal scores keep their input order. A remaining box
    is dropped when its IoU with the selected one is >= `iou_threshold`.
    """

    boxes = np.asarray(boxes, dtype=np.float64)
    scores = np.asarray(scores, dtype=np.float64)
    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        if rest.size == 0:
            break
        overlaps = iou(boxes[i], boxes[rest])
        order = rest[overlaps < cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(
    detections: Sequence[Detection],
    cfg: NMSConfig = NMSConfig(),
    *,
    class_agnostic: bool = True,
) -> List[Detection]:
    """
    Reduce candidates to a non-overlapping set, highest score first.

    With `class_agnostic=True` boxes of different classes suppress each other.
    Otherwise NMS runs per class and the survivors are merged by score.
    The input sequence is not modified.
    """

    if not detections:
        return []

    boxes = np.array([d.as_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.score for d in detections], dtype=np.float64)

    if class_agnostic:
        keep_idx = nms(boxes, scores, cfg)
        return [detections[int(i)] for i in keep_idx]

    class_ids = np.array([d.class_id for d in detections], dtype=np.int64)
    per_class_cfg = NMSConfig(iou_threshold=cfg.iou_threshold)
    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.where(class_ids == cls)[0]
        keep_local = nms(boxes[idx], scores[idx], per_class_cfg)
        kept.extend(idx[keep_local].tolist())

    # Ties fall back to anchor (input) order.
    kept.sort()
    kept_arr = np.array(kept, dtype=np.int64)
    kept_arr = kept_arr[np.argsort(-scores[kept_arr], kind="stable")]
    if cfg.max_detections is not None:
        kept_arr = kept_arr[: cfg.max_detections]
    return [detections[int(i)] for i in kept_arr]
