from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatchError
from .labels import COCO_CLASSES
from .nms import NMSConfig, suppress
from .types import Detection


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Configuration for YOLO output decoding and suppression.
    """

    conf_threshold: float = 0.5
    iou_threshold: float = 0.7
    # (width, height) of the model input the box parameters are expressed in.
    input_size: Tuple[int, int] = (640, 640)
    # Expected anchor count; None accepts any.
    num_anchors: Optional[int] = 8400
    # If True, boxes of different classes suppress each other.
    class_agnostic_nms: bool = True
    max_detections: Optional[int] = None


class YoloPostprocessor:
    """
    Post-process for anchor-layout YOLO exports (YOLOv8 style).

    Supported layout (per image):
    - (1, 4 + K, N) or (4 + K, N): rows [cx, cy, w, h, class_scores...],
      e.g. 84 x 8400 for COCO at 640x640. No objectness row.

    Element (c, n) sits at flat offset c * N + n.
    """

    def __init__(self, cfg: YoloPostConfig = YoloPostConfig(), class_names: Sequence[str] = COCO_CLASSES):
        if not class_names:
            raise ValueError("class_names must not be empty")
        self.cfg = cfg
        self.class_names = tuple(class_names)
        self.nms_cfg = NMSConfig(iou_threshold=cfg.iou_threshold, max_detections=cfg.max_detections)

    @property
    def num_classes(self) -> int:
        return len(self.class_names)

    def process(self, preds: np.ndarray, orig_size: Tuple[int, int]) -> List[Detection]:
        """
        Convert raw model output into the final, suppressed detection set in
        original image coordinates.

        Args:
            preds: model output for a single image
            orig_size: (width, height) of the original image
        """

        return self.suppress(self.decode(preds, orig_size))

    def suppress(self, detections: Sequence[Detection]) -> List[Detection]:
        return suppress(detections, self.nms_cfg, class_agnostic=self.cfg.class_agnostic_nms)

    def decode(self, preds: np.ndarray, orig_size: Tuple[int, int]) -> List[Detection]:
        """
        Threshold, pick the best class per anchor and rescale boxes.

        Candidates are returned in anchor order. An empty list is a valid
        result (nothing above threshold).
        """

        p = self._validate(preds)
        n_anchors = p.shape[1]
        if n_anchors == 0:
            return []

        class_scores = p[4:, :]
        # argmax returns the first max, so ties resolve to the lowest class id.
        class_ids = np.argmax(class_scores, axis=0)
        scores = class_scores[class_ids, np.arange(n_anchors)]

        keep = np.nonzero(scores >= self.cfg.conf_threshold)[0]
        if keep.size == 0:
            return []

        cx, cy, w_box, h_box = (p[i, keep].astype(np.float64) for i in range(4))
        in_w, in_h = self.cfg.input_size
        orig_w, orig_h = orig_size
        sx = float(orig_w) / float(in_w)
        sy = float(orig_h) / float(in_h)

        x1 = (cx - w_box / 2) * sx
        y1 = (cy - h_box / 2) * sy
        x2 = (cx + w_box / 2) * sx
        y2 = (cy + h_box / 2) * sy

        return [
            Detection(
                x1=float(x1[j]),
                y1=float(y1[j]),
                x2=float(x2[j]),
                y2=float(y2[j]),
                score=float(scores[n]),
                class_id=int(class_ids[n]),
                label=self.class_names[int(class_ids[n])],
            )
            for j, n in enumerate(keep)
        ]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _validate(self, preds: np.ndarray) -> np.ndarray:
        p = np.asarray(preds)
        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ShapeMismatchError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ShapeMismatchError(f"Unsupported YOLO output shape: {np.shape(preds)}")

        channels, anchors = p.shape
        expected_channels = 4 + self.num_classes
        if channels != expected_channels:
            raise ShapeMismatchError(
                f"Expected {expected_channels} channels (4 box + {self.num_classes} classes), got shape {np.shape(preds)}"
            )
        if self.cfg.num_anchors is not None and anchors != self.cfg.num_anchors:
            raise ShapeMismatchError(f"Expected {self.cfg.num_anchors} anchors, got shape {np.shape(preds)}")
        return p
