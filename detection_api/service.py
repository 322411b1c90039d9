"""
Request-level detection: bytes in, rendered and stored image out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from detect_kit import (
    COCO_CLASSES,
    Detection,
    DetectionError,
    DetectionPipeline,
    ModelLoadError,
    YoloPostConfig,
    load_class_names,
    load_pipeline,
    render,
)

from .config import ServiceConfig
from .storage import ResultStore, StoredResult

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedImage:
    stored: StoredResult
    detections: List[Detection]

    @property
    def key(self) -> str:
        return self.stored.key


class DetectionService:
    def __init__(self, pipeline: DetectionPipeline, store: ResultStore):
        self.pipeline = pipeline
        self.store = store

    def process(self, data: bytes, filename: Optional[str] = None) -> ProcessedImage:
        """
        Detect objects in `data`, render the boxes and store the result.

        The output codec follows `filename`'s extension. Pipeline errors are
        logged and re-raised unchanged.
        """

        log.info("Detecting objects on image %s (%d bytes)", filename or "<unnamed>", len(data))
        try:
            result = self.pipeline.detect_bytes(data)
            encoded = render(result.image, result.detections, filename)
        except DetectionError as exc:
            log.warning("Detection failed for %s: %s", filename or "<unnamed>", exc)
            raise

        stored = self.store.save(encoded)
        log.info("Objects detected successfully: %d boxes, stored as %s", len(result.detections), stored.filename)
        return ProcessedImage(stored=stored, detections=result.detections)


def build_pipeline(config: ServiceConfig) -> DetectionPipeline:
    """Load the model and class table named by `config` (once per process)."""

    class_names = COCO_CLASSES
    if config.metadata_path:
        try:
            class_names = load_class_names(config.metadata_path)
        except (FileNotFoundError, ValueError) as exc:
            raise ModelLoadError(f"Invalid class metadata {config.metadata_path}: {exc}") from exc
    post_cfg = YoloPostConfig(
        conf_threshold=config.conf_threshold,
        iou_threshold=config.iou_threshold,
        class_agnostic_nms=config.class_agnostic_nms,
    )
    return load_pipeline(
        config.model_path,
        class_names=class_names,
        post_cfg=post_cfg,
        onnx_providers=config.onnx_providers,
    )
