"""
Single-image YOLO object detection core.

Framework-agnostic pre/post-processing on NumPy arrays: stretch-resize input
preparation, (4 + K, N) output decoding, greedy NMS and box rendering. Model
execution goes through ONNX Runtime (`detect_kit.backends`).
"""

from .errors import (
    DecodeError,
    DetectionError,
    DimensionError,
    InferenceError,
    ModelLoadError,
    RenderError,
    ShapeMismatchError,
)
from .types import Detection
from .geometry import box_area, intersection, iou, union
from .labels import COCO_CLASSES, load_class_names
from .nms import NMSConfig, nms, suppress
from .preprocess import PreprocessResult, decode_image, prepare_input, preprocess
from .postprocess import YoloPostprocessor, YoloPostConfig
from .runtime import DetectionPipeline, DetectionResult, load_pipeline, find_project_root, resolve_path
from .visualize import EncodedImage, draw_detections, encode_image, output_format, render

__all__ = [
    "DecodeError",
    "DetectionError",
    "DimensionError",
    "InferenceError",
    "ModelLoadError",
    "RenderError",
    "ShapeMismatchError",
    "Detection",
    "box_area",
    "intersection",
    "iou",
    "union",
    "COCO_CLASSES",
    "load_class_names",
    "NMSConfig",
    "nms",
    "suppress",
    "PreprocessResult",
    "decode_image",
    "prepare_input",
    "preprocess",
    "YoloPostprocessor",
    "YoloPostConfig",
    "DetectionPipeline",
    "DetectionResult",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "EncodedImage",
    "draw_detections",
    "encode_image",
    "output_format",
    "render",
]
