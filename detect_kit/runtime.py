from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .errors import ModelLoadError
from .labels import COCO_CLASSES
from .postprocess import YoloPostConfig, YoloPostprocessor
from .preprocess import PreprocessResult, decode_image, preprocess
from .types import Detection


PathLike = Union[str, Path]

log = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery.

    Used to resolve relative model paths such as `models/yolov8m.onnx`.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against:
      - `root` if provided
      - project root (auto) otherwise
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class DetectionResult:
    image: np.ndarray
    detections: List[Detection]


class DetectionPipeline:
    """
    Plug-and-play pipeline: preprocess (stretch resize) -> inference -> decode -> NMS.

    The pipeline expects BGR images (OpenCV-style) as `np.ndarray` and returns
    a list of `Detection` in original image coordinates. It holds no
    per-request state, so one instance can serve concurrent callers as long
    as `infer_fn` can.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        class_names: Sequence[str] = COCO_CLASSES,
        post_cfg: YoloPostConfig = YoloPostConfig(),
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.post = YoloPostprocessor(post_cfg, class_names)

    @property
    def class_names(self) -> Sequence[str]:
        return self.post.class_names

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        return preprocess(image_bgr, self.post.cfg.input_size)

    def __call__(self, image_bgr: np.ndarray) -> List[Detection]:
        prep = self.preprocess(image_bgr)
        preds = self._infer_fn(prep.blob)
        candidates = self.post.decode(preds, prep.orig_size)
        detections = self.post.suppress(candidates)
        log.debug("Kept %d of %d candidates after NMS", len(detections), len(candidates))
        return detections

    def detect_bytes(self, data: bytes) -> DetectionResult:
        image = decode_image(data)
        return DetectionResult(image=image, detections=self(image))

    def close(self) -> None:
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()


def load_pipeline(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    class_names: Sequence[str] = COCO_CLASSES,
    post_cfg: YoloPostConfig = YoloPostConfig(),
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
) -> DetectionPipeline:
    """
    Create a pipeline for an ONNX model on disk.

    Typical usage:
        pipe = load_pipeline("models/yolov8m.onnx")  # resolves from project root by default

    Args:
        model_path: path to the .onnx file; relative paths resolve against project root by default
        root: base directory for resolving relative model paths ("auto" uses best-effort project root)
    """

    resolved = resolve_path(model_path, root=root)
    suffix = resolved.suffix.lower()
    if suffix != ".onnx":
        raise ModelLoadError(f"Unsupported model format '{suffix}' for {resolved}; expected an .onnx export.")

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    ort_backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
        ),
    )
    return DetectionPipeline(
        ort_backend.infer,
        backend=ort_backend,
        backend_name="onnxruntime",
        class_names=class_names,
        post_cfg=post_cfg,
    )
