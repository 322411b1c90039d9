from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..errors import InferenceError, ModelLoadError

PathLike = Union[str, Path]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
      (YOLOv8 exports use "images" / "output0")
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime backend holding one session for the life of the process.

    Expects an NCHW float32 blob, typically shaped (1, 3, 640, 640).
    Returns the selected output as a NumPy array. `InferenceSession.run` is
    safe to call from several threads on a shared session.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        import onnxruntime as ort

        self.model_path = Path(model_path)
        if not self.model_path.is_file():
            raise ModelLoadError(f"Model not found: {self.model_path}")

        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        log.info("Loading ONNX model from %s", self.model_path)
        try:
            self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)
        except Exception as exc:
            raise ModelLoadError(f"Failed to load ONNX model {self.model_path}: {exc}") from exc

        input_names = [i.name for i in self.session.get_inputs()]
        output_names = [o.name for o in self.session.get_outputs()]
        self.input_name = cfg.input_name or input_names[0]
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or output_names[0]
        if self.input_name not in input_names:
            raise ModelLoadError(f"Input name {self.input_name!r} not found. Available: {input_names}")
        if self.output_name not in output_names:
            raise ModelLoadError(f"Output name {self.output_name!r} not found. Available: {output_names}")

        self._closed = threading.Event()
        log.info(
            "ONNX session ready (input=%s, output=%s, providers=%s)",
            self.input_name,
            self.output_name,
            self.providers_in_use,
        )

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        if self._closed.is_set():
            raise InferenceError("Backend has been closed.")
        inputs = {self.input_name: np.asarray(blob, dtype=np.float32)}
        try:
            outputs = self.session.run([self.output_name], inputs)
        except Exception as exc:
            raise InferenceError(f"ONNX Runtime inference failed: {exc}") from exc
        return outputs[0]

    def close(self) -> None:
        self._closed.set()
        self.session = None
