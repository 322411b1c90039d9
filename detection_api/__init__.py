"""
HTTP service layer built on top of `detect_kit`.

`detect_kit` owns the numerical pipeline; this package adds
- configuration (JSON, validated)
- per-request result storage
- the request-level service (detect -> render -> store)
- the FastAPI surface and the command line
"""

from __future__ import annotations

from .config import ServiceConfig, config_from_env, load_service_config
from .service import DetectionService, ProcessedImage, build_pipeline
from .storage import ResultStore, StoredResult

__all__ = [
    "ServiceConfig",
    "config_from_env",
    "load_service_config",
    "DetectionService",
    "ProcessedImage",
    "build_pipeline",
    "ResultStore",
    "StoredResult",
]
