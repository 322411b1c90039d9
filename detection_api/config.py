from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

CONFIG_ENV_VAR = "DETECTION_API_CONFIG"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServiceConfig:
    schema_version: int = 1
    model_path: str = "models/yolov8m.onnx"
    metadata_path: Optional[str] = None
    onnx_providers: Optional[Tuple[str, ...]] = None
    conf_threshold: float = 0.5
    iou_threshold: float = 0.7
    class_agnostic_nms: bool = True
    storage_dir: str = "fs/processed"
    max_stored_results: int = 8
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("service config schema_version must be 1")
        if not self.model_path:
            raise ValueError("model_path must not be empty")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 < self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in (0, 1]")
        if self.max_stored_results < 1:
            raise ValueError("max_stored_results must be >= 1")
        if not 0 < self.port < 65536:
            raise ValueError("port must be in 1..65535")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(_LOG_LEVELS)}")

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level.upper())


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_bool(payload: Dict[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _coerce_providers(value: object) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        items = [p.strip() for p in value.split(",") if p.strip()]
    elif isinstance(value, list) and all(isinstance(item, str) for item in value):
        items = [p.strip() for p in value if p.strip()]
    else:
        raise ValueError("onnx_providers must be a string or list of strings")
    if not items:
        raise ValueError("onnx_providers must not be empty")
    return tuple(items)


def load_service_config(path: Path) -> ServiceConfig:
    if not path.exists():
        raise FileNotFoundError(f"Service config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid service config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Service config must be a JSON object")

    str_keys = {"model_path", "storage_dir", "host", "log_level"}
    float_keys = {"conf_threshold", "iou_threshold"}
    int_keys = {"schema_version", "max_stored_results", "port"}
    bool_keys = {"class_agnostic_nms"}
    allowed = str_keys | float_keys | int_keys | bool_keys | {"metadata_path", "onnx_providers"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown service config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in payload:
        if key in str_keys:
            kwargs[key] = _require_str(payload, key)
        elif key in float_keys:
            kwargs[key] = _require_number(payload, key)
        elif key in int_keys:
            kwargs[key] = _require_int(payload, key)
        elif key in bool_keys:
            kwargs[key] = _require_bool(payload, key)

    if payload.get("metadata_path") is not None:
        kwargs["metadata_path"] = _require_str(payload, "metadata_path")
    if "onnx_providers" in payload:
        kwargs["onnx_providers"] = _coerce_providers(payload["onnx_providers"])

    return ServiceConfig(**kwargs)


def config_from_env(environ: Optional[Dict[str, str]] = None) -> ServiceConfig:
    """Load the config named by DETECTION_API_CONFIG, or defaults when unset."""

    env = os.environ if environ is None else environ
    path = env.get(CONFIG_ENV_VAR)
    if not path:
        return ServiceConfig()
    return load_service_config(Path(path))
