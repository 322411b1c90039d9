from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from detect_kit import DetectionError, render

from .config import ServiceConfig, config_from_env, load_service_config
from .service import build_pipeline

log = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace) -> ServiceConfig:
    if args.config:
        return load_service_config(Path(args.config))
    return config_from_env()


def _serve(args: argparse.Namespace, cfg: ServiceConfig) -> int:
    import uvicorn

    from .api import create_app

    host = args.host or cfg.host
    port = int(args.port or cfg.port)
    uvicorn.run(create_app(cfg), host=host, port=port, log_level=cfg.log_level.lower())
    return 0


def _detect(args: argparse.Namespace, cfg: ServiceConfig) -> int:
    image_path = Path(args.image)
    if not image_path.exists():
        raise FileNotFoundError(f"Could not read image at path: {image_path}")

    pipeline = build_pipeline(cfg)
    try:
        result = pipeline.detect_bytes(image_path.read_bytes())
        out_path = Path(args.out) if args.out else image_path.with_name(f"{image_path.stem}_detections{image_path.suffix}")
        encoded = render(result.image, result.detections, out_path.name)
    finally:
        pipeline.close()

    out_path.write_bytes(encoded.content)
    for det in result.detections:
        print(det.label, f"{det.score:.3f}", [round(v, 1) for v in det.as_xyxy()])
    print(f"{len(result.detections)} detections -> {out_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="YOLO object detection API and single-image runner.")
    parser.add_argument("--config", default=None, help="Path to a service config JSON (defaults: $DETECTION_API_CONFIG).")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind address (overrides config).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (overrides config).")

    detect = sub.add_parser("detect", help="Detect objects on one image and write the rendered result.")
    detect.add_argument("--image", required=True, help="Path to an input image.")
    detect.add_argument("--out", default=None, help="Output path; .png writes PNG, anything else JPEG.")

    args = parser.parse_args(argv)
    cfg = _load_config(args)
    logging.basicConfig(level=cfg.log_level_value, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "serve":
        return _serve(args, cfg)
    try:
        return _detect(args, cfg)
    except DetectionError as exc:
        log.error("%s: %s", exc.kind, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
